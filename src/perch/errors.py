"""Perch exception hierarchy.

Shared across the composer, dispatcher, ASGI adapter and middleware so
every module raises and catches the same types.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when routes, mounts, patterns or config are invalid.

    Raised synchronously while composing or compiling, so a broken
    application fails at startup rather than per request.
    """


class ResponseAlreadySent(PerchError):  # noqa: N818
    """Raised when a response writer is asked to send a second time."""


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code.

    Raised by handlers or middleware. The ASGI adapter (or the
    ``catch_and_render_errors`` middleware) turns it into a response.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 — nothing handled the request."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)
