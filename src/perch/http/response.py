"""Responses: the per-request writer and the immutable return value.

``ResponseWriter`` is the ``res`` a handler receives. It tracks whether
the response has gone out through an explicit ``ResponseState`` so the
dispatcher can tell a handler that wrote its own response from one that
declined the request.

``Response`` is a value a handler may return instead; the ASGI adapter
sends it after dispatch.
"""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, replace
from enum import Enum

from perch._internal.asgi import Send
from perch._internal.invoke import invoke
from perch.errors import ResponseAlreadySent
from perch.http.cookies import SetCookie


class ResponseState(Enum):
    """Lifecycle of a ``ResponseWriter``.

    ``PENDING`` — nothing sent yet; headers and status may still change.
    ``SENT`` — headers are on the wire; the request counts as handled.
    """

    PENDING = "pending"
    SENT = "sent"


def _body_allowed(status: int) -> bool:
    # 1xx, 204 and 304 responses carry no message body.
    return not (100 <= status < 200 or status in {204, 304})


class ResponseWriter:
    """Mutable, per-request response bound to an ASGI ``send``.

    Usage::

        async def download(ctx):
            ctx.res.set_header("Content-Type", "text/csv")
            await ctx.res.send(b"a,b\\n1,2\\n", status=200)

    Streaming::

        await res.start()
        await res.write(b"chunk")
        await res.end()
    """

    __slots__ = ("_ended", "_headers", "_on_headers", "_send", "state", "status")

    def __init__(self, send: Send) -> None:
        self._send = send
        self.status: int = 200
        self.state: ResponseState = ResponseState.PENDING
        self._headers: dict[str, tuple[str, list[str]]] = {}
        self._on_headers: list[Callable[["ResponseWriter"], Awaitable[None] | None]] = []
        self._ended = False

    @property
    def headers_sent(self) -> bool:
        """True once the status line and headers have been sent."""
        return self.state is ResponseState.SENT

    @property
    def finished(self) -> bool:
        """True once the final body chunk has been sent."""
        return self._ended

    # -- Headers --

    def set_header(self, name: str, value: str) -> None:
        """Set a header, replacing any previous values."""
        self._check_pending()
        self._headers[name.lower()] = (name, [value])

    def append_header(self, name: str, value: str) -> None:
        """Add another value for *name* (e.g. ``Set-Cookie``)."""
        self._check_pending()
        _, values = self._headers.setdefault(name.lower(), (name, []))
        values.append(value)

    def get_header(self, name: str) -> str | None:
        """Return the first value set for *name*."""
        entry = self._headers.get(name.lower())
        return entry[1][0] if entry and entry[1] else None

    def remove_header(self, name: str) -> None:
        """Drop every value for *name*."""
        self._check_pending()
        self._headers.pop(name.lower(), None)

    def set_headers(self, headers: Mapping[str, str]) -> None:
        """Set several headers at once."""
        for name, value in headers.items():
            self.set_header(name, value)

    def add_cookie(self, cookie: SetCookie) -> None:
        """Queue a ``Set-Cookie`` header."""
        self.append_header("Set-Cookie", cookie.to_header_value())

    def on_headers(self, callback: Callable[["ResponseWriter"], Awaitable[None] | None]) -> None:
        """Run *callback* right before headers are sent (last chance to edit them)."""
        self._check_pending()
        self._on_headers.append(callback)

    # -- Sending --

    async def start(self, status: int | None = None) -> None:
        """Send the status line and headers. Body chunks follow via ``write``."""
        self._check_pending()
        if status is not None:
            self.status = status
        for callback in self._on_headers:
            await invoke(callback, self)
        raw_headers = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, values in self._headers.values()
            for value in values
        ]
        self.state = ResponseState.SENT
        await self._send(
            {
                "type": "http.response.start",
                "status": self.status,
                "headers": raw_headers,
            }
        )

    async def write(self, chunk: str | bytes) -> None:
        """Send a body chunk, starting the response first if needed."""
        if self._ended:
            raise ResponseAlreadySent("Response body already finished.")
        if self.state is ResponseState.PENDING:
            await self.start()
        data = chunk.encode("utf-8") if isinstance(chunk, str) else chunk
        if data:
            await self._send({"type": "http.response.body", "body": data, "more_body": True})

    async def end(self, chunk: str | bytes = b"") -> None:
        """Send an optional last chunk and close the body."""
        if self._ended:
            raise ResponseAlreadySent("Response body already finished.")
        if self.state is ResponseState.PENDING:
            await self.start()
        data = chunk.encode("utf-8") if isinstance(chunk, str) else chunk
        self._ended = True
        await self._send({"type": "http.response.body", "body": data, "more_body": False})

    async def send(self, body: str | bytes = b"", status: int | None = None) -> None:
        """Send a complete response with ``Content-Length`` in one go."""
        self._check_pending()
        if status is not None:
            self.status = status
        data = body.encode("utf-8") if isinstance(body, str) else body
        if not _body_allowed(self.status):
            data = b""
        self.set_header("Content-Length", str(len(data)))
        await self.start()
        self._ended = True
        await self._send({"type": "http.response.body", "body": data, "more_body": False})

    def _check_pending(self) -> None:
        if self.state is not ResponseState.PENDING:
            msg = "Response headers have already been sent."
            raise ResponseAlreadySent(msg)

    def __repr__(self) -> str:
        return f"<ResponseWriter status={self.status} state={self.state.value}>"


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response a handler can return instead of writing to ``res``.

    Built through immutable transformations::

        return Response("created", status=201).with_header("Location", "/foos/1")
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = "text/plain; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()

    def with_status(self, status: int) -> "Response":
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> "Response":
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_content_type(self, content_type: str) -> "Response":
        """Return a new Response with a different content type."""
        return replace(self, content_type=content_type)

    def get_header(self, name: str, default: str | None = None) -> str | None:
        """Return the first header value for *name* (case-insensitive)."""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return default

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body


@dataclass(frozen=True, slots=True)
class Redirect:
    """A redirect a handler can return."""

    url: str
    status: int = 302
