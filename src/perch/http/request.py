"""Immutable HTTP request.

Frozen metadata with async body access. The dispatcher only needs
``method`` and ``url``; everything else is for handlers and middleware.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Mapping
from dataclasses import dataclass
from typing import Any

from perch._internal.asgi import Receive
from perch.errors import HTTPError
from perch.http.cookies import parse_cookies
from perch.http.headers import Headers


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    The body is not read when the request is created. Read it once with
    ``body()``/``stream()``, or through ``perch.http.body`` which caches
    the parsed result for the rest of the request.
    """

    method: str
    path: str
    query_string: str
    headers: Headers
    cookies: Mapping[str, str]
    http_version: str
    server: tuple[str, int] | None
    client: tuple[str, int] | None

    # Private: ASGI receive callable for body streaming
    _receive: Receive

    @property
    def url(self) -> str:
        """Relative request URL: path plus query string."""
        if self.query_string:
            return f"{self.path}?{self.query_string}"
        return self.path

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        """The Content-Length header as int."""
        value = self.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        while True:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                break
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def body(self, limit: int | None = None) -> bytes:
        """Read the full body, failing with 413 once *limit* bytes are exceeded."""
        declared = self.content_length
        if limit is not None and declared is not None and declared > limit:
            raise HTTPError(413, "Request body too large")
        chunks: list[bytes] = []
        size = 0
        async for chunk in self.stream():
            size += len(chunk)
            if limit is not None and size > limit:
                raise HTTPError(413, "Request body too large")
            chunks.append(chunk)
        return b"".join(chunks)

    @classmethod
    def from_asgi(cls, scope: Mapping[str, Any], receive: Receive) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        headers = Headers(tuple(scope.get("headers", ())))
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=_raw_path(scope),
            query_string=scope.get("query_string", b"").decode("latin-1"),
            headers=headers,
            cookies=parse_cookies(headers.get("cookie", "")),
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            _receive=receive,
        )


def _raw_path(scope: Mapping[str, Any]) -> str:
    """Prefer the undecoded path so params are decoded exactly once, by the matcher."""
    raw = scope.get("raw_path")
    if raw:
        return raw.decode("latin-1").split("?", 1)[0]
    return scope["path"]
