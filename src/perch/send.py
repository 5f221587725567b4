"""Content-type aware senders for handlers that write their own response.

Each sender sets ``Content-Type`` and sends the whole response through
the ``ResponseWriter``, which marks the request as handled::

    async def export(ctx):
        await send_json(ctx.res, 200, {"ok": True})
"""

import json as json_module
from typing import Any

from perch.http.response import ResponseWriter


def _encode(body: Any) -> str | bytes:
    if body is None:
        return b""
    if isinstance(body, (str, bytes)):
        return body
    return str(body)


async def send_text(res: ResponseWriter, status: int, body: Any = "") -> None:
    res.set_header("Content-Type", "text/plain; charset=utf-8")
    await res.send(_encode(body), status=status)


async def send_html(res: ResponseWriter, status: int, body: Any = "") -> None:
    res.set_header("Content-Type", "text/html; charset=utf-8")
    await res.send(_encode(body), status=status)


async def send_json(res: ResponseWriter, status: int, body: Any = None) -> None:
    """Serialize *body* as JSON (``bytes``/``str`` are sent verbatim)."""
    res.set_header("Content-Type", "application/json; charset=utf-8")
    if isinstance(body, (str, bytes)):
        await res.send(body, status=status)
        return
    await res.send(json_module.dumps(body, default=str), status=status)


async def send_javascript(res: ResponseWriter, status: int, body: Any = "") -> None:
    res.set_header("Content-Type", "application/javascript; charset=utf-8")
    await res.send(_encode(body), status=status)


async def send_redirect(res: ResponseWriter, url: str, status: int = 302) -> None:
    """Redirect to *url* (``302 Found`` unless told otherwise)."""
    res.set_header("Location", url)
    await res.send(b"", status=status)
