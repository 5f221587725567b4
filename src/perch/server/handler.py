"""ASGI handler — translates ASGI scope/messages to perch types.

The only component that touches raw ASGI directly. Builds the typed
``Request`` and the ``ResponseWriter``, runs the dispatcher, and sends
whatever the handler returned (or a 404 when nothing handled it).
"""

import logging

from perch._internal.asgi import Receive, Scope, Send
from perch.errors import HTTPError
from perch.http.request import Request
from perch.http.response import Response, ResponseWriter
from perch.routing.dispatcher import Dispatcher
from perch.server.errors import handle_http_error, handle_internal_error
from perch.server.negotiation import negotiate

logger = logging.getLogger("perch.server")


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    dispatcher: Dispatcher,
    debug: bool = False,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)
    writer = ResponseWriter(send)

    try:
        result = await dispatcher(request, writer)
        if writer.headers_sent:
            return
        response = (
            negotiate(result)
            if result is not None
            else Response(body="Not Found").with_status(404)
        )
    except HTTPError as exc:
        if writer.headers_sent:
            logger.warning(
                "%s %s raised %s after the response was sent", request.method, request.path, exc
            )
            return
        response = handle_http_error(exc, request, debug=debug)
    except Exception as exc:
        if writer.headers_sent:
            logger.error(
                "%s %s failed after the response was sent",
                request.method,
                request.path,
                exc_info=exc,
            )
            return
        response = handle_internal_error(exc, request, debug=debug)

    await send_response(response, writer)


async def send_response(response: Response, writer: ResponseWriter) -> None:
    """Send a ``Response`` through *writer*, keeping headers already set on it."""
    writer.set_header("Content-Type", response.content_type)
    for name, value in response.headers:
        writer.append_header(name, value)
    await writer.send(response.body_bytes, status=response.status)
