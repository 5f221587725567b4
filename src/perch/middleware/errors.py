"""Error rendering middleware.

Catches anything raised further down the chain and sends an error
response whose content type follows the requested path:

    ``*.json``  -> ``{"message": ..., "statusCode": ...}``
    ``*.js``    -> ``// message``
    otherwise   -> HTML from ``error_page(status, message)``, or plain
                   text when no error page is given

``HTTPError`` keeps its status and detail (and headers). Anything else
is logged and rendered as a 500.
"""

import logging
from collections.abc import Callable
from typing import Any, TypeAlias

from perch.context import RequestContext
from perch.errors import HTTPError
from perch.middleware.protocol import Middleware, Next
from perch.send import send_html, send_javascript, send_json, send_text

logger = logging.getLogger("perch.server")

# (status, message) -> HTML document
ErrorPage: TypeAlias = Callable[[int, str], str]

INTERNAL_ERROR_MESSAGE = "Internal Server Error"


def content_type_for(pathname: str) -> str:
    """Pick the error content type from the path extension."""
    if pathname.endswith(".json"):
        return "application/json"
    if pathname.endswith(".js"):
        return "application/javascript"
    return "text/html"


def catch_and_render_errors(error_page: ErrorPage | None = None) -> Middleware:
    """Build the error-rendering middleware.

    Usage::

        def error_page(status, message):
            return f"<h1>{status}</h1><p>{html.escape(message)}</p>"

        routes = create_router(
            middlewares=[catch_and_render_errors(error_page)],
            routes=[...],
        )

    Errors raised after the response has started cannot be rendered and
    are re-raised untouched.
    """

    async def render_errors(ctx: RequestContext, next: Next) -> Any:
        try:
            return await next(ctx)
        except Exception as exc:
            if ctx.res.headers_sent:
                raise
            if isinstance(exc, HTTPError):
                status, message = exc.status, exc.detail or f"Error {exc.status}"
                for name, value in exc.headers:
                    ctx.res.set_header(name, value)
            else:
                logger.error(
                    "500 %s %s", ctx.req.method, ctx.pathname or ctx.req.url, exc_info=exc
                )
                status, message = 500, INTERNAL_ERROR_MESSAGE
            await _send_error(ctx, status, message, error_page)
            return None

    return render_errors


async def _send_error(
    ctx: RequestContext, status: int, message: str, error_page: ErrorPage | None
) -> None:
    match content_type_for(ctx.pathname):
        case "application/json":
            await send_json(ctx.res, status, {"message": message, "statusCode": status})
        case "application/javascript":
            await send_javascript(ctx.res, status, f"// {message}")
        case _ if error_page is not None:
            await send_html(ctx.res, status, error_page(status, message))
        case _:
            await send_text(ctx.res, status, message)
