"""Middleware — Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(ctx: RequestContext, next: Next) -> Any

Built-in middleware:
    catch_and_render_errors -- Render raised errors as JSON, JavaScript, HTML or text
    log_requests -- Log method, URL, status and duration through the logger effect
"""

from perch.middleware.errors import catch_and_render_errors
from perch.middleware.log_requests import log_requests
from perch.middleware.protocol import Middleware, Next, apply_middlewares

__all__ = [
    "Middleware",
    "Next",
    "apply_middlewares",
    "catch_and_render_errors",
    "log_requests",
]
