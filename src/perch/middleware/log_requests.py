"""Request logging middleware.

Logs ``{req, res, duration}`` at DEBUG through the ``logger`` effect
when the response headers go out, so failed requests are logged too
once something renders the error.
"""

import logging
import time
from typing import Any

from perch.context import RequestContext
from perch.log import LOGGER_NAME
from perch.middleware.protocol import Next

_REGISTERED = "log_requests:registered"


async def log_requests(ctx: RequestContext, next: Next) -> Any:
    """Time the request and log it once its headers are sent.

    Uses ``ctx.effects["logger"]`` when the route declares it, the
    ``perch.app`` logger otherwise. A request that falls through several
    routes is logged once.
    """
    if _REGISTERED not in ctx.cache:
        ctx.cache.set(_REGISTERED, True)
        log = ctx.effects.get("logger") or logging.getLogger(LOGGER_NAME)
        start = time.monotonic()

        def log_request(res: Any) -> None:
            duration = round((time.monotonic() - start) * 1000)
            log.debug(
                "%s %s %s",
                ctx.req.method,
                ctx.req.url,
                res.status,
                extra={"req": ctx.req, "res": res, "duration": duration},
            )

        ctx.res.on_headers(log_request)

    return await next(ctx)
