"""A catch-all route that turns "nothing handled this" into a 404.

Put it at the end of the route list, after every route that could
handle the request, so error middleware sees a ``NotFound``::

    app = create_app([*routes, *not_found])
"""

from perch.context import RequestContext
from perch.errors import NotFound
from perch.routing.compose import configure_routes
from perch.routing.route import ALL, Route


def _raise_not_found(ctx: RequestContext) -> None:
    raise NotFound()


not_found = configure_routes([Route(method=ALL, pattern="/*", handler=_raise_not_found)])
