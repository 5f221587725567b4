"""Route declarations."""

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Any

from perch.errors import ConfigurationError

ALL = "ALL"

# An HTTP method is any token (RFC 9110 section 5.6.2): GET, PROPFIND, PURGE, ...
METHOD_TOKEN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")

_EMPTY: Mapping[str, Any] = MappingProxyType({})


@dataclass(frozen=True, slots=True)
class Route:
    """A route: method + pattern + handler, plus config/effects/middleware.

    The same type describes a declaration and a resolved route; after
    ``configure_routes`` the config, effects and middlewares include the
    router-level defaults.

    Usage::

        Route("get", "/foos/:fooId", show_foo, config={"pageSize": 20})
    """

    method: str
    pattern: str
    handler: Callable[..., Any]
    config: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)
    effects: Mapping[str, Callable[..., Any]] = field(default_factory=lambda: _EMPTY)
    middlewares: tuple[Callable[..., Any], ...] = field(default=())

    @property
    def method_upper(self) -> str:
        """The HTTP method, upper-cased (``"ALL"`` matches every method)."""
        return self.method.upper()

    @property
    def matches_all_methods(self) -> bool:
        return self.method_upper == ALL

    def with_pattern(self, pattern: str) -> "Route":
        """Return a copy of this route with a different pattern."""
        return replace(self, pattern=pattern)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Route":
        """Build a Route from a ``{"method", "pattern", "handler", ...}`` mapping.

        Raises ``ConfigurationError`` on missing or unknown keys.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            msg = f"Unknown route keys: {', '.join(sorted(unknown))}."
            raise ConfigurationError(msg)
        missing = [name for name in ("method", "pattern", "handler") if name not in data]
        if missing:
            msg = f"Route is missing required keys: {', '.join(missing)}."
            raise ConfigurationError(msg)
        values = dict(data)
        if "middlewares" in values and isinstance(values["middlewares"], list):
            values["middlewares"] = tuple(values["middlewares"])
        return cls(**values)
