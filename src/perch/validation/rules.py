"""Built-in validation rules for config values.

Each validator is a callable with the signature::

    def rule(value: Any) -> str | None:
        '''Return error message, or None if valid.'''

Parameterized validators are factory functions that return a validator::

    def min_value(n: float) -> Validator:
        def check(value: Any) -> str | None:
            if value < n:
                return f"must be >= {n}"
            return None
        return check

Messages are written to follow the parameter name, so ``load_config``
can report them as ``'port' must be >= 1``.
"""

import re
from collections.abc import Callable
from typing import Any, TypeAlias
from urllib.parse import urlparse

# Type alias for a validator function
Validator: TypeAlias = Callable[[Any], str | None]


# ---------------------------------------------------------------------------
# Presence
# ---------------------------------------------------------------------------


def required(value: Any) -> str | None:
    """Value must be present and, for strings, non-blank."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return "is required"
    return None


# ---------------------------------------------------------------------------
# Type
# ---------------------------------------------------------------------------


def of_type(*types: type) -> Validator:
    """Value must be an instance of one of *types*.

    ``bool`` is not accepted where ``int`` is asked for.
    """
    names = " or ".join(t.__name__ for t in types)

    def check(value: Any) -> str | None:
        if isinstance(value, bool) and bool not in types:
            return f"must be of type {names}"
        if not isinstance(value, types):
            return f"must be of type {names}"
        return None

    return check


# ---------------------------------------------------------------------------
# Choice
# ---------------------------------------------------------------------------


def one_of(*choices: Any) -> Validator:
    """Value must be one of the given choices."""
    allowed = ", ".join(repr(c) for c in choices)

    def check(value: Any) -> str | None:
        if value not in choices:
            return f"must be one of: {allowed}"
        return None

    return check


# ---------------------------------------------------------------------------
# Format
# ---------------------------------------------------------------------------


def matches(pattern: str, message: str | None = None) -> Validator:
    """String must match a regex pattern."""
    compiled = re.compile(pattern)

    def check(value: Any) -> str | None:
        if not isinstance(value, str) or not compiled.search(value):
            return message or f"must match pattern {pattern!r}"
        return None

    return check


def url(value: Any) -> str | None:
    """Must be an absolute http(s) URL."""
    if not isinstance(value, str):
        return "must be a valid URL"
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return "must be a valid URL"
    return None


# ---------------------------------------------------------------------------
# Range
# ---------------------------------------------------------------------------


def min_value(n: float) -> Validator:
    """Number must be at least *n*."""

    def check(value: Any) -> str | None:
        if isinstance(value, bool) or not isinstance(value, int | float):
            return "must be a number"
        if value < n:
            return f"must be >= {n}"
        return None

    return check


def max_value(n: float) -> Validator:
    """Number must be at most *n*."""

    def check(value: Any) -> str | None:
        if isinstance(value, bool) or not isinstance(value, int | float):
            return "must be a number"
        if value > n:
            return f"must be <= {n}"
        return None

    return check
