"""Shared type aliases used across perch modules."""

from collections.abc import Awaitable, Callable
from typing import Any, TypeAlias

# Route handler: receives the request context, returns a body or None
Handler: TypeAlias = Callable[..., Any]

# Composed handler produced at compile time, always async
ComposedHandler: TypeAlias = Callable[[Any], Awaitable[Any]]

# Lifecycle hook: sync or async, no arguments
Hook: TypeAlias = Callable[[], Any]
