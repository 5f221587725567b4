"""The ``api_client`` effect — an ``httpx.AsyncClient`` for upstream APIs.

Config keys:
    api_base_url -- base URL for relative request paths
    api_headers  -- mapping of headers sent with every request
    api_timeout  -- seconds (default 10.0)
    environment  -- outside ``"production"`` every outgoing request is
                    logged at DEBUG as a copy-pasteable curl command

Routes with the same ``api_*`` settings share one client, built when the
app compiles. ``App`` closes it on shutdown.

Requires ``httpx``::

    pip install perch[api]
"""

import json
import logging
from collections.abc import Mapping
from typing import Any

from perch.context import RequestContext
from perch.errors import ConfigurationError

logger = logging.getLogger("perch.api_request")

# Headers httpx adds on its own; leaving them out keeps the command short.
_IMPLICIT_HEADERS = frozenset(
    {"host", "accept", "accept-encoding", "connection", "user-agent", "content-length"}
)


def _get_httpx() -> Any:
    try:
        import httpx
    except ImportError:
        msg = "The api_client effect requires 'httpx'. Install it with: pip install perch[api]"
        raise ConfigurationError(msg) from None
    return httpx


def curl_command_for_request(request: Any) -> str:
    """Render an ``httpx.Request`` as a ``curl`` command line for debugging."""
    httpx = _get_httpx()
    parts = ["curl -v"]
    try:
        content = request.content
    except httpx.RequestNotRead:
        content = b""  # streamed body
    if content:
        try:
            data = json.dumps(json.loads(content))
        except ValueError:
            data = content.decode("utf-8", "replace")
        parts.append(f"--data '{data}'")
    else:
        parts.append(f"-X {request.method.upper()}")

    for name, value in request.headers.items():
        if name.lower() not in _IMPLICIT_HEADERS:
            parts.append(f"--header '{name}:{value}'")

    parts.append(str(request.url))
    return " ".join(parts)


async def _log_curl(request: Any) -> None:
    logger.debug(curl_command_for_request(request))


def create_api_client(config: Mapping[str, Any]) -> Any:
    """Build an ``httpx.AsyncClient`` from ``api_*`` config keys."""
    httpx = _get_httpx()
    hooks: dict[str, list[Any]] = {}
    if config.get("environment") != "production":
        hooks["request"] = [_log_curl]
    return httpx.AsyncClient(
        base_url=config.get("api_base_url", ""),
        headers=dict(config.get("api_headers") or {}),
        timeout=config.get("api_timeout", 10.0),
        event_hooks=hooks,
    )


def _client_key(config: Mapping[str, Any]) -> tuple[Any, ...]:
    headers = config.get("api_headers") or {}
    return (
        config.get("api_base_url", ""),
        tuple(sorted((str(name), str(value)) for name, value in headers.items())),
        repr(config.get("api_timeout", 10.0)),
        config.get("environment") == "production",
    )


class _SharedClient:
    __slots__ = ("client", "holders")

    def __init__(self, client: Any) -> None:
        self.client = client
        self.holders = 0


# Live clients by config; an entry is dropped once its last holder closes.
_clients: dict[tuple[Any, ...], _SharedClient] = {}


class ApiClientInstantiator:
    """Hands out the shared client for one route's config.

    ``aclose()`` releases this route's hold; the client itself is closed
    when the last route using it lets go. ``App`` calls it on shutdown.
    """

    __slots__ = ("_key", "_shared", "closed")

    def __init__(self, key: tuple[Any, ...], shared: _SharedClient) -> None:
        self._key = key
        self._shared = shared
        self.closed = False
        shared.holders += 1

    @property
    def client(self) -> Any:
        return self._shared.client

    def __call__(self, ctx: RequestContext) -> Any:
        return self._shared.client

    async def aclose(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._shared.holders -= 1
        if self._shared.holders:
            return
        if _clients.get(self._key) is self._shared:
            del _clients[self._key]
        await self._shared.client.aclose()


def api_client(config: Mapping[str, Any]) -> ApiClientInstantiator:
    """Routes whose ``api_*`` config is the same share one client."""
    key = _client_key(config)
    shared = _clients.get(key)
    if shared is None:
        shared = _clients[key] = _SharedClient(create_api_client(config))
    return ApiClientInstantiator(key, shared)
