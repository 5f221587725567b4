"""Effects — request-scoped resources built from config and context.

Built-in effects (each is an ``EffectBuilder``):
    api_client -- httpx.AsyncClient configured from ``api_*`` keys (requires httpx)
    logger -- JSON logger at ``log_level``
    session -- Signed cookie session (requires itsdangerous)
"""

from perch.effects.protocol import EffectBuilder, EffectInstantiator
from perch.effects.resolver import configure_effects, resolve_effects

__all__ = [
    "EffectBuilder",
    "EffectInstantiator",
    "api_client",
    "configure_effects",
    "logger",
    "resolve_effects",
    "session",
]


def __getattr__(name: str) -> object:
    """Lazy imports so optional dependencies load only when used."""
    if name == "api_client":
        from perch.effects.api import api_client

        return api_client

    if name == "logger":
        from perch.effects.log import logger

        return logger

    if name == "session":
        from perch.effects.sessions import session

        return session

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
