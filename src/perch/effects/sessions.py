"""The ``session`` effect — signed cookie sessions.

Session data is serialized as JSON and signed with ``itsdangerous``;
it is readable by the client but cannot be forged. The cookie is
(re)written just before the response headers go out, so handlers can
change the session right up until they send.

Config keys:
    session_secret     -- signing key (required)
    session_namespace  -- cookie name suffix: ``perch-<namespace>``
    session_expires_ms -- cookie and signature lifetime (default 24h)
    environment        -- ``"production"`` marks the cookie ``Secure``

Usage::

    def visits(ctx):
        session = ctx.effects["session"]
        session.set("visits", session.get("visits", 0) + 1)
        return {"visits": session.get("visits")}

Requires ``itsdangerous``::

    pip install perch[session]
"""

from collections.abc import Mapping
from typing import Any

from perch.context import RequestContext
from perch.effects.protocol import EffectInstantiator
from perch.errors import ConfigurationError
from perch.http.cookies import SetCookie

DEFAULT_EXPIRES_MS = 24 * 60 * 60 * 1000


class Session:
    """Per-request view over the session data."""

    __slots__ = ("_data", "cookie_path", "modified")

    def __init__(self, data: dict[str, Any]) -> None:
        self._data = data
        self.cookie_path = "/"
        self.modified = False

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self.modified = True

    def delete(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self.modified = True

    def clear(self) -> None:
        """Drop everything (use on login/logout to prevent fixation)."""
        self._data.clear()
        self.modified = True

    def set_cookie_path(self, path: str) -> None:
        self.cookie_path = path
        self.modified = True

    @property
    def data(self) -> dict[str, Any]:
        """A copy of the session contents."""
        return dict(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f"<Session {self._data!r}>"


def session(config: Mapping[str, Any]) -> EffectInstantiator:
    try:
        from itsdangerous import BadSignature, URLSafeTimedSerializer
    except ImportError:
        msg = (
            "The session effect requires the 'itsdangerous' package. "
            "Install it with: pip install perch[session]"
        )
        raise ConfigurationError(msg) from None

    secret = config.get("session_secret")
    if not secret:
        msg = "The session effect needs a non-empty 'session_secret' in config."
        raise ConfigurationError(msg)

    namespace = config.get("session_namespace") or "app"
    cookie_name = f"perch-{namespace}"
    max_age = int(config.get("session_expires_ms", DEFAULT_EXPIRES_MS)) // 1000
    secure = config.get("environment") == "production"
    serializer = URLSafeTimedSerializer(secret, salt=f"{namespace}-session")

    def load(raw: str | None) -> dict[str, Any]:
        if not raw:
            return {}
        try:
            data = serializer.loads(raw, max_age=max_age)
        except BadSignature:
            return {}
        return data if isinstance(data, dict) else {}

    cache_key = f"session:{cookie_name}"

    def instantiate(ctx: RequestContext) -> Session:
        # One session (and one Set-Cookie) per request, even across fall-through.
        existing = ctx.cache.get(cache_key)
        if existing is not None:
            return existing
        current = Session(load(ctx.req.cookies.get(cookie_name)))
        ctx.cache.set(cache_key, current)

        def save(res: Any) -> None:
            res.add_cookie(
                SetCookie(
                    name=cookie_name,
                    value=serializer.dumps(current.data),
                    max_age=max_age,
                    path=current.cookie_path,
                    secure=secure,
                    httponly=True,
                )
            )

        ctx.res.on_headers(save)
        return current

    return instantiate
