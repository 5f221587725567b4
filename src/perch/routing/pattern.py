"""Path patterns — compile ``/foos/:fooId`` into a matcher.

Grammar (one construct per ``/``-separated segment)::

    /foos            static segment
    /:fooId          named parameter, one segment
    /:id(\\d+)        named parameter with a custom regex
    /:page?          optional named parameter
    /*               wildcard, rest of the path (terminal only), key "*"

Matching is case-insensitive, tolerates a trailing slash, and does not
need to consume the whole pathname: ``/foo`` matches ``/foo`` and
``/foo/bar`` but never ``/foobar``. ``PathMatch.exact`` records whether
the pattern's own segments consumed the whole pathname; a wildcard that
swallowed a non-empty remainder counts as a prefix match, so ``/*``
ranks with other catch-alls rather than with exact routes.
"""

import re
from dataclasses import dataclass
from urllib.parse import unquote

from perch.errors import ConfigurationError

WILDCARD = "*"

_PARAM_RE = re.compile(r"^:([A-Za-z_][A-Za-z0-9_]*)(?:\((.+)\))?(\?)?$")
_RESERVED = frozenset(":*()?")


@dataclass(frozen=True, slots=True)
class PatternSegment:
    """A parsed segment of a route pattern.

    Static:   ``foos``        (kind="static")
    Param:    ``:fooId``      (kind="param", name="fooId")
    Custom:   ``:id(\\d+)``    (kind="param", name="id", regex="\\d+")
    Optional: ``:page?``      (kind="param", name="page", optional=True)
    Wildcard: ``*``           (kind="wildcard", name="*")
    """

    value: str
    kind: str = "static"
    name: str | None = None
    regex: str | None = None
    optional: bool = False


@dataclass(frozen=True, slots=True)
class PathMatch:
    """A successful match: captured params and whether the path was fully consumed."""

    params: dict[str, str]
    exact: bool


def parse_pattern(pattern: str) -> list[PatternSegment]:
    """Parse a route pattern into segments.

    Examples::

        "/"                   -> []
        "/foos/:fooId"        -> [static "foos", param "fooId"]
        "/files/*"            -> [static "files", wildcard]

    Raises ``ConfigurationError`` for anything that is not a well-formed
    pattern, including duplicate parameter names.
    """
    if not isinstance(pattern, str):
        msg = f"Route pattern must be a string, got {type(pattern).__name__}."
        raise ConfigurationError(msg)
    if not pattern.startswith("/"):
        msg = f"Route pattern {pattern!r} must start with '/'."
        raise ConfigurationError(msg)

    parts = pattern[1:].split("/")
    segments: list[PatternSegment] = []
    seen: set[str] = set()

    for index, part in enumerate(parts):
        is_last = index == len(parts) - 1
        if not part:
            if is_last:
                continue
            msg = f"Route pattern {pattern!r} contains an empty segment."
            raise ConfigurationError(msg)

        if part == WILDCARD:
            if not is_last:
                msg = f"Route pattern {pattern!r}: '*' is only allowed as the last segment."
                raise ConfigurationError(msg)
            segments.append(PatternSegment(value=part, kind="wildcard", name=WILDCARD))
            continue

        if part.startswith(":"):
            found = _PARAM_RE.match(part)
            if found is None:
                msg = f"Route pattern {pattern!r}: malformed parameter segment {part!r}."
                raise ConfigurationError(msg)
            name, regex, optional = found.groups()
            if name in seen:
                msg = f"Route pattern {pattern!r} captures {name!r} more than once."
                raise ConfigurationError(msg)
            seen.add(name)
            if regex is not None:
                try:
                    re.compile(regex)
                except re.error as exc:
                    msg = f"Route pattern {pattern!r}: invalid regex for {name!r}: {exc}"
                    raise ConfigurationError(msg) from exc
            segments.append(
                PatternSegment(
                    value=part,
                    kind="param",
                    name=name,
                    regex=regex,
                    optional=optional is not None,
                )
            )
            continue

        if _RESERVED.intersection(part):
            msg = (
                f"Route pattern {pattern!r}: static segment {part!r} contains a "
                "reserved character (one of ':', '*', '(', ')', '?')."
            )
            raise ConfigurationError(msg)
        segments.append(PatternSegment(value=part))

    return segments


class PathMatcher:
    """A compiled route pattern.

    Calling it returns the captured params, or ``None`` when the pattern
    does not match (``{}`` means "matched, nothing captured")::

        matcher = compile_pattern("/foos/:fooId")
        matcher("/foos/1")        # {"fooId": "1"}
        matcher("/foos/1/bars")   # {"fooId": "1"}  (prefix match)
        matcher("/bars")          # None
    """

    __slots__ = ("_keys", "_regex", "pattern")

    def __init__(self, pattern: str) -> None:
        segments = parse_pattern(pattern)
        source = ["^"]
        keys: list[str] = []

        for segment in segments:
            if segment.kind == "static":
                source.append("/" + re.escape(segment.value))
                continue
            group = f"_p{len(keys)}"
            keys.append(segment.name or WILDCARD)
            if segment.kind == "wildcard":
                source.append(f"(?:/(?P<{group}>.*))?")
                continue
            body = f"(?:{segment.regex})" if segment.regex else "[^/]+?"
            capture = f"/(?P<{group}>{body})"
            source.append(f"(?:{capture})?" if segment.optional else capture)

        # Non-strict: swallow one trailing slash. Non-end: stop at a segment boundary.
        source.append("(?:/(?=$))?(?=/|$)")

        self.pattern = pattern
        self._keys = tuple(keys)
        self._regex = re.compile("".join(source), re.IGNORECASE)

    @property
    def keys(self) -> tuple[str, ...]:
        """Names of the captured parameters, in pattern order."""
        return self._keys

    def match(self, pathname: str) -> PathMatch | None:
        """Match *pathname*, reporting whether it was consumed entirely."""
        found = self._regex.match(pathname)
        if found is None:
            return None
        params: dict[str, str] = {}
        exact = found.end() == len(pathname)
        for index, key in enumerate(self._keys):
            value = found.group(f"_p{index}")
            if value is None:
                if key == WILDCARD:
                    params[key] = ""
                continue
            if key == WILDCARD and value:
                exact = False
            params[key] = unquote(value)
        return PathMatch(params=params, exact=exact)

    def __call__(self, pathname: str) -> dict[str, str] | None:
        result = self.match(pathname)
        return None if result is None else result.params

    def __repr__(self) -> str:
        return f"PathMatcher({self.pattern!r})"


def compile_pattern(pattern: str) -> PathMatcher:
    """Compile *pattern* into a ``PathMatcher``."""
    return PathMatcher(pattern)
