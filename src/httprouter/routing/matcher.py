"""
=============================================================================
METHOD / PATTERN MATCHER
=============================================================================

Pure functions deciding whether a route entry applies to a request, and
which path parameters it binds.

=============================================================================
PATTERN SYNTAX
=============================================================================

    /users              literal segments, exact match
    /users/:id          :name binds exactly one segment → {"id": "42"}
    /static/*filepath   *name binds the rest of the path (last segment only)
                        → {"filepath": "css/site.css"}

=============================================================================
HANDLER ROUTES vs. MIDDLEWARE ROUTES
=============================================================================

The same pattern is compiled two ways, depending on how it was registered:

    ┌──────────────────────┬──────────────┬───────────────────────────────┐
    │ registration         │ mode         │ "/users/:id" matches          │
    ├──────────────────────┼──────────────┼───────────────────────────────┤
    │ get/post/put/        │ EXACT        │ /users/42                     │
    │ delete/all(path, h)  │              │ NOT /users/42/posts           │
    ├──────────────────────┼──────────────┼───────────────────────────────┤
    │ use(path, mw)        │ PREFIX       │ /users/42                     │
    │                      │              │ /users/42/posts/7             │
    │                      │              │ NOT /users/42abc              │
    └──────────────────────┴──────────────┴───────────────────────────────┘

PREFIX matching happens on segment boundaries: use("/api") covers "/api"
and "/api/v1/users" but not "/apiary".

Paths are compared after normalization (leading slash, no trailing slash),
so "/users/" and "/users" are the same path.

Requests are matched on their canonical path (see match_path()), where an
encoded "/" (%2F) stays inside its segment. Bound values are decoded:
"/files/a%2Fb" against "/files/:name" gives {"name": "a/b"}.

No pattern at all matches every path, in either mode.

=============================================================================
METHOD FILTER
=============================================================================

    ALL      matches any request method (ALL is never a request method)
    GET ...  case-insensitive equality with the request method

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple
from urllib.parse import unquote
import re

from ..http.request import normalize_path


_PARAM_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class RouterMethod(Enum):
    """Method filter of a route entry."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    ALL = "ALL"

    @classmethod
    def from_string(cls, method: str) -> "RouterMethod":
        """'get' → RouterMethod.GET; raises ValueError for unknown methods."""
        try:
            return cls(method.upper())
        except ValueError:
            raise ValueError(f"Unsupported route method: {method!r}") from None

    def accepts(self, request_method: str) -> bool:
        if self is RouterMethod.ALL:
            return True
        return self.value == request_method.upper()


class MatchMode(Enum):
    EXACT = "exact"       # handler routes
    PREFIX = "prefix"     # use(path, mw): the path and everything beneath it


@dataclass(frozen=True)
class PathPattern:
    """
    A compiled path pattern.

        PathPattern.compile("/users/:id").match("/users/42")   # {"id": "42"}
        PathPattern.compile("/users/:id").match("/users")      # None
        PathPattern.compile("/api", MatchMode.PREFIX).match("/api/v1")  # {}
    """

    source: str
    mode: MatchMode
    regex: "re.Pattern[str]" = field(repr=False, compare=False)
    param_names: Tuple[str, ...] = ()

    @classmethod
    def compile(cls, pattern: str, mode: MatchMode = MatchMode.EXACT) -> "PathPattern":
        """
        Compile a pattern into an anchored regex.

            "/users/:id/posts/:post_id"
                 │     │         │
                 ▼     ▼         ▼
            ^/users/(?P<id>[^/]+)/posts/(?P<post_id>[^/]+)$

        PREFIX mode swaps the final "$" for "(?:/.*)?$".

        Raises:
            ValueError: On an invalid or duplicated parameter name, or a
                wildcard that is not the last segment.
        """
        param_names = []
        parts = []

        segments = [segment for segment in pattern.split("/") if segment]
        for position, segment in enumerate(segments):
            parts.append("/")

            if segment.startswith(":"):
                name = cls._check_param(segment[1:], param_names, pattern)
                parts.append(f"(?P<{name}>[^/]+)")

            elif segment.startswith("*"):
                if position != len(segments) - 1:
                    raise ValueError(f"Wildcard must be the last segment in {pattern!r}")
                name = cls._check_param(segment[1:] or "wildcard", param_names, pattern)
                parts.append(f"(?P<{name}>.*)")

            else:
                # Literal "%" is escaped the way match_path() escapes it.
                parts.append(re.escape(segment.replace("%", "%25")))

        body = "".join(parts)
        if mode is MatchMode.EXACT:
            regex = "^" + (body or "/") + "$"
        elif body:
            regex = "^" + body + "(?:/.*)?$"
        else:
            regex = "^/.*$"

        return cls(
            source=pattern,
            mode=mode,
            regex=re.compile(regex),
            param_names=tuple(param_names),
        )

    @staticmethod
    def _check_param(name: str, seen: list, pattern: str) -> str:
        if not _PARAM_NAME.match(name):
            raise ValueError(f"Invalid parameter name {name!r} in {pattern!r}")
        if name in seen:
            raise ValueError(f"Duplicate parameter name {name!r} in {pattern!r}")
        seen.append(name)
        return name

    def match(self, path: str) -> Optional[Dict[str, str]]:
        """Return bound parameters ({} if none) or None when the path does not match."""
        found = self.regex.match(normalize_path(path))
        if found is None:
            return None
        return {name: unquote(value) for name, value in found.groupdict().items()}


def matches(
    entry_method: RouterMethod,
    entry_pattern: Optional[PathPattern],
    request_method: str,
    request_path: str,
) -> Optional[Dict[str, str]]:
    """
    Decide whether an entry applies to a request.

    Returns None for no match, otherwise the (possibly empty) dict of path
    parameters. Test with `is not None`: an empty dict is a match.
    """
    if not entry_method.accepts(request_method):
        return None
    if entry_pattern is None:
        return {}
    return entry_pattern.match(request_path)
