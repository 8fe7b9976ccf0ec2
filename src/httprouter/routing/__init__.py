"""Route matching, the route table and the dispatcher."""

from .dispatcher import DispatchState, Dispatcher
from .matcher import MatchMode, PathPattern, RouterMethod, matches
from .table import ActionKind, RouteEntry, RouteTable

__all__ = [
    "RouterMethod",
    "MatchMode",
    "PathPattern",
    "matches",
    "ActionKind",
    "RouteEntry",
    "RouteTable",
    "Dispatcher",
    "DispatchState",
]
