"""
Middleware: actions meant to be registered with Router.use().

    from httprouter.middleware import BodyParser, StaticFileMiddleware

    router.use(BodyParser())
    router.use("/static", StaticFileMiddleware("./public"))
"""

from .base import Action, FunctionMiddleware, Middleware, Next, action_name, function_middleware
from .body_parser import BodyKind, BodyParser, ParsedBody, read_body_data
from .logging import AccessLog, RequestLog
from .static import StaticFileMiddleware

__all__ = [
    "Action",
    "Next",
    "Middleware",
    "FunctionMiddleware",
    "function_middleware",
    "action_name",
    "BodyParser",
    "BodyKind",
    "ParsedBody",
    "read_body_data",
    "AccessLog",
    "RequestLog",
    "StaticFileMiddleware",
]
