"""
=============================================================================
HTTPROUTER - Ordered Middleware/Handler Router
=============================================================================

An Express-style request router: one ordered list of
(method, path pattern, action) entries, walked front to back for every
request. Middleware and handlers are the same thing, an action that may
end the response or call next() to pass the request on.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    httprouter/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m httprouter)
    ├── router.py            # Router: registration surface + entry point
    ├── server.py            # RouterServer: threaded socketserver front end
    ├── config.py            # RouterConfig dataclass
    ├── errors.py            # RouterError hierarchy
    ├── routing/
    │   ├── matcher.py       # Method filter + path pattern matching
    │   ├── table.py         # Ordered route table
    │   └── dispatcher.py    # The next() chain
    ├── http/
    │   ├── request.py       # ServerRequest, RequestParser, RouterRequest
    │   ├── response.py      # ServerResponse, RouterResponse
    │   ├── status_codes.py  # HTTPStatus + reason phrases
    │   └── mime_types.py    # Extension → Content-Type
    └── middleware/
        ├── base.py          # Middleware ABC, FunctionMiddleware
        ├── body_parser.py   # JSON / urlencoded / text body decoding
        ├── static.py        # Static file serving
        └── logging.py       # Access log

=============================================================================
QUICK START
=============================================================================

    from httprouter import Router, RouterServer
    from httprouter.middleware import BodyParser

    router = Router()
    router.use(BodyParser())

    @router.get("/users/:id")
    def get_user(request, response, next):
        response.status(200).send_json({"id": request.params["id"]}).end()

    RouterServer(router).run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import RouterConfig
from .errors import BodyAlreadyParsedError, ResponseEndedError, RouteTableFrozenError, RouterError
from .http.request import RouterRequest
from .http.response import RouterResponse
from .http.status_codes import HTTPStatus
from .router import Router
from .server import RouterServer

__all__ = [
    "Router",
    "RouterServer",
    "RouterConfig",
    "RouterRequest",
    "RouterResponse",
    "HTTPStatus",
    "RouterError",
    "ResponseEndedError",
    "BodyAlreadyParsedError",
    "RouteTableFrozenError",
    "__version__",
]
