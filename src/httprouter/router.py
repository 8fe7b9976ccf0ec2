"""
=============================================================================
ROUTER
=============================================================================

The registration surface and the request entry point.

=============================================================================
REGISTRATION
=============================================================================

Every registration appends one entry to the route table. Order of
registration is order of evaluation; nothing is sorted by specificity.

    router = Router()

    router.use(BodyParser())                      # every request
    router.use("/admin", require_login)           # /admin and below
    router.get("/", home)                         # exactly "/"
    router.post("/users", create_user)
    router.all("/ping", pong)                     # any method

    @router.get("/users/:id")                     # decorator form
    def get_user(request, response, next):
        response.status(200).send_json({"id": request.params["id"]}).end()

Handler routes (all/get/post/put/delete) match the path exactly;
use() matches the path and everything beneath it. Leaving the path out
matches every path.

=============================================================================
REQUEST FLOW
=============================================================================

    server ──► handle_request(server_request, server_response)
                  │
                  ├── wrap: RouterRequest / RouterResponse
                  ├── start access log record
                  └── Dispatcher.dispatch()  ──► entries in order
                                                   │
                       unhandled → 404 ◄───────────┤
                       fault     → 500 ◄───────────┘

=============================================================================
"""

import logging
from typing import Callable, List, Optional, Union

from .config import RouterConfig
from .http.mime_types import DEFAULT_MIME_TYPES, MimeTypes
from .http.request import RouterRequest, ServerRequest
from .http.response import RouterResponse, ServerResponse
from .http.status_codes import DEFAULT_STATUS_PHRASES, StatusPhrases
from .middleware.base import Action
from .middleware.logging import AccessLog
from .routing.dispatcher import DispatchState, Dispatcher
from .routing.matcher import MatchMode, PathPattern, RouterMethod
from .routing.table import ActionKind, RouteEntry, RouteTable


logger = logging.getLogger(__name__)

PathOrAction = Union[str, Action, None]


class Router:
    """
    Ordered route table plus the dispatcher that walks it.

    Args:
        config: Router settings; defaults to RouterConfig().
        mime_types: Extension table handed to every RouterResponse.
        status_phrases: Reason phrases handed to every RouterResponse.
        log_requests: Write one access log line per flushed response.
    """

    def __init__(
        self,
        config: Optional[RouterConfig] = None,
        mime_types: MimeTypes = DEFAULT_MIME_TYPES,
        status_phrases: StatusPhrases = DEFAULT_STATUS_PHRASES,
        log_requests: bool = True,
    ):
        self.config = config or RouterConfig()
        self.mime_types = mime_types
        self.status_phrases = status_phrases
        self.table = RouteTable()
        self.dispatcher = Dispatcher(self.table, expose_errors=self.config.expose_errors)
        self.access_log: Optional[AccessLog] = (
            AccessLog(log_format=self.config.log_format) if log_requests else None
        )
        logger.debug("Router initialized")

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def register(
        self,
        method: Union[str, RouterMethod],
        path: Optional[str],
        action: Action,
        kind: ActionKind = ActionKind.HANDLER,
    ) -> RouteEntry:
        """
        Append one entry to the route table.

        Handlers get an exact-match pattern, middleware a prefix pattern.

        Raises:
            ValueError: Unknown method or invalid pattern.
            RouteTableFrozenError: After freeze().
        """
        if not isinstance(method, RouterMethod):
            method = RouterMethod.from_string(method)
        if not callable(action):
            raise TypeError(f"Route action must be callable, got {action!r}")

        pattern = None
        if path is not None:
            mode = MatchMode.PREFIX if kind is ActionKind.MIDDLEWARE else MatchMode.EXACT
            pattern = PathPattern.compile(path, mode)

        return self.table.register(RouteEntry(method, pattern, action, kind))

    def route(
        self,
        method: Union[str, RouterMethod],
        path: PathOrAction = None,
        action: Optional[Action] = None,
        kind: ActionKind = ActionKind.HANDLER,
    ):
        """
        Register `action`, or return a decorator that does.

            router.route("GET", "/", home)        # returns the router
            @router.route("GET", "/")             # returns home unchanged
            def home(request, response, next): ...

        A callable in the `path` position is taken as the action with no
        path.
        """
        if callable(path) and action is None:
            path, action = None, path

        if action is not None:
            self.register(method, path, action, kind)
            return self

        def decorator(func: Action) -> Action:
            self.register(method, path, func, kind)
            return func

        return decorator

    def all(self, path: PathOrAction = None, handler: Optional[Action] = None):
        """Register a handler for every method."""
        return self.route(RouterMethod.ALL, path, handler)

    def get(self, path: PathOrAction = None, handler: Optional[Action] = None):
        return self.route(RouterMethod.GET, path, handler)

    def post(self, path: PathOrAction = None, handler: Optional[Action] = None):
        return self.route(RouterMethod.POST, path, handler)

    def put(self, path: PathOrAction = None, handler: Optional[Action] = None):
        return self.route(RouterMethod.PUT, path, handler)

    def delete(self, path: PathOrAction = None, handler: Optional[Action] = None):
        return self.route(RouterMethod.DELETE, path, handler)

    def use(self, path: PathOrAction = None, middleware: Optional[Action] = None):
        """
        Register middleware for every method, on a path prefix or everywhere.

            router.use(BodyParser())
            router.use("/api", auth)
        """
        return self.route(RouterMethod.ALL, path, middleware, ActionKind.MIDDLEWARE)

    def freeze(self) -> None:
        """Reject further registrations; call once setup is complete."""
        self.table.freeze()

    # =========================================================================
    # SERVING
    # =========================================================================

    def handle_request(
        self,
        server_request: ServerRequest,
        server_response: ServerResponse,
    ) -> DispatchState:
        """
        Run one request through the route table.

        Returns the DispatchState; `state.finished` is False only while
        some action holds on to an uncalled next().
        """
        request = RouterRequest(server_request)
        response = RouterResponse(
            server_response,
            request=request,
            mime_types=self.mime_types,
            status_phrases=self.status_phrases,
        )

        if self.access_log is not None:
            response.on_end(self.access_log.start(request).finish)

        state = self.dispatcher.dispatch(request, response)
        if state.parked:
            logger.debug("Chain parked at entry %d for %s %s", state.index, request.method, request.original_url)
        return state

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def routes(self) -> List[RouteEntry]:
        return list(self.table.entries())

    def print_routes(self, write: Callable[[str], None] = print) -> None:
        """
        Print the route table in evaluation order.

            Registered Routes:
            ------------------------------------------------------------
              0  ALL     /api                           middleware auth
              1  GET     /users/:id                     handler    get_user
            ------------------------------------------------------------
        """
        write("\nRegistered Routes:")
        write("-" * 60)
        for index, entry in enumerate(self.table):
            write(f"  {index:<2} {entry.describe()}")
        write("-" * 60)
