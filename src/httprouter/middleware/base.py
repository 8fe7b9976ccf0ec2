"""
=============================================================================
BASE MIDDLEWARE INTERFACE
=============================================================================

Every route action, handler or middleware, has the same shape:

    def action(request: RouterRequest, response: RouterResponse, next: Next) -> None

An action can:

    1. Inspect or mutate the request / response
    2. End the response (response.end(...)) and NOT call next()
       → the chain stops here
    3. Call next()
       → the dispatcher moves on to the next matching entry
    4. Raise
       → the fault is recorded on response.error, later entries are
         skipped, and the client gets a 500

=============================================================================
CHAIN OF RESPONSIBILITY, FLATTENED
=============================================================================

Unlike an onion-style pipeline, next() returns nothing and carries no
request argument. The dispatcher owns the position in the chain; next()
only says "I am done, advance":

    ┌──────────┐   next()   ┌──────────┐   next()   ┌──────────┐
    │ use(mw1) │ ─────────► │ use(mw2) │ ─────────► │ get("/") │ ──► end()
    └──────────┘            └──────────┘            └──────────┘

next() only schedules the step; the dispatcher takes it once the current
action returns. Code written after next() therefore runs BEFORE any later
entry, so it cannot post-process what a later handler sends.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional
import logging

from ..http.request import RouterRequest
from ..http.response import RouterResponse


logger = logging.getLogger(__name__)


# =============================================================================
# TYPE ALIASES
# =============================================================================

# The continuation handed to every action. Calling it advances the chain.
Next = Callable[[], None]

# Anything the router can register: plain function or Middleware instance.
Action = Callable[[RouterRequest, RouterResponse, Next], None]


class Middleware(ABC):
    """
    Abstract base class for class-based middleware.

        class RequireJSON(Middleware):
            def __call__(self, request, response, next):
                if request.content_type != "application/json":
                    response.send_status(HTTPStatus.UNSUPPORTED_MEDIA_TYPE).end()
                    return                 # short-circuit
                next()                     # continue the chain

        router.use("/api", RequireJSON())
    """

    @abstractmethod
    def __call__(self, request: RouterRequest, response: RouterResponse, next: Next) -> None:
        """
        Process the request.

        Either end the response, call next(), or raise.
        """

    @property
    def name(self) -> str:
        """Middleware name for logging."""
        return self.__class__.__name__


class FunctionMiddleware(Middleware):
    """
    Wraps a plain function as Middleware, mostly to give it a name.

        def add_request_id(request, response, next):
            response.set_header("X-Request-ID", new_id())
            next()

        router.use(FunctionMiddleware(add_request_id, name="request-id"))
    """

    def __init__(self, func: Action, name: Optional[str] = None):
        self._func = func
        self._name = name or getattr(func, "__name__", type(func).__name__)

    def __call__(self, request: RouterRequest, response: RouterResponse, next: Next) -> None:
        self._func(request, response, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(func: Action) -> FunctionMiddleware:
    """Decorator form of FunctionMiddleware."""
    return FunctionMiddleware(func)


def action_name(action: Action) -> str:
    """Best-effort display name for a registered action."""
    if isinstance(action, Middleware):
        return action.name
    return getattr(action, "__name__", type(action).__name__)
