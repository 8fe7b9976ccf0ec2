"""
=============================================================================
DISPATCHER
=============================================================================

Walks the route table for one request, invoking every matching entry in
registration order until someone ends the response, an error is
recorded, or the table runs out.

=============================================================================
STATE MACHINE
=============================================================================

Per-request state lives in DispatchState (index starts at -1). Each time
the chain advances:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   1. index += 1                                                      │
    │                                                                      │
    │   2. index < N  and  response.error is None ?                        │
    │        │                                                             │
    │        ├── yes: entry = table[index]                                 │
    │        │        ├── no match  → advance again (no side effects)      │
    │        │        └── match     → bind params, call                    │
    │        │                        action(request, response, next)      │
    │        │                        ├── called next()  → advance         │
    │        │                        ├── raised / set error → advance     │
    │        │                        ├── ended it           → finished     │
    │        │                        └── neither        → park            │
    │        │                                                             │
    │        └── no:  TERMINATE                                            │
    │                 ├── error recorded   → 500 "Server error: ..."       │
    │                 ├── nobody ended it  → 404 "Not Found"               │
    │                 └── otherwise        → nothing left to do            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The error check comes before the not-found check, so a fault always wins
over "unhandled".

=============================================================================
TRAMPOLINE, NOT RECURSION
=============================================================================

next() does not call the following action itself. It flags the state as
"advance pending" and returns; the loop in _advance() picks the flag up
once the current action has returned. Python's call depth stays constant
no matter how many entries match.

A parked chain (action returned without calling next and without ending)
resumes when its continuation is finally called, e.g. from a callback
that finishes some deferred work. If it is never called the request
simply stays open: there is no timeout at this level.

Each continuation belongs to the step that received it. Calling it a
second time, or after the chain terminated, is ignored with a warning,
so no entry can ever run twice for one request.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import List, Set, Tuple
import logging
import threading

from ..errors import RouterError
from ..http.request import RouterRequest
from ..http.response import RouterResponse
from ..http.status_codes import HTTPStatus
from ..middleware.base import Next
from .table import RouteEntry, RouteTable


logger = logging.getLogger(__name__)


@dataclass
class DispatchState:
    """
    Mutable state of one dispatch.

    Owned by exactly one request; passed explicitly to every step rather
    than captured by closures.

    Attributes:
        entries: Table snapshot taken when dispatch started.
        index: Position of the entry most recently considered (-1 before
            the first step, len(entries) once the scan ran off the end).
        handled: True once an invoked action left the response ended.
        finished: True once the chain is over: an action ended the
            response without advancing, or termination ran.
        invoked: Indices of the entries whose actions were called, in order.
    """

    entries: Tuple[RouteEntry, ...]
    index: int = -1
    handled: bool = False
    finished: bool = False
    invoked: List[int] = field(default_factory=list)

    _pending: bool = field(default=False, repr=False)
    _running: bool = field(default=False, repr=False)
    _continued: Set[int] = field(default_factory=set, repr=False)
    # Guards _pending/_running/_continued: a parked chain may be resumed
    # from another thread while the loop is still winding down.
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def parked(self) -> bool:
        """Waiting on a continuation that has not been called yet."""
        return not self.finished and not self._running


def _describe_error(error: BaseException) -> str:
    return str(error) or type(error).__name__


class Dispatcher:
    """
    The continuation-chain engine.

        dispatcher = Dispatcher(table)
        state = dispatcher.dispatch(request, response)
        state.finished   # False only if some action parked the chain

    Args:
        table: Route table to walk. Read-only during dispatch.
        expose_errors: Include the fault message in 500 bodies.
    """

    def __init__(self, table: RouteTable, expose_errors: bool = True):
        self.table = table
        self.expose_errors = expose_errors

    def dispatch(self, request: RouterRequest, response: RouterResponse) -> DispatchState:
        """Run the chain for one request/response pair."""
        state = DispatchState(entries=self.table.entries())
        self._advance(state, request, response)
        return state

    # =========================================================================
    # LOOP
    # =========================================================================

    def _advance(self, state: DispatchState, request: RouterRequest, response: RouterResponse) -> None:
        with state._lock:
            state._pending = True
            if state._running:
                # Called from inside an action, or while the loop is still
                # unwinding: the running loop picks the flag up.
                return
            state._running = True

        try:
            while True:
                # Check and release under one lock, so a next() arriving
                # from another thread either sees _running still set and
                # its flag is read here, or sees it cleared and runs the
                # loop itself.
                with state._lock:
                    if not state._pending or state.finished:
                        state._running = False
                        return
                    state._pending = False
                    state.index += 1

                if state.index < len(state.entries) and response.error is None:
                    self._step(state, request, response)
                else:
                    self._terminate(state, request, response)
        except BaseException:
            with state._lock:
                state._running = False
            raise

    def _step(self, state: DispatchState, request: RouterRequest, response: RouterResponse) -> None:
        entry = state.entries[state.index]

        params = entry.matches(request.method, request.match_path)
        if params is None:
            with state._lock:
                state._pending = True
            return

        # Overwrite, never merge: only patterns that bind names replace params.
        if entry.pattern is not None and entry.pattern.param_names:
            request.params = params
        request.route = entry.path
        state.invoked.append(state.index)

        try:
            entry.action(request, response, self._continuation(state, state.index, request, response))
        except Exception as e:
            logger.debug("Entry %d (%s) raised %r", state.index, entry.name, e)
            response.error = e

        with state._lock:
            if response.ended:
                state.handled = True
            if response.error is not None:
                # Skip straight to termination; no later entry may run.
                state._pending = True
            elif response.ended and not state._pending:
                # Answered without advancing: the normal end of a chain.
                state.finished = True

    def _continuation(
        self,
        state: DispatchState,
        step: int,
        request: RouterRequest,
        response: RouterResponse,
    ) -> Next:
        def next() -> None:
            with state._lock:
                stale = state.finished or step in state._continued or step != state.index
                if not stale:
                    state._continued.add(step)
            if stale:
                logger.warning(
                    "Ignoring next() from entry %d for %s %s: chain already advanced",
                    step, request.method, request.original_url,
                )
                return
            self._advance(state, request, response)

        return next

    # =========================================================================
    # TERMINATION
    # =========================================================================

    def _terminate(self, state: DispatchState, request: RouterRequest, response: RouterResponse) -> None:
        state.finished = True
        state.handled = state.handled or response.ended

        if response.error is not None:
            error = response.error
            message = "Server error"
            if self.expose_errors:
                message = f"Server error: {_describe_error(error)}"
            exc_info = None
            if isinstance(error, BaseException):
                exc_info = (type(error), error, error.__traceback__)
            logger.error("%s (%s %s)", message, request.method, request.original_url, exc_info=exc_info)
            self._write_terminal(request, lambda: response.status(HTTPStatus.INTERNAL_SERVER_ERROR).end(message))

        elif not state.handled:
            logger.debug("No route handled %s %s", request.method, request.original_url)
            self._write_terminal(request, lambda: response.send_status(HTTPStatus.NOT_FOUND).end())

    @staticmethod
    def _write_terminal(request: RouterRequest, write) -> None:
        # Best effort: a failure here is reported, never retried.
        try:
            write()
        except Exception as e:
            logger.warning("Could not write final response for %s %s: %s",
                           request.method, request.original_url, e,
                           exc_info=not isinstance(e, RouterError))
