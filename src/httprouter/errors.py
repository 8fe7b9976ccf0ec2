"""
=============================================================================
ROUTER ERRORS
=============================================================================

Exception types raised by the routing core.

    RouterError
    ├── ResponseEndedError       write attempted after response.end()
    ├── RouteTableFrozenError    route registered once serving has begun
    └── BodyAlreadyParsedError   second parsed body attached to a request

Handler faults are NOT modelled here: any exception a handler raises is
caught by the dispatcher and recorded on the response's error slot, which
turns into a 500 at the end of the chain.

Body decoding failures are never raised either. A body that cannot be
decoded for its declared Content-Type simply leaves request.body as None.
=============================================================================
"""


class RouterError(Exception):
    """Base class for errors raised by the routing core."""


class ResponseEndedError(RouterError):
    """
    Raised when a handler writes to a response that has already ended.

    Once end() has flushed the buffer to the transport, status, headers
    and body are frozen. Any further mutation is rejected with this error.
    """

    def __init__(self, operation: str):
        super().__init__(f"Cannot {operation}: response has already ended")
        self.operation = operation


class BodyAlreadyParsedError(RouterError):
    """Raised when a parsed body is attached to a request twice."""


class RouteTableFrozenError(RouterError):
    """Raised when a route is registered after the table was frozen for serving."""
