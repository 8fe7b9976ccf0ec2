"""
=============================================================================
RESPONSE CONTEXT
=============================================================================

RouterResponse accumulates everything a handler produces and only pushes
it to the transport when end() is called:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      RESPONSE LIFECYCLE                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   created            status = 404, headers = {}, buffer = b""       │
    │      │                                                               │
    │      ▼                                                               │
    │   handlers run       status(), set_header(), send(), send_file()   │
    │      │               (buffer grows, nothing is written yet)         │
    │      ▼                                                               │
    │   end()              Content-Length filled in if missing           │
    │      │               write_head → write_data → end on transport     │
    │      ▼                                                               │
    │   ended              every further mutation raises                  │
    │                      ResponseEndedError                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The status code starts at 404 Not Found and stays there until a handler
sets something else. A handler that calls end() without choosing a
status therefore answers 404.

The `error` slot is set-once. When the dispatcher sees it set it stops
invoking entries and answers 500.

=============================================================================
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.utils import format_datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING, Union
import json
import logging

from ..errors import ResponseEndedError
from .mime_types import DEFAULT_MIME_TYPES, MimeTypes
from .status_codes import DEFAULT_STATUS_PHRASES, HTTPStatus, StatusPhrases

if TYPE_CHECKING:
    from .request import RouterRequest


logger = logging.getLogger(__name__)


HeaderValue = Union[str, List[str]]


def format_http_date(dt: datetime) -> str:
    """RFC 7231 IMF-fixdate: 'Wed, 01 Jan 2026 12:00:00 GMT'"""
    return format_datetime(dt.astimezone(timezone.utc), usegmt=True)


# =============================================================================
# TRANSPORT LAYER
# =============================================================================

class ServerResponse(ABC):
    """
    The transport-side sink for one response.

    RouterResponse calls these exactly once each, in order:
    write_head(), write_data() (only if there is a body), end().
    """

    @abstractmethod
    def write_head(self, status: int, headers: Dict[str, List[str]]) -> None:
        """Record the status code and header block."""

    @abstractmethod
    def write_data(self, data: bytes) -> None:
        """Write body bytes."""

    @abstractmethod
    def end(self) -> None:
        """Finish the response."""


class BufferedServerResponse(ServerResponse):
    """
    In-memory ServerResponse that can serialize itself to HTTP/1.1 bytes.

        HTTP/1.1 200 OK\\r\\n
        Content-Length: 5\\r\\n
        Date: Wed, 01 Jan 2026 ...\\r\\n   ← added if missing
        Server: httprouter/1.0\\r\\n        ← added if missing
        Connection: close\\r\\n
        \\r\\n
        hello
    """

    def __init__(self, server_name: str = "httprouter/1.0"):
        self.server_name = server_name
        self.status: Optional[int] = None
        self.headers: Dict[str, List[str]] = {}
        self.body = bytearray()
        self.finished = False

    def write_head(self, status: int, headers: Dict[str, List[str]]) -> None:
        self.status = int(status)
        self.headers = {name: list(values) for name, values in headers.items()}

    def write_data(self, data: bytes) -> None:
        self.body.extend(data)

    def end(self) -> None:
        self.finished = True

    @property
    def status_line(self) -> str:
        status = self.status if self.status is not None else HTTPStatus.OK
        phrase = DEFAULT_STATUS_PHRASES.phrase_for(status) or "Unknown"
        return f"HTTP/1.1 {status} {phrase}"

    def to_bytes(self) -> bytes:
        """Serialize status line, headers and body for socket.sendall()."""
        headers = dict(self.headers)
        lowered = {name.lower() for name in headers}

        if "content-length" not in lowered:
            headers["Content-Length"] = [str(len(self.body))]
        if "date" not in lowered:
            headers["Date"] = [format_http_date(datetime.now(timezone.utc))]
        if "server" not in lowered:
            headers["Server"] = [self.server_name]
        if "connection" not in lowered:
            headers["Connection"] = ["close"]

        lines = [self.status_line]
        for name, values in headers.items():
            for value in values:
                lines.append(f"{name}: {value}")
        lines.append("")

        return "\r\n".join(lines).encode("utf-8") + b"\r\n" + bytes(self.body)


# =============================================================================
# ROUTER LAYER
# =============================================================================

class RouterResponse:
    """
    The response as built by handlers.

    Mutators return self so calls can be chained:

        response.status(HTTPStatus.OK).set_header("X-Id", "7").end("hello")

    Args:
        response: Transport sink that receives the flushed response.
        request: The request being answered; used to resolve
            redirect("back") against its Referer header.
        mime_types: Extension table for send_file() / send_json().
        status_phrases: Reason phrases for send_status().
    """

    def __init__(
        self,
        response: ServerResponse,
        request: Optional["RouterRequest"] = None,
        mime_types: MimeTypes = DEFAULT_MIME_TYPES,
        status_phrases: StatusPhrases = DEFAULT_STATUS_PHRASES,
    ):
        self.server_response = response
        self.request = request
        self.mime_types = mime_types
        self.status_phrases = status_phrases

        self._status: int = HTTPStatus.NOT_FOUND
        self._headers: Dict[str, List[str]] = {}
        self._buffer = bytearray()
        self._error: Optional[BaseException] = None
        self._ended = False
        self._end_listeners: List[Callable[["RouterResponse"], None]] = []

    def __repr__(self) -> str:
        state = "ended" if self._ended else "open"
        return f"<RouterResponse {self._status} {state}>"

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def ended(self) -> bool:
        return self._ended

    @property
    def status_code(self) -> int:
        return self._status

    @property
    def body(self) -> bytes:
        """Bytes buffered (or flushed) so far."""
        return bytes(self._buffer)

    @property
    def headers(self) -> Dict[str, List[str]]:
        """Copy of the header mapping; use set_header() to change it."""
        return {name: list(values) for name, values in self._headers.items()}

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    @error.setter
    def error(self, error: Optional[BaseException]) -> None:
        # Set-once: the first fault is the one reported.
        if error is None:
            return
        if self._error is not None:
            logger.debug("Ignoring additional error %r; already failed with %r", error, self._error)
            return
        if not isinstance(error, BaseException):
            # Plain values (a message string, say) still fail the request.
            error = RuntimeError(str(error))
        self._error = error

    def on_end(self, listener: Callable[["RouterResponse"], None]) -> None:
        """Call `listener(response)` once the response has been flushed."""
        self._end_listeners.append(listener)

    def _check_open(self, operation: str) -> None:
        if self._ended:
            raise ResponseEndedError(operation)

    # =========================================================================
    # STATUS
    # =========================================================================

    def status(self, code: Union[int, HTTPStatus]) -> "RouterResponse":
        """Set the status code."""
        self._check_open("set status")
        self._status = int(code)
        return self

    def send_status(self, code: Union[int, HTTPStatus]) -> "RouterResponse":
        """
        Set the status and send its reason phrase as the body.

            response.send_status(404)   # body "Not Found"
            response.send_status(299)   # body "299" (no known phrase)

        Does not end the response.
        """
        self.status(code)
        phrase = self.status_phrases.phrase_for(code)
        return self.send(phrase if phrase is not None else str(int(code)))

    # =========================================================================
    # HEADERS
    # =========================================================================

    def set_header(self, name: str, value: HeaderValue) -> "RouterResponse":
        """Set (replace) a header. A list sets a multi-valued header."""
        self._check_open("set header")
        self._headers[name] = [value] if isinstance(value, str) else list(value)
        return self

    def append_header(self, name: str, value: str) -> "RouterResponse":
        """Add one more value to a (possibly new) header."""
        self._check_open("append header")
        self._headers.setdefault(name, []).append(value)
        return self

    def get_header(self, name: str) -> Optional[str]:
        """First value of a header, or None. Names are case-sensitive."""
        values = self._headers.get(name)
        return values[0] if values else None

    def get_headers(self, name: str) -> Optional[List[str]]:
        """All values of a header, or None."""
        values = self._headers.get(name)
        return list(values) if values is not None else None

    def remove_header(self, name: str) -> "RouterResponse":
        self._check_open("remove header")
        self._headers.pop(name, None)
        return self

    # =========================================================================
    # BODY
    # =========================================================================

    def send(self, content: Union[str, bytes]) -> "RouterResponse":
        """Append text (UTF-8 encoded) or bytes to the buffer."""
        self._check_open("send")
        if isinstance(content, str):
            content = content.encode("utf-8")
        self._buffer.extend(content)
        return self

    def send_data(self, data: bytes) -> "RouterResponse":
        return self.send(data)

    def send_json(self, value: Any) -> "RouterResponse":
        """Serialize `value` as JSON and set the JSON Content-Type."""
        self._check_open("send json")
        content_type = self.mime_types.content_type_for_extension("json")
        self.set_header("Content-Type", self.mime_types.with_charset(content_type))
        return self.send(json.dumps(value))

    def send_file(self, file_name: Union[str, Path]) -> "RouterResponse":
        """
        Append a file's contents to the buffer.

        Content-Type is derived from the file extension; unknown
        extensions leave the header untouched. A relative path is
        relative to the current working directory.

        Does not end the response.

        Raises:
            OSError: If the file cannot be read. Not converted to a 500
                here; the caller (or the dispatcher, if uncaught) decides.
        """
        self._check_open("send file")
        path = Path(file_name)
        data = path.read_bytes()

        content_type = self.mime_types.content_type_for_path(path)
        if content_type is not None:
            self.set_header("Content-Type", content_type)

        self._buffer.extend(data)
        return self

    # =========================================================================
    # REDIRECTS
    # =========================================================================

    def location(self, path: str) -> "RouterResponse":
        """
        Set the Location header.

        The special value "back" resolves to the request's Referer header,
        or "/" when there is none.
        """
        if path == "back":
            referer = None
            if self.request is not None:
                referer = self.request.get_header("Referer") or self.request.get_header("Referrer")
            path = referer or "/"
        return self.set_header("Location", path)

    def redirect(
        self,
        path: str,
        status: Union[int, HTTPStatus] = HTTPStatus.MOVED_TEMPORARILY,
    ) -> "RouterResponse":
        """Set status and Location, then end with an empty body."""
        return self.status(status).location(path).end()

    # =========================================================================
    # ENDING
    # =========================================================================

    def end(self, content: Union[str, bytes, None] = None) -> "RouterResponse":
        """
        Flush the response to the transport and mark it ended.

        With `content`, behaves like send(content) followed by end().
        If the buffer is non-empty and no Content-Length header was set,
        one is computed from the buffer length.
        """
        if content is not None:
            self.send(content)
        self._check_open("end")

        if self._buffer and self.get_header("Content-Length") is None:
            self.set_header("Content-Length", str(len(self._buffer)))

        # Mark ended before touching the transport so a failing write can
        # never let a second end() through.
        self._ended = True
        self.server_response.write_head(self._status, self._headers)
        if self._buffer:
            self.server_response.write_data(bytes(self._buffer))
        self.server_response.end()
        for listener in self._end_listeners:
            listener(self)
        return self
