"""
=============================================================================
REQUEST CONTEXT
=============================================================================

Two layers live in this module:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ TRANSPORT LAYER                                                     │
    │ ─────────────────────────────────────────────────────────────────── │
    │ ServerRequest      what the socket side hands us: method, raw URL,  │
    │                    headers, and a chunked body reader               │
    │ IncomingRequest    in-memory ServerRequest (parser output, tests)   │
    │ RequestParser      raw HTTP/1.1 bytes → IncomingRequest             │
    └─────────────────────────────────────────────────────────────────────┘
                                   │
                                   ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │ ROUTER LAYER                                                        │
    │ ─────────────────────────────────────────────────────────────────── │
    │ RouterRequest      what handlers see: method, normalized path,      │
    │                    query params, path params, user_info, and the    │
    │                    write-once parsed body slot                      │
    └─────────────────────────────────────────────────────────────────────┘

Header names are kept exactly as received ("Content-Type" and
"content-type" are different keys). Repeated headers are joined with ", ".

=============================================================================
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, TYPE_CHECKING
from urllib.parse import parse_qs, unquote, urlsplit
import re

from ..errors import BodyAlreadyParsedError

if TYPE_CHECKING:
    from ..middleware.body_parser import ParsedBody


DEFAULT_CHUNK_SIZE = 2000


class HTTPParseError(Exception):
    """
    Raised when a raw HTTP request cannot be parsed.

    Carries the status code the transport should answer with:

        400 Bad Request                - Malformed request syntax
        405 Method Not Allowed         - Unknown method token
        413 Payload Too Large          - Request exceeds size limit
        505 HTTP Version Not Supported - Unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def normalize_path(path: str) -> str:
    """
    Normalize a URL path for matching.

        ""          → "/"
        "/users/"   → "/users"
        "users//1"  → "/users//1"   (inner segments are left alone)
    """
    stripped = path.strip("/")
    return "/" + stripped if stripped else "/"


def match_path(raw_path: str) -> str:
    """
    Canonical form of a raw request path, used for route matching.

    Each segment is decoded, then "%" and "/" are re-escaped, so an encoded
    slash stays inside its segment:

        "/files/a%2Fb"     → "/files/a%2Fb"
        "/my%20doc"        → "/my doc"
        "/files/50%25"     → "/files/50%25"
    """
    segments = [
        unquote(segment).replace("%", "%25").replace("/", "%2F")
        for segment in raw_path.split("/")
    ]
    return normalize_path("/".join(segments))


# =============================================================================
# TRANSPORT LAYER
# =============================================================================

class ServerRequest(ABC):
    """
    The raw request as delivered by the transport.

    Subclasses expose three attributes (method, url, headers) and a
    chunked reader. read_data() APPENDS at most one chunk to `buffer` and
    returns how many bytes it appended; 0 means the body is exhausted.
    """

    method: str
    url: str
    headers: Dict[str, str]

    @abstractmethod
    def read_data(self, buffer: bytearray) -> int:
        """Append the next chunk of body bytes to `buffer`; return its length."""


@dataclass
class IncomingRequest(ServerRequest):
    """
    In-memory ServerRequest.

    The body is handed out in `chunk_size` pieces, so consumers that read
    "to exhaustion" really have to loop:

        req = IncomingRequest("POST", "/echo", {"Content-Type": "text/plain"},
                              body=b"x" * 5000, chunk_size=2000)
        buf = bytearray()
        req.read_data(buf)   # 2000
        req.read_data(buf)   # 2000
        req.read_data(buf)   # 1000
        req.read_data(buf)   # 0
    """

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"
    client_address: tuple = ("", 0)
    chunk_size: int = DEFAULT_CHUNK_SIZE
    _offset: int = field(default=0, repr=False)

    def read_data(self, buffer: bytearray) -> int:
        chunk = self.body[self._offset:self._offset + self.chunk_size]
        self._offset += len(chunk)
        buffer.extend(chunk)
        return len(chunk)


class RequestParser:
    """
    Parses raw HTTP/1.1 request bytes into IncomingRequest objects.

        Raw Request Bytes
              │
              ▼
        1. Size check                      too large → 413
        2. Split at \\r\\n\\r\\n             missing   → 400
        3. Request line                    bad       → 400 / 405 / 505
        4. Headers (case preserved)
        5. Body (exactly Content-Length bytes)
              │
              ▼
        IncomingRequest

    The request target is kept verbatim in `url`; splitting it into path
    and query is RouterRequest's job.
    """

    VALID_METHODS = {
        "GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(
        self,
        max_request_size: int = 10 * 1024 * 1024,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self.max_request_size = max_request_size
        self.chunk_size = chunk_size

    def parse(self, data: bytes, client_address: tuple = ("", 0)) -> IncomingRequest:
        """
        Parse raw HTTP request data.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, url, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        content_length = self._content_length(headers)
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return IncomingRequest(
            method=method,
            url=url,
            headers=headers,
            body=body[:content_length],
            version=version,
            client_address=client_address,
            chunk_size=self.chunk_size,
        )

    def _parse_request_line(self, line: str) -> tuple:
        """METHOD SP REQUEST-TARGET SP HTTP-VERSION"""
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, url, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        return method, url, version

    def _parse_headers(self, lines: list) -> Dict[str, str]:
        """
        Parse "Name: Value" lines.

        Names keep the case they arrived with. A repeated header is
        combined with the earlier one: "gzip" + "br" → "gzip, br".
        Continuation lines (leading whitespace) extend the previous value.
        """
        headers: Dict[str, str] = {}
        current_name: Optional[str] = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue  # lenient: skip malformed header lines

            name, value = match.groups()
            name = name.strip()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers

    @staticmethod
    def _content_length(headers: Mapping[str, str]) -> int:
        for name, value in headers.items():
            if name.lower() == "content-length":
                try:
                    length = int(value)
                except ValueError:
                    raise HTTPParseError(f"Invalid Content-Length: {value}")
                if length < 0:
                    raise HTTPParseError(f"Invalid Content-Length: {value}")
                return length
        return 0


def parse_request(
    data: bytes,
    client_address: tuple = ("", 0),
    max_size: int = 10 * 1024 * 1024,
) -> IncomingRequest:
    """Parse raw request bytes with a one-off RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)


# =============================================================================
# ROUTER LAYER
# =============================================================================

class RouterRequest:
    """
    The request as seen by handlers and middleware.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method          Upper-cased HTTP method ("GET")
        original_url    Request target exactly as received
        url             Mutable copy of original_url (middleware may rewrite)
        path            Percent-decoded, normalized path ("/users/42")
        match_path      Path the routes are matched against (encoded "/" kept)
        headers         Header mapping, case-sensitive keys as received
        query_params    First value per query key
        params          Path parameters bound by the last matching pattern
        route           Pattern of the entry currently being invoked
        user_info       Free-form storage for middleware (auth user, ...)
        body            ParsedBody attached by BodyParser, or None

    =========================================================================
    LIFECYCLE
    =========================================================================

    Created by Router.handle_request() for one inbound request, mutated by
    the dispatcher (params, route) and by BodyParser (body), discarded once
    the response has been flushed. Never shared between requests.

    =========================================================================
    """

    def __init__(self, request: ServerRequest):
        self.server_request = request
        self.original_url: str = request.url
        self.url: str = request.url

        parsed = urlsplit(request.url)
        self.path: str = normalize_path(unquote(parsed.path))
        self.match_path: str = match_path(parsed.path)
        self.query_params: Dict[str, str] = {
            name: values[0]
            for name, values in parse_qs(parsed.query, keep_blank_values=True).items()
        }

        self.params: Dict[str, str] = {}
        self.route: Optional[str] = None
        self.user_info: Dict[str, Any] = {}
        self._body: Optional["ParsedBody"] = None

    def __repr__(self) -> str:
        return f"<RouterRequest {self.method} {self.original_url}>"

    @property
    def method(self) -> str:
        return self.server_request.method.upper()

    @property
    def headers(self) -> Dict[str, str]:
        return self.server_request.headers

    @property
    def content_type(self) -> Optional[str]:
        """
        Raw Content-Type header value, parameters included.

        Looks up "Content-Type" exactly first, then falls back to a
        case-insensitive scan for clients that send "content-type".
        """
        value = self.headers.get("Content-Type")
        if value is not None:
            return value
        for name, value in self.headers.items():
            if name.lower() == "content-type":
                return value
        return None

    @property
    def body(self) -> Optional["ParsedBody"]:
        return self._body

    def attach_body(self, body: "ParsedBody") -> None:
        """
        Attach the parsed body. Write-once.

        Raises:
            BodyAlreadyParsedError: If a body is already attached.
        """
        if self._body is not None:
            raise BodyAlreadyParsedError(f"Request body already parsed for {self!r}")
        self._body = body

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Exact-case header lookup."""
        return self.headers.get(name, default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.query_params.get(name, default)

    def read_data(self, buffer: bytearray) -> int:
        """Append the next body chunk to `buffer`; 0 at end of body."""
        return self.server_request.read_data(buffer)

    def read_string(self) -> Optional[str]:
        """
        Read the rest of the body and decode it as UTF-8.

        Returns None when the bytes are not valid UTF-8.
        """
        buffer = bytearray()
        while self.read_data(buffer):
            pass
        try:
            return buffer.decode("utf-8")
        except UnicodeDecodeError:
            return None
