"""
HTTP building blocks: status codes, MIME types, and the request and
response objects handlers work with.
"""

from .mime_types import DEFAULT_MIME_TYPES, MimeTypes
from .request import (
    HTTPParseError,
    IncomingRequest,
    RequestParser,
    RouterRequest,
    ServerRequest,
    parse_request,
)
from .response import BufferedServerResponse, RouterResponse, ServerResponse
from .status_codes import DEFAULT_STATUS_PHRASES, HTTPStatus, StatusPhrases

__all__ = [
    "HTTPStatus",
    "StatusPhrases",
    "DEFAULT_STATUS_PHRASES",
    "MimeTypes",
    "DEFAULT_MIME_TYPES",
    "ServerRequest",
    "IncomingRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",
    "RouterRequest",
    "ServerResponse",
    "BufferedServerResponse",
    "RouterResponse",
]
