"""
=============================================================================
BODY PARSER
=============================================================================

Decodes a request payload according to its Content-Type and attaches the
result to request.body:

    ┌──────────────────────────────────────┬──────────────────────────────┐
    │ Content-Type                         │ ParsedBody                   │
    ├──────────────────────────────────────┼──────────────────────────────┤
    │ application/json, */*+json           │ BodyKind.JSON   (any value)  │
    │ application/x-www-form-urlencoded    │ BodyKind.URLENCODED (dict)   │
    │ text/*                               │ BodyKind.TEXT   (str)        │
    │ anything else / missing              │ None                         │
    └──────────────────────────────────────┴──────────────────────────────┘

=============================================================================
MALFORMED BODIES ARE SILENT
=============================================================================

A body that does not decode for its declared type yields None, exactly
like a body that was never sent. Nothing is raised and the dispatcher
never sees a fault. Handlers must read request.body is None as "not
applicable", never as "something went wrong".

    Content-Type: application/json     body: {oops        → None
    Content-Type: application/json     body: null         → None
    Content-Type: application/x-www-…  body: a=1&bad      → None (not {"a": "1"})
    Content-Type: application/x-www-…  body: (empty)      → None
    Content-Type: text/plain           body: b"\\xff\\xfe"  → None

=============================================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Protocol
from urllib.parse import unquote_plus
import json
import logging

from ..http.mime_types import DEFAULT_MIME_TYPES, MimeTypes
from ..http.request import RouterRequest
from ..http.response import RouterResponse
from .base import Middleware, Next


logger = logging.getLogger(__name__)


class Reader(Protocol):
    """Anything with a chunked read_data(); RouterRequest and ServerRequest both qualify."""

    def read_data(self, buffer: bytearray) -> int: ...


class BodyKind(Enum):
    JSON = "json"
    URLENCODED = "urlencoded"
    TEXT = "text"


@dataclass(frozen=True)
class ParsedBody:
    """
    Tagged decoded payload.

    Exactly one accessor returns a value; the others return None:

        body = ParsedBody.text("hello")
        body.as_text()         # "hello"
        body.as_json()         # None
    """

    kind: BodyKind
    value: Any

    @classmethod
    def json(cls, value: Any) -> "ParsedBody":
        return cls(BodyKind.JSON, value)

    @classmethod
    def urlencoded(cls, fields: Dict[str, str]) -> "ParsedBody":
        return cls(BodyKind.URLENCODED, dict(fields))

    @classmethod
    def text(cls, text: str) -> "ParsedBody":
        return cls(BodyKind.TEXT, text)

    def as_json(self) -> Any:
        return self.value if self.kind is BodyKind.JSON else None

    def as_urlencoded(self) -> Optional[Dict[str, str]]:
        return self.value if self.kind is BodyKind.URLENCODED else None

    def as_text(self) -> Optional[str]:
        return self.value if self.kind is BodyKind.TEXT else None


def read_body_data(reader: Reader) -> bytes:
    """
    Read a body to exhaustion.

    Polls read_data() until it reports 0 new bytes, so readers that
    deliver the body across many calls are fully drained.
    """
    buffer = bytearray()
    length = reader.read_data(buffer)
    while length != 0:
        length = reader.read_data(buffer)
    return bytes(buffer)


class BodyParser(Middleware):
    """
    Middleware that decodes the request body and then continues.

        router.use(BodyParser())

        @router.post("/users")
        def create_user(request, response, next):
            fields = request.body.as_urlencoded() if request.body else None
            ...

    A request that already carries a parsed body is passed through
    untouched, so registering BodyParser on overlapping paths is harmless.
    """

    def __init__(self, mime_types: MimeTypes = DEFAULT_MIME_TYPES):
        self.mime_types = mime_types

    def __call__(self, request: RouterRequest, response: RouterResponse, next: Next) -> None:
        if request.body is None:
            parsed = self.parse(request, request.content_type, self.mime_types)
            if parsed is not None:
                request.attach_body(parsed)
        next()

    @staticmethod
    def parse(
        reader: Reader,
        content_type: Optional[str],
        mime_types: MimeTypes = DEFAULT_MIME_TYPES,
    ) -> Optional[ParsedBody]:
        """
        Decode the body behind `reader` according to `content_type`.

        Returns None when there is no Content-Type, when the type is not
        one we decode, or when decoding fails.
        """
        if not content_type:
            return None

        try:
            if mime_types.is_type(content_type, "json"):
                return _parse_json(read_body_data(reader))
            if mime_types.is_type(content_type, "urlencoded"):
                return _parse_urlencoded(read_body_data(reader))
            if mime_types.is_type(content_type, "text/*"):
                return _parse_text(read_body_data(reader))
        except OSError as e:
            logger.debug("Could not read request body (%s): %s", content_type, e)
            return None

        return None


def _parse_json(data: bytes) -> Optional[ParsedBody]:
    try:
        value = json.loads(data)
    except (ValueError, UnicodeDecodeError) as e:
        logger.debug("Discarding malformed JSON body: %s", e)
        return None
    if value is None:
        return None
    return ParsedBody.json(value)


def _parse_urlencoded(data: bytes) -> Optional[ParsedBody]:
    """
    a=1&b=2 → {"a": "1", "b": "2"}

    Every "&"-separated element must contain exactly one "=". One bad
    element rejects the whole body; a partial mapping is never returned.
    Keys and values are percent-decoded after splitting.
    """
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return None

    fields: Dict[str, str] = {}
    success = True
    for element in text.split("&"):
        pair = element.split("=")
        if len(pair) == 2:
            fields[unquote_plus(pair[0])] = unquote_plus(pair[1])
        else:
            success = False

    if success and fields:
        return ParsedBody.urlencoded(fields)
    return None


def _parse_text(data: bytes) -> Optional[ParsedBody]:
    try:
        return ParsedBody.text(data.decode("utf-8"))
    except UnicodeDecodeError:
        return None
