"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to MIME types (used by RouterResponse.send_file and
send_json) and answers "is this Content-Type a kind of X?" questions for
the body parser.

    ┌────────────────────────────────────────────────────────────────────┐
    │  .html → text/html          .json → application/json               │
    │  .css  → text/css           .png  → image/png                      │
    │  .js   → text/javascript    .pdf  → application/pdf                │
    └────────────────────────────────────────────────────────────────────┘

The table is wrapped in an immutable MimeTypes object built once at
startup. Responses receive it explicitly instead of reading module state.

=============================================================================
TYPE DESCRIPTORS
=============================================================================

MimeTypes.is_type(content_type, descriptor) understands three descriptor
shapes:

    "text/*"       wildcard subtype     text/plain, text/csv, ...
    "text/plain"   exact media type     text/plain only
    "json"         bare name            application/json (via the extension
                                        table), plus any */json, */*+json
    "urlencoded"   bare name            application/x-www-form-urlencoded

Parameters such as "; charset=utf-8" are ignored, and so is case.

=============================================================================
"""

from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Union


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================
#
# Maps file extensions (lowercase, with dot) to MIME types.
#
# =============================================================================

MIME_TYPES = {
    # Text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".bmp": "image/bmp",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Audio / video
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # Documents and archives
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",

    # Data / other
    ".wasm": "application/wasm",
    ".map": "application/json",
    ".yaml": "text/yaml",
    ".yml": "text/yaml",
}

# Some application/* types are text too and get a charset parameter.
_TEXT_APPLICATION_TYPES = frozenset({
    "application/json",
    "application/xml",
    "application/javascript",
    "image/svg+xml",
})


def _media_type(content_type: str) -> str:
    """'Application/JSON; charset=utf-8' → 'application/json'"""
    return content_type.split(";")[0].strip().lower()


def is_text_type(mime_type: str) -> bool:
    """
    Check if a MIME type represents text content.

        >>> is_text_type("text/html")
        True
        >>> is_text_type("application/json")
        True
        >>> is_text_type("image/png")
        False
    """
    mime_type = _media_type(mime_type)
    return mime_type.startswith("text/") or mime_type in _TEXT_APPLICATION_TYPES


class MimeTypes:
    """
    Immutable extension → content-type lookup.

    Usage:
        mime = MimeTypes()
        mime.content_type_for_extension("css")     # "text/css"
        mime.content_type_for_path("a/b/logo.png") # "image/png"
        mime.is_type("text/plain; charset=utf-8", "text/*")  # True

    Extra mappings (or overrides) are merged at construction time only:

        MimeTypes({".proto": "text/plain"})
    """

    def __init__(self, extra: Optional[Mapping[str, str]] = None, charset: str = "utf-8"):
        table = dict(MIME_TYPES)
        if extra:
            for extension, mime_type in extra.items():
                table[self._normalize_extension(extension)] = mime_type
        self._table: Mapping[str, str] = MappingProxyType(table)
        self.charset = charset

    @staticmethod
    def _normalize_extension(extension: str) -> str:
        extension = extension.lower()
        return extension if extension.startswith(".") else "." + extension

    def content_type_for_extension(self, extension: str) -> Optional[str]:
        """
        Look up the bare MIME type for an extension ("png" or ".png").

        Returns None for unknown extensions so callers can decide whether
        to fall back to application/octet-stream or leave the header unset.
        """
        if not extension:
            return None
        return self._table.get(self._normalize_extension(extension))

    def content_type_for_path(self, path: Union[str, Path]) -> Optional[str]:
        """
        Get the Content-Type header value for a file path.

        The extension is taken from the last path element. A file name
        without a dot is looked up as a whole ("json" → application/json).
        Text types carry the charset parameter:

            >>> MimeTypes().content_type_for_path("page.html")
            'text/html; charset=utf-8'
            >>> MimeTypes().content_type_for_path("image.png")
            'image/png'
        """
        path = Path(path)
        mime_type = self.content_type_for_extension(path.suffix or path.name)
        if mime_type is None:
            return None
        return self.with_charset(mime_type)

    def with_charset(self, mime_type: str) -> str:
        """Append the charset parameter to text types; return others unchanged."""
        if is_text_type(mime_type) and "charset=" not in mime_type:
            return f"{mime_type}; charset={self.charset}"
        return mime_type

    def is_type(self, content_type: Optional[str], descriptor: str) -> bool:
        """
        Check whether a Content-Type header value matches a descriptor.

        See the module docstring for the accepted descriptor shapes.
        """
        if not content_type:
            return False
        media = _media_type(content_type)
        if "/" not in media:
            return False

        descriptor = descriptor.lower()
        if "/" in descriptor:
            main_type, _, subtype = descriptor.partition("/")
            if subtype == "*":
                return media.startswith(main_type + "/")
            return media == descriptor

        expected = self.content_type_for_extension(descriptor)
        if expected is not None and media == _media_type(expected):
            return True

        subtype = media.partition("/")[2]
        return (
            subtype == descriptor
            or subtype.endswith("+" + descriptor)   # application/ld+json
            or subtype.endswith("-" + descriptor)   # x-www-form-urlencoded
        )

    def __len__(self) -> int:
        return len(self._table)


# Shared default table, built once at import time and never mutated.
DEFAULT_MIME_TYPES = MimeTypes()
