"""
=============================================================================
ROUTER CONFIGURATION
=============================================================================

One dataclass holds every knob of the router and its bundled server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m httprouter --port 3000                          │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTP_PORT=3000 python -m httprouter                       │
    │                                                                      │
    │   3. Defaults in this file                                          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Only the network settings matter to RouterServer. A Router embedded in
some other server reads read_chunk_size, expose_errors and server_name.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple


LOG_LEVELS: Tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS: Tuple[str, ...] = ("text", "json")


@dataclass
class RouterConfig:
    """
    Configuration for the router and the bundled server.

    Development:
        RouterConfig(log_level="DEBUG")

    Behind a proxy, hiding fault details from clients:
        RouterConfig(host="0.0.0.0", port=80, expose_errors=False)
    """

    host: str = "127.0.0.1"
    """IP address RouterServer binds to."""

    port: int = 8080
    """Port RouterServer listens on."""

    read_chunk_size: int = 2000
    """
    Bytes delivered per read_data() call.
    Body decoding reads in a loop until a call returns 0, so this only
    changes how many calls that takes.
    """

    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    """Largest raw request (head + body) the server accepts, else 413."""

    timeout: Optional[float] = 30.0
    """Socket timeout in seconds for a client connection."""

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """
    Access log format: 'text' or 'json'.
    JSON is better for log aggregators, text for humans.
    """

    server_name: str = "httprouter/1.0"
    """Value of the Server header written by the bundled server."""

    expose_errors: bool = True
    """Put the fault message in 500 bodies ("Server error: <message>")."""

    @classmethod
    def from_env(cls) -> "RouterConfig":
        """
        Create configuration from environment variables.

            HTTP_HOST              Server host (default: 127.0.0.1)
            HTTP_PORT              Server port (default: 8080)
            HTTP_TIMEOUT           Socket timeout in seconds (default: 30)
            HTTP_LOG_LEVEL         Logging level (default: INFO)
            HTTP_LOG_FORMAT        text | json (default: text)
            HTTP_READ_CHUNK_SIZE   Body read chunk (default: 2000)
            HTTP_MAX_REQUEST_SIZE  Request size limit (default: 10 MB)
            HTTP_EXPOSE_ERRORS     0/false hides fault messages
        """
        defaults = cls()
        return cls(
            host=os.getenv("HTTP_HOST", defaults.host),
            port=int(os.getenv("HTTP_PORT", str(defaults.port))),
            timeout=float(os.getenv("HTTP_TIMEOUT", "30")),
            log_level=os.getenv("HTTP_LOG_LEVEL", defaults.log_level).upper(),
            log_format=os.getenv("HTTP_LOG_FORMAT", defaults.log_format).lower(),
            read_chunk_size=int(os.getenv("HTTP_READ_CHUNK_SIZE", str(defaults.read_chunk_size))),
            max_request_size=int(os.getenv("HTTP_MAX_REQUEST_SIZE", str(defaults.max_request_size))),
            expose_errors=os.getenv("HTTP_EXPOSE_ERRORS", "1").lower() not in ("0", "false", "no"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called at startup so a bad value fails immediately rather than on
        the first request.

        Raises:
            ValueError: Describing the first invalid field.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535 (0 picks a free port).")
        if self.read_chunk_size < 1:
            raise ValueError("read_chunk_size must be >= 1")
        if self.max_request_size < 1024:
            raise ValueError("max_request_size must be >= 1024")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")
        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Invalid log_format: {self.log_format}. Must be one of {LOG_FORMATS}")
