"""
=============================================================================
ACCESS LOGGING
=============================================================================

One log line per completed request, in Apache-like text or in JSON.

=============================================================================
WHERE IT HOOKS IN
=============================================================================

Actions never get to see "the response after the rest of the chain ran":
post-processing after next() runs before later entries (see
routing/dispatcher.py). So access logging is not an entry in the table.
Router.handle_request() opens an AccessLog record for every request and
the record is written when the response is flushed, whichever action
ends it and however late that happens.

    handle_request()
        │
        ├── entry = access_log.start(request)      timer starts
        ├── response.on_end(entry.finish)
        ├── dispatcher.dispatch(request, response)
        │         ... some action calls response.end()
        └──────────────► entry.finish(response)     one log line

A request whose chain is parked and never resumed is never logged.

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import dataclass
from typing import List, Optional

from ..http.request import RouterRequest
from ..http.response import RouterResponse


# Namespaced logger, configurable on its own:
#   logging.getLogger("httprouter.access").addHandler(file_handler)
logger = logging.getLogger("httprouter.access")


@dataclass
class RequestLog:
    """
    Structured log entry for a request.

    request_id:     Short random ID, also stored in request.user_info
    method:         HTTP method (GET, POST, etc.)
    path:           Normalized request path
    query:          Raw query string
    route:          Pattern of the last entry invoked, "-" if none
    client_ip:      Client's IP address when the transport knows it
    user_agent:     User-Agent header
    status_code:    Final status code
    content_length: Response body size in bytes
    duration_ms:    Time from dispatch start to flush
    timestamp:      When the response was flushed
    """

    request_id: str
    method: str
    path: str
    query: str
    route: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "method": self.method,
            "path": self.path,
            "query": self.query,
            "route": self.route,
            "client_ip": self.client_ip,
            "user_agent": self.user_agent,
            "status_code": self.status_code,
            "content_length": self.content_length,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        """Apache combined-log-like line."""
        target = f"{self.path}?{self.query}" if self.query else self.path
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class PendingRequestLog:
    """An access log record waiting for its response to be flushed."""

    def __init__(self, access_log: "AccessLog", request: RouterRequest, request_id: str):
        self.access_log = access_log
        self.request = request
        self.request_id = request_id
        self.start_time = time.time()

    def finish(self, response: RouterResponse) -> RequestLog:
        duration_ms = (time.time() - self.start_time) * 1000
        request = self.request
        client_address = getattr(request.server_request, "client_address", None)
        query = request.original_url.partition("?")[2]

        entry = RequestLog(
            request_id=self.request_id,
            method=request.method,
            path=request.path,
            query=query,
            route=request.route or "-",
            client_ip=client_address[0] if client_address and client_address[0] else "-",
            user_agent=request.get_header("User-Agent") or "-",
            status_code=response.status_code,
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )
        self.access_log.emit(entry)
        return entry


class AccessLog:
    """
    Access log writer used by Router.

        AccessLog(log_format="json", skip_paths=["/health"])

    Args:
        log_format: "text" or "json".
        log_level: Level the lines are logged at.
        skip_paths: Paths that are never logged (noisy probes).
    """

    def __init__(
        self,
        log_format: str = "text",
        log_level: int = logging.INFO,
        skip_paths: Optional[List[str]] = None,
    ):
        self.log_format = log_format
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def start(self, request: RouterRequest) -> PendingRequestLog:
        request_id = str(uuid.uuid4())[:8]
        request.user_info["request_id"] = request_id
        return PendingRequestLog(self, request, request_id)

    def emit(self, entry: RequestLog) -> None:
        if entry.path in self.skip_paths:
            return
        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())
