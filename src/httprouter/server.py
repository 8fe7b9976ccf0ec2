"""
=============================================================================
ROUTER SERVER
=============================================================================

A small threaded HTTP/1.1 front end for a Router. It exists so the router
can be run and tested end to end; it makes no attempt at keep-alive,
chunked transfer or TLS. One request per connection.

=============================================================================
CONNECTION FLOW
=============================================================================

    accept() ─► worker thread (socketserver.ThreadingTCPServer)
                   │
                   ├── read head until blank line      (bounded by
                   ├── read Content-Length body bytes    max_request_size)
                   ├── RequestParser.parse()  ── HTTPParseError ─► 4xx/505
                   ├── router.handle_request(request, response)
                   ├── wait for response.end()          (parked chains)
                   └── sendall(response.to_bytes()), close

A chain that parks and is resumed from another thread still gets its
response written: the worker waits up to `timeout` seconds for end()
before giving up with 503.

=============================================================================
"""

import logging
import socket
import socketserver
import threading
from typing import Optional

from .config import RouterConfig
from .http.request import HTTPParseError, RequestParser
from .http.response import BufferedServerResponse
from .http.status_codes import HTTPStatus
from .router import Router


logger = logging.getLogger(__name__)


class SocketServerResponse(BufferedServerResponse):
    """BufferedServerResponse that lets the connection thread wait for end()."""

    def __init__(self, server_name: str):
        super().__init__(server_name)
        self.done = threading.Event()

    def end(self) -> None:
        super().end()
        self.done.set()


def error_response(status: int, message: str, server_name: str) -> BufferedServerResponse:
    """Plain-text response for failures that never reach the router."""
    response = BufferedServerResponse(server_name)
    response.write_head(status, {"Content-Type": ["text/plain; charset=utf-8"]})
    response.write_data(message.encode("utf-8"))
    response.end()
    return response


class RequestTooLarge(Exception):
    pass


class RouterRequestHandler(socketserver.StreamRequestHandler):
    """Handles exactly one request on one connection."""

    server: "RouterServer"

    def setup(self) -> None:
        self.timeout = self.server.config.timeout
        super().setup()

    def handle(self) -> None:
        config = self.server.config
        try:
            raw = self._read_request(config.max_request_size)
        except RequestTooLarge:
            self._send(error_response(HTTPStatus.PAYLOAD_TOO_LARGE, "Payload Too Large", config.server_name))
            return
        except (socket.timeout, ConnectionError) as e:
            logger.debug("Connection from %s dropped while reading: %s", self.client_address, e)
            return

        if not raw:
            return

        try:
            incoming = self.server.parser.parse(raw, self.client_address)
        except HTTPParseError as e:
            logger.warning("Bad request from %s: %s", self.client_address[0], e)
            self._send(error_response(e.status_code, str(e), config.server_name))
            return

        response = SocketServerResponse(config.server_name)
        self.server.router.handle_request(incoming, response)

        if not response.done.wait(config.timeout):
            logger.warning("No response for %s %s within %ss", incoming.method, incoming.url, config.timeout)
            self._send(error_response(HTTPStatus.SERVICE_UNAVAILABLE, "Service Unavailable", config.server_name))
            return

        self._send(response)

    def _read_request(self, limit: int) -> bytes:
        head = bytearray()
        while True:
            line = self.rfile.readline(limit + 1)
            if not line:
                return bytes(head)
            head.extend(line)
            if len(head) > limit:
                raise RequestTooLarge()
            if line in (b"\r\n", b"\n"):
                break

        length = 0
        for line in bytes(head).split(b"\r\n")[1:]:
            name, _, value = line.partition(b":")
            if name.strip().lower() == b"content-length":
                try:
                    length = int(value.strip())
                except ValueError:
                    # Let RequestParser reject it with a proper message.
                    length = 0
                break

        if len(head) + length > limit:
            raise RequestTooLarge()
        body = self.rfile.read(length) if length > 0 else b""
        return bytes(head) + body

    def _send(self, response: BufferedServerResponse) -> None:
        try:
            self.wfile.write(response.to_bytes())
            self.wfile.flush()
        except OSError as e:
            logger.debug("Could not write response to %s: %s", self.client_address, e)


class RouterServer(socketserver.ThreadingTCPServer):
    """
    Serve a Router over TCP.

        router = Router()
        router.get("/", hello)
        RouterServer(router, RouterConfig(port=3000)).run()

    Port 0 binds an ephemeral port; read it back from server_address.
    """

    daemon_threads = True
    allow_reuse_address = True

    def __init__(self, router: Router, config: Optional[RouterConfig] = None):
        self.config = config or router.config
        self.config.validate()
        self.router = router
        self.parser = RequestParser(
            max_request_size=self.config.max_request_size,
            chunk_size=self.config.read_chunk_size,
        )
        super().__init__((self.config.host, self.config.port), RouterRequestHandler)

    def run(self) -> None:
        """Serve until interrupted (Ctrl+C)."""
        self._setup_logging()
        self.router.freeze()

        host, port = self.server_address[:2]
        logger.info("Starting HTTP server on %s:%s", host, port)
        self.router.print_routes()

        try:
            self.serve_forever()
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self.server_close()
            logger.info("Server stopped")

    def _setup_logging(self) -> None:
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("httprouter").setLevel(level)
