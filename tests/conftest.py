"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator, List, Tuple

import pytest

from httprouter import Router, RouterConfig, RouterServer
from httprouter.http import BufferedServerResponse, IncomingRequest, RouterRequest, RouterResponse


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/users?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return (
        b"POST /api/users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body


@pytest.fixture
def router() -> Router:
    """Router without access logging."""
    return Router(log_requests=False)


def make_request(method: str = "GET", url: str = "/", headers=None, body: bytes = b"", chunk_size: int = 2000):
    """RouterRequest over an in-memory IncomingRequest."""
    return RouterRequest(IncomingRequest(method, url, dict(headers or {}), body=body, chunk_size=chunk_size))


def make_pair(method: str = "GET", url: str = "/", **kwargs) -> Tuple[RouterRequest, RouterResponse, BufferedServerResponse]:
    """(request, response, transport sink) for direct handler tests."""
    request = make_request(method, url, **kwargs)
    sink = BufferedServerResponse()
    return request, RouterResponse(sink, request=request), sink


def send(router: Router, method: str = "GET", url: str = "/", headers=None, body: bytes = b""):
    """Dispatch one in-memory request; returns (state, transport sink)."""
    sink = BufferedServerResponse()
    state = router.handle_request(IncomingRequest(method, url, dict(headers or {}), body=body), sink)
    return state, sink


class Recorder:
    """Collects the names of actions as they run."""

    def __init__(self):
        self.calls: List[str] = []

    def passthrough(self, name: str):
        def action(request, response, next):
            self.calls.append(name)
            next()
        action.__name__ = name
        return action

    def ending(self, name: str, status: int = 200, body: str = ""):
        def action(request, response, next):
            self.calls.append(name)
            response.status(status).end(body)
        action.__name__ = name
        return action

    def silent(self, name: str):
        """Neither ends nor calls next()."""
        def action(request, response, next):
            self.calls.append(name)
        action.__name__ = name
        return action


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


class TestServer:
    """RouterServer running in a background thread on an ephemeral port."""

    __test__ = False

    def __init__(self, server: RouterServer):
        self.server = server
        self.port = server.server_address[1]
        self._thread = threading.Thread(target=server.serve_forever, daemon=True)

    def start(self):
        self._thread.start()

    def stop(self):
        self.server.shutdown()
        self.server.server_close()
        self._thread.join(timeout=5.0)

    def request(self, raw: bytes) -> bytes:
        """Send raw bytes, return everything the server wrote back."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as sock:
            sock.sendall(raw)
            chunks = []
            while True:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)


@pytest.fixture
def test_server(router: Router) -> Generator[TestServer, None, None]:
    """Server on port 0 around the `router` fixture; add routes before first request."""
    server = RouterServer(router, RouterConfig(host="127.0.0.1", port=0, timeout=5.0, log_level="WARNING"))
    test_srv = TestServer(server)
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture(name="make_request")
def make_request_fixture():
    return make_request


@pytest.fixture(name="make_pair")
def make_pair_fixture():
    return make_pair


@pytest.fixture(name="send")
def send_fixture():
    return send
