"""
Unit tests for access logging.
"""

import json
import logging

from httprouter import Router, RouterConfig
from httprouter.middleware.logging import AccessLog, RequestLog


def sample_entry(**overrides) -> RequestLog:
    values = dict(
        request_id="abcd1234", method="GET", path="/users/1", query="x=1",
        route="/users/:id", client_ip="127.0.0.1", user_agent="pytest",
        status_code=200, content_length=5, duration_ms=1.234,
        timestamp="01/Jan/2026:00:00:00 +0000",
    )
    values.update(overrides)
    return RequestLog(**values)


class TestRequestLog:
    """Tests for log entry formatting."""

    def test_to_text(self):
        """Test the combined-log-like line."""
        line = sample_entry().to_text()
        assert line == '127.0.0.1 - - [01/Jan/2026:00:00:00 +0000] "GET /users/1?x=1" 200 5 1.23ms'

    def test_to_dict(self):
        """Test JSON-ready fields."""
        data = sample_entry().to_dict()
        assert data["route"] == "/users/:id"
        assert data["duration_ms"] == 1.23


class TestAccessLog:
    """Tests for access logging through the router."""

    def test_one_line_per_request(self, send, caplog):
        """Test a flushed response produces one access line."""
        router = Router()
        router.get("/users/:id", lambda request, response, next: response.status(200).end("hello"))

        with caplog.at_level(logging.INFO, logger="httprouter.access"):
            send(router, "GET", "/users/1?x=1", headers={"User-Agent": "pytest"})

        records = [r for r in caplog.records if r.name == "httprouter.access"]
        assert len(records) == 1
        assert '"GET /users/1?x=1" 200 5' in records[0].getMessage()

    def test_json_format(self, send, caplog):
        """Test JSON access lines."""
        router = Router(RouterConfig(log_format="json"))

        with caplog.at_level(logging.INFO, logger="httprouter.access"):
            send(router, "GET", "/missing")

        record = next(r for r in caplog.records if r.name == "httprouter.access")
        data = json.loads(record.getMessage())
        assert data["status_code"] == 404
        assert data["path"] == "/missing"
        assert data["route"] == "-"

    def test_request_id_in_user_info(self, send):
        """Test the request id is visible to actions."""
        router = Router()
        seen = {}

        def capture(request, response, next):
            seen["id"] = request.user_info.get("request_id")
            response.status(200).end()

        router.get("/", capture)
        send(router, "GET", "/")

        assert seen["id"] and len(seen["id"]) == 8

    def test_skip_paths(self, caplog):
        """Test skipped paths are not logged."""
        access_log = AccessLog(skip_paths=["/health"])
        with caplog.at_level(logging.INFO, logger="httprouter.access"):
            access_log.emit(sample_entry(path="/health"))
        assert not [r for r in caplog.records if r.name == "httprouter.access"]

    def test_disabled(self, send, caplog):
        """Test log_requests=False writes nothing."""
        router = Router(log_requests=False)
        with caplog.at_level(logging.INFO, logger="httprouter.access"):
            send(router, "GET", "/")
        assert not [r for r in caplog.records if r.name == "httprouter.access"]
