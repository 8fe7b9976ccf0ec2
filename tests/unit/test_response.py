"""
Unit tests for the response context and the buffered transport.
"""

import json

import pytest

from httprouter.errors import ResponseEndedError
from httprouter.http.mime_types import MimeTypes
from httprouter.http.response import BufferedServerResponse, RouterResponse
from httprouter.http.status_codes import HTTPStatus, StatusPhrases


class TestBufferedServerResponse:
    """Tests for HTTP/1.1 serialization."""

    def test_status_line(self):
        """Test status line generation."""
        response = BufferedServerResponse()
        response.write_head(404, {})
        assert response.status_line == "HTTP/1.1 404 Not Found"

    def test_to_bytes(self):
        """Test headers, defaults and body in the serialized output."""
        response = BufferedServerResponse(server_name="test/1")
        response.write_head(200, {"X-Custom": ["value"], "Set-Cookie": ["a=1", "b=2"]})
        response.write_data(b"test")
        response.end()

        result = response.to_bytes()

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"X-Custom: value\r\n" in result
        assert b"Set-Cookie: a=1\r\nSet-Cookie: b=2\r\n" in result
        assert b"Content-Length: 4\r\n" in result
        assert b"Server: test/1\r\n" in result
        assert b"Date: " in result
        assert result.endswith(b"\r\n\r\ntest")


class TestStatus:
    """Tests for status handling."""

    def test_default_status_is_404(self, make_pair):
        """Test an untouched response is Not Found."""
        _, response, _ = make_pair()
        assert response.status_code == HTTPStatus.NOT_FOUND

    def test_status_is_chainable(self, make_pair):
        """Test status() returns the response."""
        _, response, sink = make_pair()
        response.status(HTTPStatus.CREATED).end()
        assert sink.status == 201

    def test_send_status_uses_phrase(self, make_pair):
        """Test send_status() writes the reason phrase without ending."""
        _, response, _ = make_pair()
        response.send_status(HTTPStatus.FORBIDDEN)

        assert response.status_code == 403
        assert response.body == b"Forbidden"
        assert not response.ended

    def test_send_status_unknown_code(self, make_pair):
        """Test codes without a phrase fall back to the number."""
        _, response, _ = make_pair()
        response.send_status(299)
        assert response.body == b"299"

    def test_custom_phrases(self):
        """Test an injected phrase table is used."""
        response = RouterResponse(BufferedServerResponse(), status_phrases=StatusPhrases({299: "Mostly Fine"}))
        response.send_status(299)
        assert response.body == b"Mostly Fine"


class TestHeaders:
    """Tests for header manipulation."""

    def test_set_get_remove(self, make_pair):
        """Test basic header operations."""
        _, response, _ = make_pair()
        response.set_header("X-One", "1").set_header("X-Two", "2")

        assert response.get_header("X-One") == "1"
        assert response.get_header("x-one") is None

        response.remove_header("X-One")
        assert response.get_header("X-One") is None
        assert response.get_header("X-Two") == "2"

    def test_multi_valued(self, make_pair):
        """Test list values and append_header()."""
        _, response, _ = make_pair()
        response.set_header("Set-Cookie", ["a=1", "b=2"])
        response.append_header("Set-Cookie", "c=3")

        assert response.get_header("Set-Cookie") == "a=1"
        assert response.get_headers("Set-Cookie") == ["a=1", "b=2", "c=3"]
        assert response.get_headers("Missing") is None

    def test_headers_property_is_a_copy(self, make_pair):
        """Test mutating .headers does not change the response."""
        _, response, _ = make_pair()
        response.set_header("X", "1")
        response.headers["X"].append("2")
        assert response.get_headers("X") == ["1"]


class TestBodyAndEnd:
    """Tests for send() and end()."""

    def test_send_appends(self, make_pair):
        """Test send() accumulates text and bytes."""
        _, response, sink = make_pair()
        response.send("hello ").send(b"world")

        assert response.body == b"hello world"
        assert not sink.finished

    def test_end_flushes_with_content_length(self, make_pair):
        """Test end() computes Content-Length and flushes once."""
        _, response, sink = make_pair()
        response.status(200).end("hello")

        assert response.ended
        assert sink.finished
        assert sink.status == 200
        assert sink.headers["Content-Length"] == ["5"]
        assert bytes(sink.body) == b"hello"

    def test_explicit_content_length_is_kept(self, make_pair):
        """Test end() does not overwrite a Content-Length set by the handler."""
        _, response, sink = make_pair()
        response.set_header("Content-Length", "99").end("abc")
        assert sink.headers["Content-Length"] == ["99"]

    def test_empty_body_has_no_content_length(self, make_pair):
        """Test end() without a body leaves Content-Length unset."""
        _, response, sink = make_pair()
        response.status(204).end()
        assert "Content-Length" not in sink.headers
        assert bytes(sink.body) == b""

    def test_unicode_length_counts_bytes(self, make_pair):
        """Test Content-Length is measured in bytes."""
        _, response, sink = make_pair()
        response.end("héllo")
        assert sink.headers["Content-Length"] == ["6"]

    @pytest.mark.parametrize("operation", [
        lambda r: r.send("more"),
        lambda r: r.status(200),
        lambda r: r.set_header("X", "1"),
        lambda r: r.end(),
    ])
    def test_writes_after_end_raise(self, make_pair, operation):
        """Test an ended response rejects further writes."""
        _, response, _ = make_pair()
        response.end("done")

        with pytest.raises(ResponseEndedError):
            operation(response)
        assert response.body == b"done"

    def test_send_json(self, make_pair):
        """Test JSON serialization and Content-Type."""
        _, response, sink = make_pair()
        response.status(200).send_json({"name": "John", "age": 30}).end()

        assert sink.headers["Content-Type"] == ["application/json; charset=utf-8"]
        assert json.loads(bytes(sink.body)) == {"name": "John", "age": 30}

    def test_on_end_listener(self, make_pair):
        """Test end listeners run after the flush."""
        _, response, sink = make_pair()
        seen = []
        response.on_end(lambda r: seen.append((r.status_code, sink.finished)))
        response.status(200).end()
        assert seen == [(200, True)]


class TestError:
    """Tests for the error slot."""

    def test_error_is_set_once(self, make_pair):
        """Test the first error wins."""
        _, response, _ = make_pair()
        first, second = ValueError("first"), ValueError("second")
        response.error = first
        response.error = second
        assert response.error is first

    def test_none_does_not_clear(self, make_pair):
        """Test assigning None keeps a recorded error."""
        _, response, _ = make_pair()
        response.error = RuntimeError("x")
        response.error = None
        assert response.error is not None

    def test_plain_value_is_wrapped(self, make_pair):
        """Test a non-exception error becomes a RuntimeError carrying its text."""
        _, response, _ = make_pair()
        response.error = "bad input"
        assert isinstance(response.error, RuntimeError)
        assert str(response.error) == "bad input"


class TestRedirect:
    """Tests for redirect() and location()."""

    def test_redirect_defaults_to_302(self, make_pair):
        """Test redirect() sets Location, 302 and ends."""
        _, response, sink = make_pair()
        response.redirect("/login")

        assert sink.status == 302
        assert sink.headers["Location"] == ["/login"]
        assert bytes(sink.body) == b""
        assert response.ended

    def test_redirect_custom_status(self, make_pair):
        """Test an explicit status."""
        _, response, sink = make_pair()
        response.redirect("/new", HTTPStatus.MOVED_PERMANENTLY)
        assert sink.status == 301

    def test_back_without_referer(self, make_pair):
        """Test 'back' falls back to '/'."""
        _, response, sink = make_pair()
        response.redirect("back")
        assert sink.headers["Location"] == ["/"]

    def test_back_with_referer(self, make_pair):
        """Test 'back' uses the Referer header."""
        _, response, sink = make_pair(headers={"Referer": "/previous"})
        response.redirect("back")
        assert sink.headers["Location"] == ["/previous"]

    def test_location_does_not_end(self, make_pair):
        """Test location() only sets the header."""
        _, response, _ = make_pair()
        response.location("/somewhere")
        assert response.get_header("Location") == "/somewhere"
        assert not response.ended


class TestSendFile:
    """Tests for send_file()."""

    def test_reads_file_and_sets_type(self, make_pair, tmp_path):
        """Test the file is buffered with a Content-Type from its extension."""
        page = tmp_path / "page.html"
        page.write_text("<h1>hi</h1>")
        _, response, _ = make_pair()

        response.send_file(page)

        assert response.body == b"<h1>hi</h1>"
        assert response.get_header("Content-Type") == "text/html; charset=utf-8"
        assert not response.ended

    def test_unknown_extension_leaves_type_unset(self, make_pair, tmp_path):
        """Test unknown extensions do not set Content-Type."""
        blob = tmp_path / "data.unknownext"
        blob.write_bytes(b"\x00\x01")
        _, response, _ = make_pair()

        response.send_file(str(blob))

        assert response.body == b"\x00\x01"
        assert response.get_header("Content-Type") is None

    def test_missing_file_raises(self, make_pair, tmp_path):
        """Test read failures propagate as OSError."""
        _, response, _ = make_pair()
        with pytest.raises(OSError):
            response.send_file(tmp_path / "nope.txt")
        assert response.body == b""

    def test_injected_mime_table(self, tmp_path):
        """Test an injected MIME table is consulted."""
        model = tmp_path / "scene.gltf"
        model.write_text("{}")
        response = RouterResponse(BufferedServerResponse(), mime_types=MimeTypes({".gltf": "model/gltf+json"}))

        response.send_file(model)

        assert response.get_header("Content-Type") == "model/gltf+json"
