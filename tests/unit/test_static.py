"""
Unit tests for static file serving.
"""

import pytest

from httprouter.middleware import StaticFileMiddleware


@pytest.fixture
def public(tmp_path):
    root = tmp_path / "public"
    (root / "css").mkdir(parents=True)
    (root / "css" / "site.css").write_text("body { color: red; }")
    (root / "index.html").write_text("<h1>home</h1>")
    (tmp_path / "secret.txt").write_text("top secret")
    return root


@pytest.fixture
def static_router(router, public, recorder):
    router.use("/static", StaticFileMiddleware(public))
    router.all(recorder.ending("fallback", status=200, body="fallback"))
    return router


class TestStaticFileMiddleware:
    """Tests for StaticFileMiddleware."""

    def test_serves_file(self, static_router, send):
        """Test a file under the mount point is returned."""
        _, sink = send(static_router, "GET", "/static/css/site.css")

        assert sink.status == 200
        assert bytes(sink.body) == b"body { color: red; }"
        assert sink.headers["Content-Type"] == ["text/css; charset=utf-8"]
        assert "ETag" in sink.headers
        assert sink.headers["Cache-Control"] == ["public, max-age=3600"]

    def test_directory_serves_index(self, static_router, send):
        """Test the mount root serves index.html."""
        _, sink = send(static_router, "GET", "/static/")
        assert bytes(sink.body) == b"<h1>home</h1>"

    def test_missing_file_continues(self, static_router, send, recorder):
        """Test unknown files fall through to later entries."""
        _, sink = send(static_router, "GET", "/static/missing.png")

        assert recorder.calls == ["fallback"]
        assert bytes(sink.body) == b"fallback"

    def test_traversal_is_forbidden(self, static_router, send, recorder):
        """Test '..' escaping the root is answered with 403."""
        _, sink = send(static_router, "GET", "/static/../secret.txt")

        assert sink.status == 403
        assert b"secret" not in bytes(sink.body)
        assert recorder.calls == []

    def test_encoded_traversal_is_forbidden(self, static_router, send):
        """Test percent-encoded '..' is caught too."""
        _, sink = send(static_router, "GET", "/static/%2e%2e/secret.txt")
        assert sink.status == 403

    def test_post_passes_through(self, static_router, send, recorder):
        """Test non-GET requests are not served."""
        send(static_router, "POST", "/static/css/site.css")
        assert recorder.calls == ["fallback"]

    def test_head_has_no_body(self, static_router, send):
        """Test HEAD returns headers only."""
        _, sink = send(static_router, "HEAD", "/static/css/site.css")

        assert sink.status == 200
        assert bytes(sink.body) == b""
        assert sink.headers["Content-Length"] == [str(len("body { color: red; }"))]

    def test_not_modified(self, static_router, send):
        """Test a matching If-None-Match gives 304."""
        _, first = send(static_router, "GET", "/static/css/site.css")
        etag = first.headers["ETag"][0]

        _, second = send(static_router, "GET", "/static/css/site.css", headers={"If-None-Match": etag})

        assert second.status == 304
        assert bytes(second.body) == b""

    def test_missing_root_rejected(self, tmp_path):
        """Test the root directory must exist."""
        with pytest.raises(ValueError):
            StaticFileMiddleware(tmp_path / "nope")
