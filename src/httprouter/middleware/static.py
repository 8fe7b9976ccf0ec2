"""
=============================================================================
STATIC FILE MIDDLEWARE
=============================================================================

Answers GET/HEAD requests for files below a root directory and passes
everything else down the chain.

    router.use("/static", StaticFileMiddleware("./public"))

    GET /static/css/site.css   → ./public/css/site.css (200)
    GET /static/               → ./public/index.html if present
    GET /static/missing.png    → next()  (a later entry or the 404)
    GET /static/../secret      → 403 Forbidden
    POST /static/anything      → next()

The mount point is taken from request.route, which the dispatcher sets to
the pattern this middleware was registered under. Mounted without a
path, the whole request path is looked up under the root.

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

The requested path is joined to the root and resolve()d, which follows
".." components and symlinks. If the result is no longer inside the
root, the request is refused with 403 and the chain stops there.

=============================================================================
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from ..http.request import RouterRequest, normalize_path
from ..http.response import RouterResponse, format_http_date
from ..http.status_codes import HTTPStatus
from .base import Middleware, Next


logger = logging.getLogger(__name__)


class StaticFileMiddleware(Middleware):
    """
    Serve files from `root_dir`.

    Args:
        root_dir: Directory to serve. Must exist.
        index_file: File served for directory requests.
        cache_max_age: Cache-Control max-age in seconds.

    Raises:
        ValueError: If root_dir is not a directory.
    """

    def __init__(
        self,
        root_dir: Union[str, Path],
        index_file: str = "index.html",
        cache_max_age: int = 3600,
    ):
        self.root_dir = Path(root_dir).resolve()
        self.index_file = index_file
        self.cache_max_age = cache_max_age

        if not self.root_dir.is_dir():
            raise ValueError(f"Static root directory does not exist: {root_dir}")

    def __call__(self, request: RouterRequest, response: RouterResponse, next: Next) -> None:
        if request.method not in ("GET", "HEAD"):
            next()
            return

        relative = self._relative_path(request)
        full_path = (self.root_dir / relative).resolve()

        try:
            full_path.relative_to(self.root_dir)
        except ValueError:
            logger.warning("Path traversal attempt: %s", request.path)
            response.send_status(HTTPStatus.FORBIDDEN).end()
            return

        if full_path.is_dir():
            full_path = full_path / self.index_file

        if not full_path.is_file():
            next()
            return

        self._serve_file(full_path, request, response)

    @staticmethod
    def _relative_path(request: RouterRequest) -> str:
        path = request.path
        mount = normalize_path(request.route) if request.route else "/"
        if mount != "/" and (path == mount or path.startswith(mount + "/")):
            path = path[len(mount):]
        return path.lstrip("/")

    def _serve_file(self, path: Path, request: RouterRequest, response: RouterResponse) -> None:
        stat = path.stat()
        etag = f'"{int(stat.st_mtime)}-{stat.st_size}"'
        response.set_header("ETag", etag)

        # Conditional request: the client already holds this version.
        if request.get_header("If-None-Match") == etag:
            response.status(HTTPStatus.NOT_MODIFIED).end()
            return

        modified = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        response.set_header("Last-Modified", format_http_date(modified))
        response.set_header("Cache-Control", f"public, max-age={self.cache_max_age}")

        if request.method == "HEAD":
            mime_type: Optional[str] = response.mime_types.content_type_for_path(path)
            if mime_type is not None:
                response.set_header("Content-Type", mime_type)
            response.set_header("Content-Length", str(stat.st_size))
            response.status(HTTPStatus.OK).end()
            return

        response.send_file(path).status(HTTPStatus.OK).end()
