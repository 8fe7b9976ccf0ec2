"""
=============================================================================
HTTPROUTER CLI ENTRY POINT
=============================================================================

Runs a demo router on the bundled server:

    python -m httprouter                       # 127.0.0.1:8080
    python -m httprouter --port 3000
    python -m httprouter --static ./public     # also serve files
    HTTP_LOG_FORMAT=json python -m httprouter  # JSON access log

Configuration comes from the environment first (RouterConfig.from_env),
then command-line flags override it.

=============================================================================
"""

import argparse
import sys
from typing import Optional

from . import __version__
from .config import LOG_FORMATS, LOG_LEVELS, RouterConfig
from .http.status_codes import HTTPStatus
from .middleware import BodyParser, StaticFileMiddleware
from .router import Router
from .server import RouterServer


def build_demo_router(config: RouterConfig, static_dir: Optional[str] = None) -> Router:
    """A router with a handful of routes that exercise the main features."""
    router = Router(config)
    router.use(BodyParser(router.mime_types))

    if static_dir:
        router.use("/static", StaticFileMiddleware(static_dir))

    def index(request, response, next):
        response.status(HTTPStatus.OK).send_json({
            "service": "httprouter",
            "version": __version__,
            "routes": [entry.describe().split() for entry in router.routes()],
        }).end()

    def hello(request, response, next):
        response.status(HTTPStatus.OK).end(f"Hello, {request.params['name']}!")

    def echo(request, response, next):
        body = request.body
        response.status(HTTPStatus.OK).send_json({
            "kind": body.kind.value if body else None,
            "value": body.value if body else None,
        }).end()

    router.get("/", index)
    router.get("/hello/:name", hello)
    router.post("/echo", echo)
    return router


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(
        prog="python -m httprouter",
        description="Ordered middleware/handler router with a small threaded HTTP server",
    )
    parser.add_argument("--host", "-H", default=None, help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", "-p", type=int, default=None, help="Port to listen on (default: 8080)")
    parser.add_argument("--static", "-s", default=None, help="Directory served under /static")
    parser.add_argument("--log-level", "-l", choices=LOG_LEVELS, default=None, help="Logging level")
    parser.add_argument("--log-format", choices=LOG_FORMATS, default=None, help="Access log format")
    parser.add_argument(
        "--hide-errors", action="store_true",
        help="Answer faults with a bare 'Server error' body",
    )
    parser.add_argument("--version", "-v", action="version", version=f"httprouter {__version__}")
    args = parser.parse_args(argv)

    config = RouterConfig.from_env()
    if args.host:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.log_level:
        config.log_level = args.log_level
    if args.log_format:
        config.log_format = args.log_format
    if args.hide_errors:
        config.expose_errors = False

    try:
        config.validate()
        server = RouterServer(build_demo_router(config, args.static), config)
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    server.run()


if __name__ == "__main__":
    main()
