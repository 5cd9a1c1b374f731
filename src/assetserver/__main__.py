"""
=============================================================================
ASSETSERVER CLI
=============================================================================

Serves a directory through StaticAssetHandler using the standard
library's threading HTTP server as the transport.

=============================================================================
USAGE
=============================================================================

    # Serve ./htdocs on localhost:8080
    python -m assetserver

    # Serve ./public under /static with index files and listings
    python -m assetserver ./public --prefix /static --index index.html --list

    # Custom 404 page, read big files from disk
    python -m assetserver ./public --not-found 404.html --direct-reading

Settings not given on the command line come from ASSET_* environment
variables (see WebConfig.from_env), then from the defaults.

=============================================================================
THE ADAPTER
=============================================================================

    http.server                StaticAssetHandler
    ───────────                ──────────────────
    do_GET()     ──► HTTPRequest(target=self.path, ...)
                 ──► handler.handle(request, HTTPResponse())
                 ◄── True:  wfile.write(response.to_bytes())
                 ◄── False: plain 404 from the adapter itself

The asset layer only sees HTTPRequest / HTTPResponse.

=============================================================================
"""

import argparse
import logging
import sys
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional, Sequence

from . import __version__
from .config import ConfigPatch, WebConfig
from .core import BufferBuildError
from .handlers import StaticAssetHandler
from .http import HTTPRequest, HTTPResponse, HTTPStatus


logger = logging.getLogger("assetserver")


def build_parser() -> argparse.ArgumentParser:
    """
    Command-line arguments.

    Every asset option defaults to None so that "not given" can be told
    apart from "given the default value" when building the ConfigPatch.
    """
    parser = argparse.ArgumentParser(
        prog="python -m assetserver",
        description="Serve a directory from an in-memory asset buffer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m assetserver                              # ./htdocs on :8080
  python -m assetserver ./public --port 3000         # Custom root and port
  python -m assetserver ./public --index index.html  # Directory indexes
  python -m assetserver ./public --list --not-found  # Listings, bare 404s
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=8080,
        help="Port to listen on (default: 8080)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "root_dir",
        nargs="?",
        default=None,
        help="Directory to serve (default: htdocs)"
    )

    parser.add_argument(
        "--prefix",
        dest="url_prefix",
        default=None,
        help="Public URL prefix (default: /)"
    )

    parser.add_argument(
        "--index",
        dest="directory_indexes",
        action="append",
        default=None,
        help="Directory index file, repeatable, tried in order"
    )

    parser.add_argument(
        "--header",
        dest="headers",
        action="append",
        default=None,
        metavar="NAME:VALUE",
        help="Response header added to every asset, repeatable"
    )

    # ─────────────────────────────────────────────────────────────────────
    # BUFFERING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--no-buffering",
        dest="buffering",
        action="store_false",
        default=None,
        help="Read every request from disk instead of memory"
    )

    parser.add_argument(
        "--max-size",
        dest="buffering_max_size",
        type=int,
        default=None,
        help="Largest file buffered, in bytes (default: 300000)"
    )

    parser.add_argument(
        "--direct-reading",
        action="store_true",
        default=None,
        help="Fall back to disk for paths missing from the buffer"
    )

    # ─────────────────────────────────────────────────────────────────────
    # FALLBACK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--not-found",
        nargs="?",
        const=True,
        default=None,
        metavar="PAGE",
        help="Answer misses with 404; with PAGE, use that file as the body"
    )

    parser.add_argument(
        "--list",
        dest="list_navigator",
        action="store_true",
        default=None,
        help="Generate listing pages for directories without an index"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--access-log",
        dest="log_format",
        choices=["text", "json"],
        default=None,
        help="Log every served asset in this format"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"AssetServer {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> WebConfig:
    """Environment/defaults first, then whatever the command line sets."""
    headers = None
    if args.headers:
        headers = {}
        for header in args.headers:
            name, separator, value = header.partition(":")
            if not separator or not name.strip():
                raise ValueError(f"Invalid header {header!r}, expected NAME:VALUE")
            headers[name.strip()] = value.strip()

    patch = ConfigPatch(
        root_dir=args.root_dir,
        url_prefix=args.url_prefix,
        directory_indexes=tuple(args.directory_indexes) if args.directory_indexes else None,
        response_headers=headers,
        buffering=args.buffering,
        buffering_max_size=args.buffering_max_size,
        direct_reading=args.direct_reading,
        not_found=args.not_found,
        list_navigator=args.list_navigator,
        log_access=True if args.log_format else None,
        log_format=args.log_format,
    )
    return WebConfig.from_env().merge(patch)


def make_request_handler(handler: StaticAssetHandler) -> type:
    """
    Build a BaseHTTPRequestHandler subclass bound to ``handler``.

    GET and HEAD go through the asset layer; other methods get 501 from
    http.server itself.
    """

    class AssetRequestHandler(BaseHTTPRequestHandler):
        server_version = f"AssetServer/{__version__}"

        def do_GET(self):
            self._serve(include_body=True)

        def do_HEAD(self):
            self._serve(include_body=False)

        def _serve(self, include_body: bool) -> None:
            request = HTTPRequest(
                target=self.path,
                method=self.command,
                headers={name.lower(): value for name, value in self.headers.items()},
                client_address=self.client_address,
            )
            response = HTTPResponse()

            try:
                handled = handler.handle(request, response)
            except Exception as e:
                logger.exception(f"Error serving {self.path}: {e}")
                response = HTTPResponse(status=HTTPStatus.INTERNAL_SERVER_ERROR)
                response.set_header("Content-Type", "text/plain; charset=utf-8")
                response.write(b"Internal Server Error")
                response.end()
                handled = True

            if not handled:
                # "Unhandled" miss: the adapter is the caller, so it answers
                response.set_status(HTTPStatus.NOT_FOUND)
                response.set_header("Content-Type", "text/plain; charset=utf-8")
                response.write(b"Not Found")
                response.end()

            # One request per connection; the sink is already ended, so
            # the header goes straight into the dict
            response.headers.setdefault("Connection", "close")
            self.close_connection = True
            self.wfile.write(response.to_bytes(self.server_version, include_body=include_body))

        def log_message(self, format, *args):
            # Route http.server's stderr chatter into logging
            logger.debug("%s - %s", self.address_string(), format % args)

    return AssetRequestHandler


def _setup_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("assetserver").setLevel(level)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.log_level)

    try:
        config = config_from_args(args)
        handler = StaticAssetHandler(config)
    except (ValueError, BufferBuildError) as e:
        logger.error(f"Cannot start: {e}")
        return 1

    server = ThreadingHTTPServer((args.host, args.port), make_request_handler(handler))
    host, port = server.server_address[:2]
    logger.info(
        f"Serving {len(handler.assets)} buffered assets from {config.root_dir} "
        f"at http://{host}:{port}{config.url_prefix}"
    )

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    finally:
        server.server_close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
