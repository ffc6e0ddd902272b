"""
=============================================================================
FILESERVE CLI ENTRY POINT
=============================================================================

    # Serve ./htdocs on localhost:8080
    python -m fileserve

    # Custom port and document root
    python -m fileserve --port 3000 --doc-root ./public

    # Listen on all interfaces (for containers)
    python -m fileserve --host 0.0.0.0

    # Run the standard-library file server instead, for comparison
    python -m fileserve --use-default

Environment variables (HTTP_HOST, HTTP_PORT, HTTP_DOC_ROOT, HTTP_TIMEOUT,
HTTP_LOG_LEVEL) supply defaults; explicit flags win.

=============================================================================
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .config import ServerConfig
from .default_server import serve_default
from .server import HTTPServer, setup_logging


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fileserve",
        description="Static-file HTTP/1.1 server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m fileserve                          # Serve ./htdocs on :8080
  python -m fileserve --port 3000 -d ./public  # Custom port and root
  python -m fileserve --use-default            # Stdlib server, for comparison
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for containers)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 8080)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # SERVING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--doc-root", "-d",
        default=None,
        help="Directory to serve files from (default: htdocs)"
    )

    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=None,
        help="Idle timeout per request in seconds (default: 5)"
    )

    parser.add_argument(
        "--use-default",
        action="store_true",
        help="Run the standard-library file server instead of fileserve"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"fileserve {__version__}"
    )

    return parser


def build_config(args: argparse.Namespace) -> ServerConfig:
    """Environment defaults, overridden by any flag given on the command line."""
    return ServerConfig.from_env().with_overrides(
        host=args.host,
        port=args.port,
        doc_root=args.doc_root,
        timeout=args.timeout,
        log_level=args.log_level,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        # HTTP_PORT / HTTP_TIMEOUT that don't parse raise ValueError here
        config = build_config(args)

        setup_logging(config.log_level)

        logger.info("Server configs:")
        logger.info(f"  use_default: {args.use_default}")
        logger.info(f"  address: {config.listen_address}")
        logger.info(f"  doc_root: {config.doc_root}")
        logger.info(f"  timeout: {config.timeout}")

        if args.use_default:
            serve_default(config)
        else:
            HTTPServer(config).run()
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
