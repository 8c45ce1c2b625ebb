"""
=============================================================================
DIGISTAR CLI ENTRY POINT
=============================================================================

    # Run with defaults (0.0.0.0:3000, ./public)
    python -m digistar

    # Custom port and static root
    python -m digistar --port 8000 --static ./site

    # Request log through the logging module instead of stdout
    python -m digistar --request-log logging

Every flag falls back to its DIGISTAR_* environment variable, then to the
ServerConfig default:

    CLI flag  >  environment  >  default

=============================================================================
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .app import create_server
from .config import LOG_LEVELS, REQUEST_LOG_TARGETS, ServerConfig


logger = logging.getLogger("digistar")


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="digistar",
        description="Digistar HTTP server: static files plus a small route table",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  digistar                          # 0.0.0.0:3000, serving ./public
  digistar --port 8000              # Custom port
  digistar --static ./site          # Different static root
  digistar --workers 32             # More concurrent connections
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=defaults.max_workers,
        help=f"Connections served concurrently (default: {defaults.max_workers})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST HANDLING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--static", "-s",
        default=defaults.static_dir,
        help=f"Directory to serve static files from (default: {defaults.static_dir})"
    )

    parser.add_argument(
        "--max-body-size",
        type=int,
        default=defaults.max_body_size,
        help=f"Largest accepted request body in bytes (default: {defaults.max_body_size})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level})"
    )

    parser.add_argument(
        "--request-log",
        choices=REQUEST_LOG_TARGETS,
        default=defaults.request_log,
        help="Where request log lines go (default: %(default)s)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"Digistar {__version__}"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse arguments, build the server and run it until interrupted.

    Returns:
        Process exit code: 0 after a clean shutdown, 1 when the
        configuration is invalid or the port cannot be bound.
    """
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid environment configuration: {e}", file=sys.stderr)
        return 1

    args = build_parser(defaults).parse_args(argv)

    defaults.host = args.host
    defaults.port = args.port
    defaults.max_workers = args.workers
    defaults.static_dir = args.static
    defaults.max_body_size = args.max_body_size
    defaults.log_level = args.log_level
    defaults.request_log = args.request_log

    try:
        server = create_server(defaults)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        server.run()
    except OSError as e:
        logger.error(f"Server failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
