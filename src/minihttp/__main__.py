"""
=============================================================================
CLI ENTRY POINT
=============================================================================

    # Defaults: 127.0.0.1:4221, files served from the current directory
    python -m minihttp

    # Serve /tmp/data on all interfaces
    python -m minihttp --directory /tmp/data --host 0.0.0.0

    # Read until Content-Length instead of a single recv()
    python -m minihttp --framing content-length

Environment variables (MINIHTTP_PORT, MINIHTTP_DIRECTORY, ...) supply the
defaults; command-line flags override them. See ServerConfig.from_env().

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import FRAMINGS, ServerConfig
from .server import HTTPServer


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    """Build the argument parser, with defaults taken from `defaults`."""
    parser = argparse.ArgumentParser(
        prog="minihttp",
        description="Minimal HTTP/1.1 server: echo, user-agent and file routes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m minihttp                              # Run with defaults
  python -m minihttp --directory /tmp/data        # Files root
  python -m minihttp --port 8080 --workers 8      # Port and pool size
  python -m minihttp --log-format json            # JSON access log
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--directory", "-d",
        default=defaults.directory,
        help=f"Directory for /files/* (default: {defaults.directory})",
    )
    parser.add_argument(
        "--allow-traversal",
        action="store_true",
        help="Let /files/ names resolve outside --directory (unsafe)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host}, use 0.0.0.0 for containers)",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})",
    )
    parser.add_argument(
        "--buffer-size",
        type=int,
        default=defaults.buffer_size,
        help=f"Receive buffer in bytes (default: {defaults.buffer_size})",
    )
    parser.add_argument(
        "--framing",
        choices=FRAMINGS,
        default=defaults.framing,
        help=f"How request bytes are read (default: {defaults.framing})",
    )
    parser.add_argument(
        "--strict-methods",
        action="store_true",
        default=defaults.strict_methods,
        help="Drop requests whose method is not GET or POST instead of answering 404",
    )

    # ─────────────────────────────────────────────────────────────────────
    # PERFORMANCE
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=defaults.max_workers,
        help=f"Maximum worker threads (default: {defaults.max_workers})",
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level.upper()})",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=defaults.log_format,
        help="Access log format (default: text)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"minihttp {__version__}",
    )

    return parser


def config_from_args(args: argparse.Namespace, defaults: ServerConfig) -> ServerConfig:
    """Translate parsed arguments into a ServerConfig."""
    return ServerConfig(
        host=args.host,
        port=args.port,
        backlog=defaults.backlog,
        buffer_size=args.buffer_size,
        timeout=defaults.timeout,
        framing=args.framing,
        max_request_size=defaults.max_request_size,
        strict_methods=args.strict_methods,
        directory=args.directory,
        confine_files=not args.allow_traversal,
        min_workers=min(defaults.min_workers, args.workers),
        max_workers=args.workers,
        queue_size=defaults.queue_size,
        log_level=args.log_level,
        log_format=args.log_format,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the server from the command line.

    Returns:
        Process exit code: 0 after a clean shutdown, 1 on startup errors.
    """
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"minihttp: invalid environment setting: {e}", file=sys.stderr)
        return 1

    args = build_parser(defaults).parse_args(argv)
    config = config_from_args(args, defaults)

    try:
        server = HTTPServer(config)
    except ValueError as e:
        print(f"minihttp: {e}", file=sys.stderr)
        return 1

    try:
        server.run()
    except OSError as e:
        print(f"minihttp: cannot start server: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
