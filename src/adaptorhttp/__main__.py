"""
=============================================================================
ADAPTOR CLI ENTRY POINT
=============================================================================

    # Run with defaults (127.0.0.1:5678)
    python -m adaptorhttp

    # Custom port, archive feeds
    python -m adaptorhttp --port 8080 --archive-dir /var/lib/adaptor/feeds

    # Verbose, including header dumps
    python -m adaptorhttp --log-level TRACE

Startup steps:

1. argparse reads CLI arguments on top of ADAPTOR_* environment variables
2. the platform requirement is checked (UnsupportedPlatformError aborts)
3. AdaptorServer is built with the default filters and the SleepHandler
4. server.run() blocks until Ctrl+C

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import AdaptorConfig, parse_platforms
from .core.capability import StartupError, require_platform
from .handlers import SleepHandler
from .server import AdaptorServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="adaptorhttp",
        description="HTTP layer of a content-feeding adaptor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m adaptorhttp                          # Run with defaults
  python -m adaptorhttp --port 8080              # Custom port
  python -m adaptorhttp --archive-dir ./feeds    # Archive feed copies
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", default=None,
                        help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", "-p", type=int, default=None,
                        help="Port to listen on (default: 5678)")
    parser.add_argument("--workers", "-w", type=int, default=None,
                        help="Maximum concurrent requests (default: 16)")

    # ─────────────────────────────────────────────────────────────────────
    # FEATURE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--archive-dir", "-a", default=None,
                        help="Directory to archive feed files in")
    parser.add_argument("--sleep-ms", type=int, default=None,
                        help="Delay of the diagnostic sleep handler")
    parser.add_argument("--platforms", default=None,
                        help="Comma-separated OS names to run on (default: any)")
    parser.add_argument("--log-level", "-l",
                        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"],
                        default=None,
                        help="Logging level (default: INFO)")

    parser.add_argument("--version", "-v", action="version",
                        version=f"adaptorhttp {__version__}")
    return parser


def config_from_args(args: argparse.Namespace) -> AdaptorConfig:
    """Environment first, then whatever the command line overrides."""
    config = AdaptorConfig.from_env()
    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers is not None:
        config.max_workers = args.workers
    if args.archive_dir is not None:
        config.feed_archive_directory = args.archive_dir
    if args.sleep_ms is not None:
        config.sleep_duration_ms = args.sleep_ms
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.platforms is not None:
        config.supported_platforms = parse_platforms(args.platforms)
    return config


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        require_platform(*config.supported_platforms)
        server = AdaptorServer(config)
    except (StartupError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    server.create_context(config.sleep_path, SleepHandler(config.sleep_duration_ms))

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
