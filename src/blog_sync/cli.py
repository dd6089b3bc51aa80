"""Command-line entry point for ``blog-sync``.

Exit status:
    0 -- every post was created, updated or skipped.
    1 -- at least one post failed; the state for the others was saved.
    2 -- configuration error, or the state could not be loaded or saved.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

import yaml
from dotenv import load_dotenv

from . import __version__
from .config import load_config, resolve_sync_settings
from .config_loader import load_hierarchical_config
from .config_schema import build_config, config_fallbacks
from .core.client import PublisherClient
from .logger import setup_logging
from .store import create_state_store
from .sync import (
    SyncEngine,
    SyncRunError,
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
)
from .sync.errors import PublishError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blog-sync",
        description="Publish a repository's Markdown and HTML posts, once per change",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Preview what would be published
  blog-sync --source posts/ --repository-id octo/blog --dry-run

  # Publish, keeping state in .blog_sync/ (commit it back in CI)
  blog-sync --source posts/

  # Keep state in a remote service instead
  blog-sync --source posts/ --state-url https://state.example.com

  # Verify credentials only
  blog-sync --check

Settings are read from CLI flags, BLOG_SYNC_* environment variables (.env
supported) and .blog_sync/config.yml, in that order of precedence.
        """,
    )
    parser.add_argument(
        "--source",
        help="Directory containing the posts (default: sync.source or '.')",
    )
    parser.add_argument(
        "--repository-id",
        help="Stable repository identity, e.g. owner/name "
        "(falls back to BLOG_SYNC_REPOSITORY_ID, then GITHUB_REPOSITORY)",
    )
    parser.add_argument(
        "--repository-name", help="Display name stored with the state"
    )
    parser.add_argument(
        "--api-url",
        help="Publishing API base URL (takes precedence over BLOG_SYNC_API_URL)",
    )
    parser.add_argument(
        "--token",
        help="Publishing API token (visible in process list -- prefer "
        "BLOG_SYNC_API_TOKEN)",
    )
    parser.add_argument(
        "--state-dir", help="Directory for the file state store"
    )
    parser.add_argument(
        "--state-url", help="State service URL (selects the HTTP store)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Plan only: publish nothing and save no state",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the report as JSON on stdout",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Validate the publishing API credentials and exit",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip SSL certificate verification (use only for development)",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Log record format (default: text)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"blog-sync version {__version__}",
    )
    return parser


def _print_report(report, as_json: bool) -> None:
    if as_json:
        print(json.dumps(report_to_json(report), indent=2))
    elif report.dry_run:
        print(format_dry_run_preview(report))
    else:
        print(format_sync_report(report))


def main(argv: list[str] | None = None) -> int:
    """Run one sync and return the process exit status."""
    args = build_parser().parse_args(argv)

    load_dotenv()
    try:
        unified = build_config(load_hierarchical_config())
    except (ValueError, OSError, yaml.YAMLError) as exc:
        print(f"Error: invalid config file: {exc}", file=sys.stderr)
        return EXIT_ERROR

    setup_logging(
        debug=args.debug or unified.publisher.debug,
        log_file=args.log_file or unified.logging.file,
        log_format=args.log_format,
        level=unified.logging.level,
    )

    try:
        config = load_config(
            api_url=args.api_url,
            api_token=args.token,
            state_dir=args.state_dir,
            state_url=args.state_url,
            insecure=args.insecure,
            debug=args.debug,
            yaml_fallbacks=config_fallbacks(unified),
        )
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    publisher = PublisherClient(config)

    if args.check:
        try:
            identity = publisher.validate_connection()
        except PublishError as exc:
            print(f"Error: connection check failed: {exc}", file=sys.stderr)
            return EXIT_ERROR
        print(f"Connected to {config.api_url} as {identity}")
        return EXIT_OK

    try:
        settings = resolve_sync_settings(
            unified.sync,
            source=args.source,
            repository_id=args.repository_id,
            repository_name=args.repository_name,
        )
        engine = SyncEngine(
            publisher=publisher,
            store=create_state_store(config),
            settings=settings,
            max_parallel=config.max_parallel_requests,
            max_attempts=config.max_attempts,
        )
        report = engine.run(dry_run=args.dry_run)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR
    except SyncRunError as exc:
        logger.error("Sync aborted: %s", exc)
        if exc.report is not None:
            _print_report(exc.report, args.json)
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    _print_report(report, args.json)
    return report.exit_code


def run() -> None:
    """Console-script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
