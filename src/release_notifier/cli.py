"""Command-line entry point for CI steps.

Usage:
    release-notifier notify --changelog CHANGELOG.md --release v1.4.0
    git log --format=%s v1.3.0..v1.4.0 | release-notifier notify -c - -v v1.4.0
    release-notifier fix-versions -c CHANGELOG.md -v v1.4.0 --fail-fast
    release-notifier issue ABC-123

Results are printed to stdout as JSON, logs go to stderr. Exit status is
0 on success, 1 if the webhook or tracker call failed, 2 on bad
configuration.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path

from release_notifier import __version__
from release_notifier.config import ConfigError, load_config
from release_notifier.logging_config import get_logger, setup_logging
from release_notifier.notifier import ReleaseNotifier
from release_notifier.schemas import TrackerResult
from release_notifier.tracker import JiraClient

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="release-notifier",
        description="Notify a webhook with the Jira tickets of a release",
    )
    parser.add_argument("--config", help="YAML file with notifier settings")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="DEBUG, INFO, WARNING or ERROR",
    )
    parser.add_argument("--env", dest="environment", help="development, ci or production")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("notify", "POST the release tickets and version to the webhook"),
        ("fix-versions", "Create the release version and set it on every ticket"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument(
            "--changelog", "-c", required=True, help="Changelog file, or - for stdin"
        )
        cmd.add_argument("--release", "-v", dest="release", required=True,
                         help="Release version label")

    fix = sub.choices["fix-versions"]
    fix.add_argument("--no-create", action="store_true",
                     help="Only set fixVersions, do not create the version")
    fix.add_argument("--fail-fast", action="store_true",
                     help="Stop at the first failed tracker call")

    sub.add_parser("issue", help="Fetch an issue").add_argument("key")
    sub.add_parser("version", help="Fetch a version by id").add_argument("version_id")
    sub.add_parser("versions", help="List a project's versions").add_argument("project")
    sub.add_parser("project-id", help="Resolve a project key to its id").add_argument("key")
    return parser


def read_changelog(source: str) -> str:
    # ticket keys are ASCII, so undecodable bytes are replaced rather than fatal
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8", errors="replace")


async def run(args: argparse.Namespace) -> int:
    config = load_config(args.config)

    if args.command in ("notify", "fix-versions"):
        changelog = read_changelog(args.changelog)
        notifier = ReleaseNotifier(config)
        if args.command == "notify":
            notification = await notifier.notify_release(changelog, args.release)
            print(notification.model_dump_json(indent=2))
            return EXIT_OK if notification.delivered else EXIT_FAILED

        batch = await notifier.update_fix_versions(
            changelog,
            args.release,
            create_versions=not args.no_create,
            fail_fast=args.fail_fast,
        )
        print(batch.model_dump_json(indent=2))
        return EXIT_OK if batch.ok else EXIT_FAILED

    client = JiraClient(config)
    result: TrackerResult
    if args.command == "issue":
        result = await client.get_issue(args.key)
    elif args.command == "version":
        result = await client.get_version(args.version_id)
    elif args.command == "versions":
        result = await client.get_versions(args.project)
    else:
        result = await client.get_project_id_by_key(args.key)

    print(result.model_dump_json(indent=2))
    return EXIT_OK if result.ok else EXIT_FAILED


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, run the command and return the exit status."""
    args = build_parser().parse_args(argv)
    try:
        setup_logging(environment=args.environment, log_level=args.log_level)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    try:
        return asyncio.run(run(args))
    except ConfigError as e:
        logger.error("config_invalid", error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return EXIT_CONFIG
    except (OSError, UnicodeDecodeError) as e:
        logger.error("changelog_unreadable", error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return EXIT_CONFIG


if __name__ == "__main__":
    sys.exit(main())
