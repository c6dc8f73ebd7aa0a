"""
Command line entry point.

Usage::

    cms-migrator <command> [file-path] [--config FILE] [--dry-run] [--limit N] [--verbose]

``file-path`` is only used by the two ``migrate-*`` commands; each has a
default export path in the configuration.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Callable, Dict, List, Optional

from .config import DEFAULT_CONFIG_FILE, load_config
from .migration_tool import CmsMigrationTool
from .utils.logging_setup import configure_logging
from .utils.report import RunReport

logger = logging.getLogger(__name__)

COMMANDS: Dict[str, str] = {
    "migrate-blogs": "Migrate blogs from a WordPress XML export to Airtable",
    "migrate-projects": "Migrate projects from a WordPress XML export to Airtable",
    "fix-blogs": "Fix blog bodies using AI",
    "fix-projects": "Fix project bodies using AI",
    "check-rendering": "Check rendering of all projects",
    "migrate-assets": "Move files hosted on the old CMS to the object store",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cms-migrator",
        description="Migrate WordPress content into the Airtable CMS and review it.",
    )
    parser.add_argument("command", nargs="?", help="Command to run")
    parser.add_argument("file_path", nargs="?", help="WordPress XML export (migrate-* commands)")
    parser.add_argument("--config", default=DEFAULT_CONFIG_FILE, help="Path to the JSON configuration file")
    parser.add_argument("--dry-run", action="store_true", default=None, help="Do not write to Airtable")
    parser.add_argument("--limit", type=int, default=None, help="Process at most N records")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def print_usage(parser: argparse.ArgumentParser) -> None:
    parser.print_usage()
    print("Available commands:")
    for name, description in COMMANDS.items():
        print(f"  {name:<18} {description}")


def _dispatch(tool: CmsMigrationTool, command: str, file_path: Optional[str]) -> RunReport:
    handlers: Dict[str, Callable[[], RunReport]] = {
        "migrate-blogs": lambda: tool.migrate_blogs(file_path),
        "migrate-projects": lambda: tool.migrate_projects(file_path),
        "fix-blogs": lambda: tool.fix_blog_bodies(),
        "fix-projects": lambda: tool.fix_project_bodies(),
        "check-rendering": lambda: tool.check_project_rendering(),
        "migrate-assets": lambda: tool.migrate_assets(),
    }
    return handlers[command]()


def run(argv: Optional[List[str]] = None) -> int:
    """Run one command and return the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command not in COMMANDS:
        if args.command:
            print(f"Unknown command: {args.command}")
        print_usage(parser)
        return 0

    try:
        config = load_config(
            args.config,
            dry_run=args.dry_run,
            limit=args.limit,
            log_level="DEBUG" if args.verbose else None,
        )
        configure_logging(
            config.migration.log_level,
            os.path.join(config.migration.report_dir, "migration.log"),
        )
        tool = CmsMigrationTool(config)
        tool.log_message(f"Starting {args.command}.")
        report = _dispatch(tool, args.command, args.file_path)
        tool.log_message(f"Finished {args.command}: {report.summary()}")
    except Exception:
        logger.exception("Error running %s", args.command)
        return 1
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
