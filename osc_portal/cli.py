"""Command line entry point.

    osc-portal audit-cleanup --days 365
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from osc_portal.core.config import settings
from osc_portal.db.base import engine, session_scope
from osc_portal.services.audit import AuditService

logger = logging.getLogger("osc_portal.cli")


async def _cleanup_audit_logs(days: int) -> int:
    try:
        async with session_scope() as session:
            return await AuditService(session).purge_older_than(days)
    finally:
        await engine.dispose()


def _positive_int(value: str) -> int:
    days = int(value)
    if days < 1:
        raise argparse.ArgumentTypeError("--days must be at least 1")
    return days


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="osc-portal", description=settings.app_name)
    commands = parser.add_subparsers(dest="command", required=True)

    cleanup = commands.add_parser(
        "audit-cleanup", help="Delete audit log entries older than the retention window"
    )
    cleanup.add_argument(
        "--days",
        type=_positive_int,
        default=settings.audit_retention_days,
        help="Retention window in days (default: AUDIT_RETENTION_DAYS)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.command == "audit-cleanup":
        deleted = asyncio.run(_cleanup_audit_logs(args.days))
        print(f"Deleted {deleted} audit log entries older than {args.days} days.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
