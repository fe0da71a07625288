"""
worklog command line.

Usage:
    worklog init-db
    worklog connect --org ORG --user USER --token PAT [--username LOGIN]
    worklog sync [--org ORG --user USER] [--month YYYY-MM]
    worklog activities --org ORG --user USER [--month YYYY-MM]
    worklog suggest --org ORG --user USER [--month YYYY-MM] [--identity ID] [--client ID]

Without --month, sync covers the trailing 7 days and the other commands the
current month. Any error prints one line to stderr and exits with status 1.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import date

from dotenv import load_dotenv

from worklog.activity.types import Owner, SourceType
from worklog.activity.workday import month_range, parse_month, trailing_days
from worklog.config import SYNC_DEFAULT_DAYS
from worklog.errors import WorklogError
from worklog.observability.logging import get_logger

logger = get_logger(__name__)


def _month_arg(value: str) -> tuple[int, int]:
    try:
        return parse_month(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _month_or_current(month: tuple[int, int] | None) -> tuple[int, int]:
    if month:
        return month
    today = date.today()
    return today.year, today.month


def _require_owner(args: argparse.Namespace) -> Owner:
    if not args.org or not args.user:
        raise WorklogError("--org and --user are required")
    return Owner(args.org, args.user)


def cmd_init_db(args: argparse.Namespace) -> int:
    from worklog.infrastructure.database import get_db_path, init_database

    init_database()
    print(f"Database ready at {get_db_path()}")
    return 0


def cmd_connect(args: argparse.Namespace) -> int:
    from worklog.storage.credential_vault import ActivitySourceRepository

    owner = _require_owner(args)
    config = {"username": args.username} if args.username else None
    ActivitySourceRepository().save(owner, SourceType.GITHUB, args.token, config)
    print(f"Connected GitHub for {owner}")
    return 0


def cmd_sync(args: argparse.Namespace) -> int:
    from worklog.services.activity_sync import ActivitySyncService

    if args.month:
        start_date, end_date = month_range(*args.month)
    else:
        start_date, end_date = trailing_days(SYNC_DEFAULT_DAYS)
    print(f"Sync range: {start_date} .. {end_date}")

    service = ActivitySyncService()
    if args.org or args.user:
        owner = _require_owner(args)
        result = asyncio.run(service.sync_owner(owner, start_date, end_date))
        if result.error:
            raise WorklogError(result.error)
        print(f"{result.inserted} activities added")
        return 0

    results = asyncio.run(service.sync_all(start_date, end_date))
    for result in results:
        status = f"error: {result.error}" if result.error else f"{result.inserted} added"
        print(f"  [{result.organization_id}/{result.user_id}] {status}")
    print(f"Processed {len(results)} users")
    return 0


def cmd_activities(args: argparse.Namespace) -> int:
    from worklog.storage.activity_ledger import ActivityLedger
    from worklog.suggest.bucketer import WorkdayBucketer

    owner = _require_owner(args)
    year, month = _month_or_current(args.month)
    records = ActivityLedger().query_month(owner, year, month)
    if not records:
        print(f"No activity for {owner} in {year}-{month:02d}")
        return 0

    for work_date, day_records in WorkdayBucketer.bucket(records).items():
        print(f"{work_date} ({len(day_records)})")
        for record in day_records:
            print(f"  {record.event_type.value:<14} {record.repo or '-':<30} {record.title or ''}")
    print(f"{len(records)} activities")
    return 0


def cmd_suggest(args: argparse.Namespace) -> int:
    from worklog.infrastructure.ai_quota import SqliteUsageQuota
    from worklog.storage.activity_ledger import ActivityLedger
    from worklog.storage.client_mapping import ClientRepoRouter
    from worklog.suggest.assembler import SuggestionAssembler

    owner = _require_owner(args)
    year, month = _month_or_current(args.month)
    records = ActivityLedger().query_month(owner, year, month)

    router = ClientRepoRouter()
    if args.client:
        records = router.filter_records(records, router.repos_for_client(args.client, SourceType.GITHUB))

    assembler = SuggestionAssembler(quota=SqliteUsageQuota(), router=router)
    result = asyncio.run(
        assembler.suggest(owner, records, identity=args.identity, period=f"{year}-{month:02d}")
    )

    for entry in result.entries:
        print(
            f"{entry.work_date}  {entry.start_time}-{entry.end_time}  "
            f"break {entry.break_minutes:>2}m  {entry.description}"
        )
    print(result.reasoning)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="worklog", description="Turn GitHub activity into timesheet suggestions"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_db = subparsers.add_parser("init-db", help="Create the database schema")
    init_db.set_defaults(func=cmd_init_db)

    def owner_options(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--org", help="Organization ID")
        sub.add_argument("--user", help="User ID")

    connect = subparsers.add_parser("connect", help="Store an encrypted GitHub token")
    owner_options(connect)
    connect.add_argument("--token", required=True, help="GitHub personal access token")
    connect.add_argument("--username", help="GitHub login, used to match push webhooks to this user")
    connect.set_defaults(func=cmd_connect)

    sync = subparsers.add_parser("sync", help="Sync GitHub activity into the ledger")
    owner_options(sync)
    sync.add_argument("--month", type=_month_arg, help="Target month (default: last 7 days)")
    sync.set_defaults(func=cmd_sync)

    activities = subparsers.add_parser("activities", help="List stored activity")
    owner_options(activities)
    activities.add_argument("--month", type=_month_arg, help="Target month (default: this month)")
    activities.set_defaults(func=cmd_activities)

    suggest = subparsers.add_parser("suggest", help="Suggest timesheet entries from stored activity")
    owner_options(suggest)
    suggest.add_argument("--month", type=_month_arg, help="Target month (default: this month)")
    suggest.add_argument("--identity", help="Identity charged for AI summaries (omit to skip AI)")
    suggest.add_argument("--client", help="Only use repositories mapped to this client")
    suggest.set_defaults(func=cmd_suggest)

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        return args.func(args)
    except Exception as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        message = str(e).splitlines()[0] if str(e) else type(e).__name__
        print(f"error: {message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
