"""Command line front end: reports, the production log and the assistant."""

import argparse
import asyncio
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

import structlog

from iamcfo.assistant.cfo import AssistantContext, CFOAssistant
from iamcfo.clients.openai_client import OpenAIClient
from iamcfo.config import configure_logging
from iamcfo.production.analytics import (
    ViewMode,
    calculate_kpis,
    client_distribution,
    filter_period,
    todays_production,
    weekly_production,
)
from iamcfo.production.export import write_csv
from iamcfo.production.models import (
    ProductionForm,
    ProductionPhoto,
    ValidationError,
    validate_production_form,
)
from iamcfo.production.sync import ProductionLog
from iamcfo.reports.periods import ReportPeriod, date_range
from iamcfo.reports.service import ReportResult, ReportService
from iamcfo.reports.summaries import (
    AgingSummary,
    CashFlowSummary,
    PayrollSummary,
    PLSummary,
    ReportKind,
    ReportSummary,
)
from iamcfo.tools.executor import ToolExecutor
from iamcfo.tools.functions import DataFunctions
from iamcfo.tools.supabase_api import SupabaseClient

logger = structlog.get_logger(__name__)

_MIME_TYPES = {"jpg": "image/jpeg", "jpeg": "image/jpeg", "png": "image/png", "heic": "image/heic"}


def _money(value: Decimal) -> str:
    return f"${value:,.2f}"


def _summary_line(summary: ReportSummary) -> str:
    if isinstance(summary, PLSummary):
        return (
            f"{summary.name:<30} revenue {_money(summary.revenue):>14}  "
            f"cogs {_money(summary.cogs):>12}  expenses {_money(summary.expenses):>12}  "
            f"net {_money(summary.net_income):>14}"
        )
    if isinstance(summary, CashFlowSummary):
        return (
            f"{summary.name:<30} operating {_money(summary.operating):>14}  "
            f"financing {_money(summary.financing):>12}  "
            f"investing {_money(summary.investing):>12}  net {_money(summary.net):>14}"
        )
    if isinstance(summary, AgingSummary):
        return (
            f"{summary.name:<30} current {_money(summary.current):>12}  "
            f"31-60 {_money(summary.days_31_60):>12}  61-90 {_money(summary.days_61_90):>12}  "
            f"90+ {_money(summary.over_90):>12}  total {_money(summary.total):>14}"
        )
    assert isinstance(summary, PayrollSummary)
    return f"{summary.name:<30} {_money(summary.total):>14}"


def print_report(result: ReportResult) -> None:
    print(result.kind.title)
    print("=" * 60)
    if result.notice:
        print(result.notice)
    for summary in result.summaries.values():
        print(_summary_line(summary))
    print("-" * 60)
    print(_summary_line(result.totals))


def build_parser() -> argparse.ArgumentParser:
    today = date.today()
    parser = argparse.ArgumentParser(
        prog="iamcfo",
        description="I AM CFO financial reports and WasteX production log",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s report pl --period Monthly --year 2025 --month 9
  %(prog)s report ar --entity "Panzarella Waste"
  %(prog)s production sync
  %(prog)s production export --year 2025 --month 9
  %(prog)s ask "Who owes us the most?" --query-type ar_analysis
        """,
    )
    commands = parser.add_subparsers(dest="command", required=True)

    report = commands.add_parser("report", help="Build a financial report")
    report.add_argument("kind", choices=[k.value for k in ReportKind])
    report.add_argument(
        "--period",
        choices=[p.value for p in ReportPeriod],
        default=ReportPeriod.MONTHLY.value,
    )
    report.add_argument("--year", type=int, default=today.year)
    report.add_argument("--month", type=int, default=today.month)
    report.add_argument("--start", type=date.fromisoformat, help="Custom period start")
    report.add_argument("--end", type=date.fromisoformat, help="Custom period end")
    report.add_argument("--entity", help="Customer, vendor or department filter")

    production = commands.add_parser("production", help="WasteX production log")
    actions = production.add_subparsers(dest="action", required=True)
    actions.add_parser("sync", help="Upload queued entries")
    actions.add_parser("list", help="Show merged entries, newest first")

    add = actions.add_parser("add", help="Record a production entry")
    add.add_argument("--date", default=today.isoformat())
    add.add_argument("--tonnage", required=True)
    add.add_argument("--client", required=True)
    add.add_argument("--custom-client", default="")
    add.add_argument("--price", default="20")
    add.add_argument("--notes", default="")
    add.add_argument("--photo", type=Path)
    add.add_argument("--offline", action="store_true", help="Queue without uploading")

    for name, help_text in (("export", "Write the period CSV"), ("kpis", "Show period figures")):
        sub = actions.add_parser(name, help=help_text)
        sub.add_argument("--year", type=int, default=today.year)
        sub.add_argument("--month", type=int, default=today.month)
        sub.add_argument("--mode", choices=[m.value for m in ViewMode], default=ViewMode.MONTHLY.value)
        if name == "export":
            sub.add_argument("--dir", type=Path, default=Path("."))

    ask = commands.add_parser("ask", help="Ask the AI CFO")
    ask.add_argument("question", nargs="+")
    ask.add_argument("--query-type", default="general")

    return parser


def _read_photo(path: Path) -> ProductionPhoto:
    ext = path.suffix.lstrip(".").lower()
    return ProductionPhoto.from_bytes(
        path.read_bytes(), path.name, _MIME_TYPES.get(ext, "image/jpeg")
    )


async def run_report(client: SupabaseClient, args: argparse.Namespace) -> int:
    kind = ReportKind(args.kind)
    period = date_range(ReportPeriod(args.period), args.year, args.month, args.start, args.end)
    result = await ReportService(client).build(kind, period, args.entity)
    print_report(result)
    return 0


async def run_production(client: SupabaseClient, args: argparse.Namespace) -> int:
    online = not getattr(args, "offline", False)
    log = ProductionLog(client, is_online=lambda: online)

    if args.action in ("export", "kpis"):
        entries, notice = await log.dashboard_entries()
        if notice:
            print(notice)
        mode = ViewMode(args.mode)
        if args.action == "export":
            selected = filter_period(entries, args.year, args.month, mode)
            path = write_csv(selected, args.year, args.month, args.dir)
            print(f"Wrote {len(selected)} rows to {path}")
            return 0
        kpis = calculate_kpis(entries, args.year, args.month, mode)
        today, week = todays_production(entries), weekly_production(entries)
        print(f"Total tonnage   {kpis.total_tonnage:,.2f}")
        print(f"Total revenue   {_money(kpis.total_revenue)}")
        print(f"Avg price/ton   {_money(kpis.avg_price_per_ton)}")
        print(f"Logs            {kpis.total_logs}")
        print(f"Growth          {kpis.monthly_growth:+.1f}% vs last month")
        print(f"Today           {today.tonnage:,.2f} t  {_money(today.revenue)}")
        print(f"This week       {week.tonnage:,.2f} t  {_money(week.revenue)}")
        for client_name, revenue in client_distribution(entries, args.year, args.month, mode):
            print(f"  {client_name:<30} {_money(revenue)}")
        return 0

    queued_before = len(log.queue.load()[1])
    # load() already sweeps the queue when online
    await log.load()

    if args.action == "add":
        form = ProductionForm(
            date=args.date,
            tonnage=args.tonnage,
            client=args.client,
            custom_client=args.custom_client,
            price_per_ton=args.price,
            project_notes=args.notes,
        )
        photo = _read_photo(args.photo) if args.photo else None
        try:
            entry = validate_production_form(form, photo)
        except ValidationError as e:
            for field_name, message in e.errors.items():
                print(f"{field_name}: {message}", file=sys.stderr)
            return 2
        result = await log.submit(entry)
        if result.queued:
            print("Saved offline. It will upload when the connection returns.")
        elif result.duplicate:
            print("Saved. This photo was already on file, so the existing copy was reused.")
        else:
            print("Saved.")
        return 0

    if args.action == "sync":
        remaining = len(log.pending)
        print(f"Synced {queued_before - remaining}, still queued {remaining}")
        return 0 if not remaining else 1

    for entry in log.entries():
        marker = " " if entry.synced else "*"
        print(
            f"{marker} {entry.log_date}  {entry.client_name:<28} "
            f"{entry.tonnage:>8} t  {_money(entry.total_amount):>12}  {entry.processing_status}"
        )
    return 0


async def run_ask(client: SupabaseClient, args: argparse.Namespace) -> int:
    assistant = CFOAssistant(OpenAIClient(), ToolExecutor(DataFunctions(client)))
    context = AssistantContext(platform="cli", query_type=args.query_type)
    print(await assistant.ask(" ".join(args.question), context))
    return 0


async def run(args: argparse.Namespace) -> int:
    handlers: dict[str, Any] = {
        "report": run_report,
        "production": run_production,
        "ask": run_ask,
    }
    async with SupabaseClient() as client:
        return await handlers[args.command](client, args)


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    logger.debug("cli_command", command=args.command)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("cli_interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
