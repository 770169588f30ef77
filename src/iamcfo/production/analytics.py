"""Production dashboard figures: period filter, KPIs, trend series."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from enum import Enum

from iamcfo.production.models import UNKNOWN_CLIENT, ProductionEntry, parse_timestamp

ZERO = Decimal("0")
HUNDRED = Decimal("100")


class ViewMode(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


@dataclass
class ProductionKPIs:
    total_tonnage: Decimal
    total_revenue: Decimal
    avg_price_per_ton: Decimal
    total_logs: int
    monthly_growth: Decimal


@dataclass
class SeriesPoint:
    label: str
    tonnage: Decimal
    revenue: Decimal


@dataclass
class ProductionTotals:
    tonnage: Decimal = ZERO
    revenue: Decimal = ZERO


def filter_period(
    entries: Iterable[ProductionEntry],
    year: int,
    month: int | None = None,
    mode: ViewMode = ViewMode.MONTHLY,
) -> list[ProductionEntry]:
    """Entries in the selected month, or in the whole year in yearly mode."""
    if mode == ViewMode.MONTHLY and month is not None:
        return [e for e in entries if e.year == year and e.month == month]
    return [e for e in entries if e.year == year]


def _previous_month(year: int, month: int) -> tuple[int, int]:
    return (year - 1, 12) if month == 1 else (year, month - 1)


def calculate_kpis(
    entries: Iterable[ProductionEntry],
    year: int,
    month: int,
    mode: ViewMode = ViewMode.MONTHLY,
) -> ProductionKPIs:
    """Headline figures for the selected period.

    Growth compares the selected month's revenue with the month before it and
    is 0 when the previous month has no revenue.
    """
    entries = list(entries)
    selected = filter_period(entries, year, month, mode)
    tonnage = sum((e.tonnage for e in selected), ZERO)
    revenue = sum((e.total_amount for e in selected), ZERO)
    avg_price = revenue / tonnage if tonnage > 0 else ZERO

    prev_year, prev_month = _previous_month(year, month)
    previous = sum(
        (e.total_amount for e in entries if e.year == prev_year and e.month == prev_month),
        ZERO,
    )
    growth = (revenue - previous) / previous * HUNDRED if previous > 0 else ZERO

    return ProductionKPIs(
        total_tonnage=tonnage,
        total_revenue=revenue,
        avg_price_per_ton=avg_price,
        total_logs=len(selected),
        monthly_growth=growth,
    )


def monthly_series(entries: Iterable[ProductionEntry], months: int = 12) -> list[SeriesPoint]:
    """Tonnage and revenue per ``YYYY-MM`` over the latest ``months`` months with data."""
    buckets: dict[str, SeriesPoint] = {}
    for entry in entries:
        key = f"{entry.year}-{entry.month:02d}"
        point = buckets.setdefault(key, SeriesPoint(key, ZERO, ZERO))
        point.tonnage += entry.tonnage
        point.revenue += entry.total_amount
    return [buckets[key] for key in sorted(buckets)][-months:]


def daily_series(
    entries: Iterable[ProductionEntry],
    year: int,
    month: int | None = None,
    mode: ViewMode = ViewMode.MONTHLY,
) -> list[SeriesPoint]:
    """One point per log in the selected period, oldest first."""
    selected = sorted(filter_period(entries, year, month, mode), key=lambda e: e.log_date)
    return [SeriesPoint(e.log_date.isoformat(), e.tonnage, e.total_amount) for e in selected]


def client_distribution(
    entries: Iterable[ProductionEntry],
    year: int,
    month: int | None = None,
    mode: ViewMode = ViewMode.MONTHLY,
    top: int = 5,
) -> list[tuple[str, Decimal]]:
    """Revenue per client for the period, largest first."""
    totals: dict[str, Decimal] = {}
    for entry in filter_period(entries, year, month, mode):
        client = entry.client_name or UNKNOWN_CLIENT
        totals[client] = totals.get(client, ZERO) + entry.total_amount
    return sorted(totals.items(), key=lambda item: item[1], reverse=True)[:top]


def week_bounds(day: date) -> tuple[date, date]:
    """Monday and Sunday of the week containing ``day``."""
    start = day - timedelta(days=day.weekday())
    return start, start + timedelta(days=6)


def todays_production(entries: Iterable[ProductionEntry], today: date | None = None) -> ProductionTotals:
    today = today or date.today()
    totals = ProductionTotals()
    for entry in entries:
        if entry.log_date == today:
            totals.tonnage += entry.tonnage
            totals.revenue += entry.total_amount
    return totals


def weekly_production(entries: Iterable[ProductionEntry], today: date | None = None) -> ProductionTotals:
    start, end = week_bounds(today or date.today())
    totals = ProductionTotals()
    for entry in entries:
        if start <= entry.log_date <= end:
            totals.tonnage += entry.tonnage
            totals.revenue += entry.total_amount
    return totals


# Shown when the production log cannot be read, flagged with a notice
FALLBACK_NOTICE = "Using demo data - check the data store connection"

_FALLBACK_ROWS = [
    ("1", "2025-09-26", "80", "1600", "Panzarella", "MRF", "Michael Cruz", "2025-09-27T07:42:00+00:00"),
    ("2", "2025-09-25", "75", "1500", "Metro Waste", "Collection", "Sarah Johnson", "2025-09-27T07:34:00+00:00"),
    ("3", "2025-09-24", "176", "3520", "City Municipal", "Bulk Collection", "Mike Davis", "2025-09-27T07:34:00+00:00"),
    ("4", "2025-09-23", "111", "2220", "Industrial Services", "Commercial", "Lisa Brown", "2025-09-27T07:35:00+00:00"),
]


def fallback_logs() -> list[ProductionEntry]:
    """Illustrative September 2025 entries."""
    entries = []
    for entry_id, log_date, tons, total, client, project, approver, created in _FALLBACK_ROWS:
        day = date.fromisoformat(log_date)
        entries.append(
            ProductionEntry(
                id=entry_id,
                log_date=day,
                tonnage=Decimal(tons),
                price_per_ton=Decimal("20"),
                total_amount=Decimal(total),
                client_name=client,
                project_deliverable=project,
                approval_name=approver,
                file_name=f"{day:%m.%d.%Y} - {tons} Tons.jpg",
                file_url=f"https://drive.google.com/file/d/example{entry_id}",
                processing_status="Processed",
                created_at=parse_timestamp(created) or datetime.now(UTC),
                synced=True,
            )
        )
    return entries
