"""CSV export of the production log for one period."""

from collections.abc import Iterable
from decimal import Decimal
from pathlib import Path

import structlog

from iamcfo.production.models import ProductionEntry

logger = structlog.get_logger(__name__)

CSV_HEADER = "Date,Client,Project,Tonnage,Price per Ton,Total Amount,Status"


def format_number(value: Decimal) -> str:
    """Plain decimal text without trailing zeros: 80.00 -> 80, 12.50 -> 12.5."""
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def csv_row(entry: ProductionEntry) -> str:
    # Fields are joined as-is; a comma inside a name shifts the columns
    return ",".join(
        [
            entry.log_date.isoformat(),
            entry.client_name or "",
            entry.project_deliverable or "",
            format_number(entry.tonnage),
            format_number(entry.price_per_ton),
            format_number(entry.total_amount),
            entry.processing_status,
        ]
    )


def to_csv(entries: Iterable[ProductionEntry]) -> str:
    rows = [csv_row(entry) for entry in entries]
    return "\n".join([CSV_HEADER, *rows])


def export_filename(year: int, month: int) -> str:
    return f"wastex-production-{year}-{month:02d}.csv"


def write_csv(
    entries: Iterable[ProductionEntry], year: int, month: int, directory: Path | str = "."
) -> Path:
    """Write the export file and return its path."""
    entries = list(entries)
    path = Path(directory) / export_filename(year, month)
    path.write_text(to_csv(entries), encoding="utf-8")
    logger.info("production_exported", path=str(path), rows=len(entries))
    return path
