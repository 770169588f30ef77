"""Data-retrieval callbacks offered to the assistant as tools."""

from decimal import Decimal
from typing import Any

import structlog

from iamcfo.production.models import to_decimal
from iamcfo.tools.supabase_api import (
    AR_AGING_TABLE,
    JOURNAL_LINES_TABLE,
    PAYMENTS_TABLE,
    SupabaseClient,
)

logger = structlog.get_logger(__name__)

DEFAULT_JOURNAL_LIMIT = 100
MAX_JOURNAL_LIMIT = 1000


def _full_name(row: dict[str, Any]) -> str:
    return " ".join(p for p in (row.get("first_name"), row.get("last_name")) if p).strip()


def _money(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.01")))


class DataFunctions:
    """Read-only queries the model may request, keyed by tool name."""

    def __init__(self, client: SupabaseClient):
        self.client = client

    async def get_payments_summary(
        self,
        startDate: str | None = None,
        endDate: str | None = None,
        employee: str | None = None,
        department: str | None = None,
        minAmount: float | None = None,
        maxAmount: float | None = None,
    ) -> dict[str, Any]:
        """Payroll payments matching the filters, with totals by department."""
        query = self.client.table(PAYMENTS_TABLE).select("*")
        if startDate:
            query = query.gte("date", startDate)
        if endDate:
            query = query.lte("date", endDate)
        if department:
            query = query.eq("department", department)
        if minAmount is not None:
            query = query.gte("total_amount", minAmount)
        if maxAmount is not None:
            query = query.lte("total_amount", maxAmount)
        rows = await query.order("date", ascending=False).execute()

        if employee:
            # Names are split across two columns, so match on the joined name
            needle = employee.strip().lower()
            rows = [r for r in rows if needle in _full_name(r).lower()]

        total = Decimal("0")
        by_department: dict[str, Decimal] = {}
        for row in rows:
            amount = to_decimal(row.get("total_amount"))
            total += amount
            dept = row.get("department") or "Unassigned"
            by_department[dept] = by_department.get(dept, Decimal("0")) + amount

        return {
            "payments": rows,
            "count": len(rows),
            "total_amount": _money(total),
            "by_department": {k: _money(v) for k, v in by_department.items()},
        }

    async def get_ar_aging_detail(self, customerId: str | None = None) -> dict[str, Any]:
        """Open invoices from the A/R aging detail, optionally for one customer."""
        query = self.client.table(AR_AGING_TABLE).select("*")
        if customerId:
            query = query.eq("customer", customerId)
        rows = await query.order("due_date").execute()
        open_balance = sum((to_decimal(r.get("open_balance")) for r in rows), Decimal("0"))
        return {
            "invoices": rows,
            "count": len(rows),
            "total_open_balance": _money(open_balance),
        }

    async def get_financial_data(
        self,
        startDate: str | None = None,
        endDate: str | None = None,
        limit: int | float | None = None,
    ) -> dict[str, Any]:
        """Journal lines in a date range, newest first."""
        count = int(limit) if limit else DEFAULT_JOURNAL_LIMIT
        count = max(1, min(count, MAX_JOURNAL_LIMIT))
        query = self.client.table(JOURNAL_LINES_TABLE).select("*")
        if startDate:
            query = query.gte("date", startDate)
        if endDate:
            query = query.lte("date", endDate)
        rows = await query.order("date", ascending=False).limit(count).execute()
        return {"entries": rows, "count": len(rows)}
