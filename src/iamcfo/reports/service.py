"""Fetch report rows from the data store and reduce them into summaries."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

import structlog

from iamcfo.reports.aggregator import (
    AgingTransaction,
    LedgerTransaction,
    aging_transactions as open_aging_items,
    account_breakdown_cash_flow,
    account_breakdown_pl,
    drop_empty,
    reduce_aging,
    reduce_cash_flow,
    reduce_payroll,
    reduce_pl,
    running_transactions,
)
from iamcfo.reports.classification import TRANSFER_CATEGORY, CashFlowClass, PLCategory
from iamcfo.reports.ledger import GENERAL, AgingRecord, LedgerRow, PaymentRecord
from iamcfo.reports.periods import DateRange
from iamcfo.reports.summaries import (
    AgingSummary,
    CashFlowSummary,
    CategoryTotal,
    PayrollSummary,
    PLSummary,
    ReportKind,
    ReportSummary,
)
from iamcfo.tools.supabase_api import (
    AP_AGING_TABLE,
    AR_AGING_TABLE,
    JOURNAL_LINES_TABLE,
    PAYMENTS_TABLE,
    DataStoreError,
    Query,
    SupabaseClient,
)

logger = structlog.get_logger(__name__)

LEDGER_COLUMNS = (
    "account,account_type,report_category,normal_balance,debit,credit,"
    "customer,date,entry_bank_account,is_cash_account"
)
DETAIL_COLUMNS = (
    "date,debit,credit,account,customer,report_category,normal_balance,"
    "memo,vendor,name,entry_number,number"
)
PAYROLL_COLUMNS = "department,total_amount,date,first_name,last_name"
JOURNAL_ENTRY_COLUMNS = "date,account,memo,customer,debit,credit"

LOAD_FAILED_NOTICE = "Unable to load report data right now. Showing no results."

_SUMMARY_TYPES: dict[ReportKind, type] = {
    ReportKind.PL: PLSummary,
    ReportKind.CASH_FLOW: CashFlowSummary,
    ReportKind.AR: AgingSummary,
    ReportKind.AP: AgingSummary,
    ReportKind.PAYROLL: PayrollSummary,
}


@dataclass
class ReportResult:
    """Per-entity summaries for one report query plus company totals."""

    kind: ReportKind
    summaries: dict[str, ReportSummary]
    totals: ReportSummary
    employees: dict[str, PayrollSummary] = field(default_factory=dict)
    notice: str | None = None

    @classmethod
    def empty(cls, kind: ReportKind, notice: str | None = None) -> "ReportResult":
        return cls(
            kind=kind,
            summaries={},
            totals=_SUMMARY_TYPES[kind].combine([]),
            notice=notice,
        )


class ReportService:
    """Runs report queries against the ledger, aging and payments relations."""

    def __init__(
        self,
        client: SupabaseClient,
        today: Callable[[], date] = date.today,
    ):
        self.client = client
        self._today = today

    # === Queries ===

    @staticmethod
    def _filter_customer(query: Query, entity: str | None) -> Query:
        if not entity:
            return query
        if entity == GENERAL:
            return query.is_null("customer")
        return query.eq("customer", entity)

    @staticmethod
    def _cash_flow_only(query: Query) -> Query:
        return (
            query.not_null("entry_bank_account")
            .eq("is_cash_account", False)
            .neq("report_category", TRANSFER_CATEGORY)
        )

    async def fetch_ledger(
        self,
        period: DateRange,
        entity: str | None = None,
        cash_flow: bool = False,
        account: str | None = None,
        columns: str = LEDGER_COLUMNS,
    ) -> list[LedgerRow]:
        query = (
            self.client.table(JOURNAL_LINES_TABLE)
            .select(columns)
            .gte("date", period.start.isoformat())
            .lte("date", period.end.isoformat())
        )
        if account:
            query = query.eq("account", account)
        if cash_flow:
            query = self._cash_flow_only(query)
        query = self._filter_customer(query, entity)
        rows = await query.execute()
        return [LedgerRow.from_record(r) for r in rows]

    async def fetch_aging(
        self, kind: ReportKind, entity: str | None = None
    ) -> list[AgingRecord]:
        if kind == ReportKind.AR:
            table, party_field = AR_AGING_TABLE, "customer"
        elif kind == ReportKind.AP:
            table, party_field = AP_AGING_TABLE, "vendor"
        else:
            raise ValueError(f"{kind.value} is not an aging report")
        query = self.client.table(table).select("*").gt("open_balance", 0)
        if entity:
            query = query.eq(party_field, entity)
        rows = await query.execute()
        return [AgingRecord.from_record(r, party_field) for r in rows]

    async def fetch_payments(
        self, period: DateRange, department: str | None = None
    ) -> list[PaymentRecord]:
        query = (
            self.client.table(PAYMENTS_TABLE)
            .select(PAYROLL_COLUMNS)
            .gte("date", period.start.isoformat())
            .lte("date", period.end.isoformat())
        )
        if department:
            query = query.eq("department", department)
        rows = await query.execute()
        return [PaymentRecord.from_record(r) for r in rows]

    # === Reports ===

    async def build(
        self,
        kind: ReportKind,
        period: DateRange | None = None,
        entity: str | None = None,
    ) -> ReportResult:
        """Summaries for one report kind.

        Aging reports are as of today and ignore ``period``. A failed read
        yields an empty result carrying a notice.
        """
        if kind not in (ReportKind.AR, ReportKind.AP) and period is None:
            raise ValueError(f"{kind.value} report needs a date range")

        log = logger.bind(report=kind.value, entity=entity)
        try:
            result = await self._build(kind, period, entity)
        except DataStoreError as e:
            log.error("report_load_failed", error=str(e), status=e.status_code)
            return ReportResult.empty(kind, notice=LOAD_FAILED_NOTICE)

        log.info("report_built", entities=len(result.summaries))
        return result

    async def _build(
        self, kind: ReportKind, period: DateRange | None, entity: str | None
    ) -> ReportResult:
        summaries: dict[str, Any]
        if kind in (ReportKind.AR, ReportKind.AP):
            records = await self.fetch_aging(kind, entity)
            summaries = reduce_aging(records, self._today())
            return ReportResult(kind, summaries, AgingSummary.combine(list(summaries.values())))

        assert period is not None
        if kind == ReportKind.PAYROLL:
            payments = await self.fetch_payments(period, entity)
            departments, employees = reduce_payroll(payments)
            return ReportResult(
                kind,
                dict(departments),
                PayrollSummary.combine(list(departments.values())),
                employees=employees,
            )

        cash_flow = kind == ReportKind.CASH_FLOW
        rows = await self.fetch_ledger(period, entity, cash_flow=cash_flow)
        if cash_flow:
            summaries = drop_empty(reduce_cash_flow(rows))
            totals: ReportSummary = CashFlowSummary.combine(list(summaries.values()))
        else:
            summaries = drop_empty(reduce_pl(rows))
            totals = PLSummary.combine(list(summaries.values()))
        return ReportResult(kind, summaries, totals)

    # === Drill-downs ===

    async def account_breakdown(
        self, kind: ReportKind, period: DateRange, entity: str | None = None
    ) -> dict[PLCategory, list[CategoryTotal]] | dict[CashFlowClass, list[CategoryTotal]]:
        """Account-level totals for one entity (or all) in a P&L or cash-flow report."""
        if kind == ReportKind.PL:
            rows = await self.fetch_ledger(period, entity)
            return account_breakdown_pl(rows)
        if kind == ReportKind.CASH_FLOW:
            rows = await self.fetch_ledger(period, entity, cash_flow=True)
            return account_breakdown_cash_flow(rows)
        raise ValueError(f"{kind.value} has no account breakdown")

    async def account_detail(
        self,
        kind: ReportKind,
        account: str,
        period: DateRange,
        entity: str | None = None,
        category: PLCategory | None = None,
    ) -> list[LedgerTransaction]:
        """Lines posted to one account with a running balance."""
        rows = await self.fetch_ledger(
            period,
            entity,
            cash_flow=kind == ReportKind.CASH_FLOW,
            account=account,
            columns=DETAIL_COLUMNS,
        )
        if kind == ReportKind.PL:
            return running_transactions(rows, category or PLCategory.EXPENSE)
        return running_transactions(rows)

    async def aging_transactions(
        self, kind: ReportKind, entity: str | None = None, bucket: str | None = None
    ) -> list[AgingTransaction]:
        records = await self.fetch_aging(kind, entity)
        return open_aging_items(records, self._today(), bucket)

    async def payroll_detail(
        self, period: DateRange, department: str | None = None
    ) -> dict[str, list[PaymentRecord]]:
        """Payments per employee, in date order."""
        payments = await self.fetch_payments(period, department)
        breakdown: dict[str, list[PaymentRecord]] = {}
        for payment in sorted(payments, key=lambda p: p.date or date.min):
            breakdown.setdefault(payment.employee, []).append(payment)
        return breakdown

    async def journal_entry(self, entry_number: str) -> list[LedgerRow]:
        """All lines of one journal entry in posting order."""
        rows = await (
            self.client.table(JOURNAL_LINES_TABLE)
            .select(JOURNAL_ENTRY_COLUMNS)
            .eq("entry_number", entry_number)
            .order("line_sequence")
            .execute()
        )
        return [LedgerRow.from_record(r) for r in rows]
