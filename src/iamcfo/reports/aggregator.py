"""Pure reducers from fetched rows to per-entity report summaries.

Every reducer re-runs in full over the rows it is given; nothing is cached or
updated incrementally.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from iamcfo.reports.aging import aging_bucket, days_outstanding, matches_bucket_filter
from iamcfo.reports.classification import (
    TRANSFER_CATEGORY,
    CashFlowClass,
    PLCategory,
    classify,
    pl_category,
)
from iamcfo.reports.ledger import GENERAL, AgingRecord, LedgerRow, PaymentRecord
from iamcfo.reports.summaries import (
    ZERO,
    AgingSummary,
    CashFlowSummary,
    CategoryTotal,
    PayrollSummary,
    PLSummary,
)


@dataclass
class LedgerTransaction:
    """A ledger line in a drill-down list, with its running balance."""

    date: date | None
    amount: Decimal
    running: Decimal
    payee: str | None = None
    memo: str | None = None
    customer: str | None = None
    entry_number: str | None = None


@dataclass
class AgingTransaction:
    """An open invoice or bill with its days outstanding."""

    number: str
    date: date | None
    due_date: date | None
    amount: Decimal
    days_outstanding: int
    party: str
    memo: str | None = None


# === P&L ===


def pl_amount(row: LedgerRow, category: PLCategory) -> Decimal:
    """Revenue is credit-normal, cost of goods and expenses debit-normal."""
    if category == PLCategory.REVENUE:
        return row.credit - row.debit
    return row.debit - row.credit


def reduce_pl(rows: Iterable[LedgerRow]) -> dict[str, PLSummary]:
    summaries: dict[str, PLSummary] = {}
    for row in rows:
        summary = summaries.setdefault(row.entity, PLSummary(name=row.entity))
        category = pl_category(row.account_type)
        if category == PLCategory.REVENUE:
            summary.revenue += pl_amount(row, category)
        elif category == PLCategory.COGS:
            summary.cogs += pl_amount(row, category)
        elif category == PLCategory.EXPENSE:
            summary.expenses += pl_amount(row, category)
    return summaries


# === Cash flow ===


def is_cash_flow_row(row: LedgerRow) -> bool:
    """Bank-sourced, non-cash-account, non-transfer lines."""
    return (
        row.entry_bank_account is not None
        and not row.is_cash_account
        and row.report_category != TRANSFER_CATEGORY
    )


def cash_impact(row: LedgerRow) -> Decimal:
    """Stored normal-balance amount when set, else credit minus debit."""
    if row.report_category == TRANSFER_CATEGORY:
        return row.debit - row.credit
    if row.normal_balance:
        return row.normal_balance
    return row.credit - row.debit


def reduce_cash_flow(rows: Iterable[LedgerRow]) -> dict[str, CashFlowSummary]:
    summaries: dict[str, CashFlowSummary] = {}
    for row in rows:
        if not is_cash_flow_row(row):
            continue
        summary = summaries.setdefault(row.entity, CashFlowSummary(name=row.entity))
        classification = classify(row.account_type, row.report_category)
        if classification == CashFlowClass.OPERATING:
            summary.operating += cash_impact(row)
        elif classification == CashFlowClass.FINANCING:
            summary.financing += cash_impact(row)
        elif classification == CashFlowClass.INVESTING:
            summary.investing += cash_impact(row)
    return summaries


def drop_empty(summaries: dict[str, PLSummary] | dict[str, CashFlowSummary]) -> dict:
    """Drop all-zero entities, always keeping General when present."""
    return {
        name: summary
        for name, summary in summaries.items()
        if not summary.is_zero() or name == GENERAL
    }


# === Aging ===


def reduce_aging(
    records: Iterable[AgingRecord], today: date | None = None
) -> dict[str, AgingSummary]:
    today = today or date.today()
    summaries: dict[str, AgingSummary] = {}
    for record in records:
        if record.open_balance <= 0:
            continue
        summary = summaries.setdefault(record.party, AgingSummary(name=record.party))
        days = days_outstanding(record.due_date, today) if record.due_date else 0
        summary.add(aging_bucket(days), record.open_balance)
    return summaries


def aging_transactions(
    records: Iterable[AgingRecord],
    today: date | None = None,
    bucket: str | None = None,
) -> list[AgingTransaction]:
    """Open items, optionally limited to one bucket or the 90+ group."""
    today = today or date.today()
    result = []
    for record in records:
        if record.open_balance <= 0:
            continue
        days = days_outstanding(record.due_date, today) if record.due_date else 0
        if bucket and not matches_bucket_filter(days, bucket):
            continue
        result.append(
            AgingTransaction(
                number=record.number,
                date=record.date,
                due_date=record.due_date,
                amount=record.open_balance,
                days_outstanding=days,
                party=record.party,
                memo=record.memo,
            )
        )
    return result


# === Payroll ===


def reduce_payroll(
    payments: Iterable[PaymentRecord],
) -> tuple[dict[str, PayrollSummary], dict[str, PayrollSummary]]:
    """Totals by department and by employee."""
    departments: dict[str, PayrollSummary] = {}
    employees: dict[str, PayrollSummary] = {}
    for payment in payments:
        dept = departments.setdefault(
            payment.department_name, PayrollSummary(name=payment.department_name)
        )
        dept.total += payment.total_amount
        emp = employees.setdefault(payment.employee, PayrollSummary(name=payment.employee))
        emp.total += payment.total_amount
    return departments, dict(
        sorted(employees.items(), key=lambda item: item[1].total, reverse=True)
    )


# === Account breakdowns and drill-downs ===


def _totals(accounts: dict[str, Decimal]) -> list[CategoryTotal]:
    return [CategoryTotal(name=name, total=total) for name, total in accounts.items()]


def account_breakdown_pl(rows: Iterable[LedgerRow]) -> dict[PLCategory, list[CategoryTotal]]:
    """Per-account totals for each P&L section."""
    sections: dict[PLCategory, dict[str, Decimal]] = {c: {} for c in PLCategory}
    for row in rows:
        category = pl_category(row.account_type)
        if category is None:
            continue
        accounts = sections[category]
        accounts[row.account] = accounts.get(row.account, ZERO) + pl_amount(row, category)
    return {category: _totals(accounts) for category, accounts in sections.items()}


def account_breakdown_cash_flow(
    rows: Iterable[LedgerRow],
) -> dict[CashFlowClass, list[CategoryTotal]]:
    """Per-account totals for each cash-flow activity, largest first."""
    sections: dict[CashFlowClass, dict[str, Decimal]] = {
        c: {} for c in (CashFlowClass.OPERATING, CashFlowClass.FINANCING, CashFlowClass.INVESTING)
    }
    for row in rows:
        if not is_cash_flow_row(row):
            continue
        classification = classify(row.account_type, row.report_category)
        if classification not in sections:
            continue
        accounts = sections[classification]
        accounts[row.account] = accounts.get(row.account, ZERO) + cash_impact(row)
    return {
        activity: sorted(_totals(accounts), key=lambda c: c.total, reverse=True)
        for activity, accounts in sections.items()
    }


def running_transactions(
    rows: Iterable[LedgerRow], category: PLCategory | None = None
) -> list[LedgerTransaction]:
    """Date-ordered lines with a running balance.

    With a P&L ``category`` amounts follow that section's sign; without one
    they are cash impacts.
    """
    ordered = sorted(rows, key=lambda r: r.date or date.min)
    result = []
    running = ZERO
    for row in ordered:
        amount = pl_amount(row, category) if category else cash_impact(row)
        running += amount
        result.append(
            LedgerTransaction(
                date=row.date,
                amount=amount,
                running=running,
                payee=row.vendor or row.name,
                memo=row.memo,
                customer=row.customer,
                entry_number=row.entry_number,
            )
        )
    return result
