"""Map ledger account types onto P&L and cash-flow categories."""

from enum import Enum


class CashFlowClass(str, Enum):
    """Cash-flow activity of a ledger line."""

    OPERATING = "operating"
    FINANCING = "financing"
    INVESTING = "investing"
    TRANSFER = "transfer"
    OTHER = "other"


class PLCategory(str, Enum):
    """Profit and loss section of a ledger line."""

    REVENUE = "revenue"
    COGS = "cogs"
    EXPENSE = "expense"


TRANSFER_CATEGORY = "transfer"

OPERATING_TYPES = frozenset({
    "income",
    "other income",
    "expenses",
    "expense",
    "cost of goods sold",
})
INVESTING_TYPES = frozenset({
    "fixed assets",
    "other assets",
    "property, plant & equipment",
})
FINANCING_TYPES = frozenset({
    "long term liabilities",
    "equity",
    "credit card",
    "other current liabilities",
    "line of credit",
})

# Classes that count towards cash-flow totals
CASH_FLOW_ACTIVITIES = (
    CashFlowClass.OPERATING,
    CashFlowClass.FINANCING,
    CashFlowClass.INVESTING,
)


def classify(account_type: str | None, report_category: str | None) -> CashFlowClass:
    """Cash-flow class for an account type and report-category tag.

    Total over all inputs: anything unrecognised is ``OTHER``.
    """
    if report_category == TRANSFER_CATEGORY:
        return CashFlowClass.TRANSFER

    type_lower = (account_type or "").strip().lower()
    is_receivable = "accounts receivable" in type_lower or "a/r" in type_lower
    is_payable = "accounts payable" in type_lower or "a/p" in type_lower

    if type_lower in OPERATING_TYPES or is_receivable or is_payable:
        return CashFlowClass.OPERATING
    if type_lower in INVESTING_TYPES:
        return CashFlowClass.INVESTING
    if type_lower in FINANCING_TYPES:
        return CashFlowClass.FINANCING
    return CashFlowClass.OTHER


def pl_category(account_type: str | None) -> PLCategory | None:
    """P&L section for an account type, or None when it is not a P&L account."""
    type_lower = (account_type or "").lower()
    if "income" in type_lower or "revenue" in type_lower:
        return PLCategory.REVENUE
    if "cost of goods sold" in type_lower or "cogs" in type_lower:
        return PLCategory.COGS
    if "expense" in type_lower:
        return PLCategory.EXPENSE
    return None
