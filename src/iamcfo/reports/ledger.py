"""Read-only rows fetched from the ledger, aging and payments relations."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from iamcfo.production.models import parse_date, to_decimal

GENERAL = "General"
UNKNOWN = "Unknown"


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass
class LedgerRow:
    """One journal entry line."""

    date: date | None
    account: str
    account_type: str
    debit: Decimal
    credit: Decimal
    customer: str | None = None
    report_category: str | None = None
    normal_balance: Decimal | None = None
    vendor: str | None = None
    name: str | None = None
    memo: str | None = None
    entry_number: str | None = None
    number: str | None = None
    entry_bank_account: str | None = None
    is_cash_account: bool = False

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "LedgerRow":
        normal = record.get("normal_balance")
        return cls(
            date=parse_date(record.get("date")),
            account=_text(record.get("account")) or "",
            account_type=_text(record.get("account_type")) or "",
            debit=to_decimal(record.get("debit")),
            credit=to_decimal(record.get("credit")),
            customer=_text(record.get("customer")),
            report_category=_text(record.get("report_category")),
            normal_balance=to_decimal(normal) if normal not in (None, "") else None,
            vendor=_text(record.get("vendor")),
            name=_text(record.get("name")),
            memo=_text(record.get("memo")),
            entry_number=_text(record.get("entry_number")),
            number=_text(record.get("number")),
            entry_bank_account=_text(record.get("entry_bank_account")),
            is_cash_account=bool(record.get("is_cash_account") or False),
        )

    @property
    def entity(self) -> str:
        """Customer the line is attributed to; unattributed lines are General."""
        return self.customer or GENERAL


@dataclass
class AgingRecord:
    """An open invoice (A/R) or bill (A/P)."""

    number: str
    date: date | None
    due_date: date | None
    open_balance: Decimal
    party: str
    memo: str | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any], party_field: str) -> "AgingRecord":
        return cls(
            number=_text(record.get("number")) or "",
            date=parse_date(record.get("date")),
            due_date=parse_date(record.get("due_date")),
            open_balance=to_decimal(record.get("open_balance")),
            party=_text(record.get(party_field)) or GENERAL,
            memo=_text(record.get("memo")),
        )


@dataclass
class PaymentRecord:
    """One payroll payment."""

    date: date | None
    total_amount: Decimal
    first_name: str | None = None
    last_name: str | None = None
    department: str | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "PaymentRecord":
        return cls(
            date=parse_date(record.get("date")),
            total_amount=to_decimal(record.get("total_amount")),
            first_name=_text(record.get("first_name")),
            last_name=_text(record.get("last_name")),
            department=_text(record.get("department")),
        )

    @property
    def employee(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or UNKNOWN

    @property
    def department_name(self) -> str:
        return self.department or UNKNOWN
