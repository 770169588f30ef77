"""Per-entity report summaries, one dataclass per report kind."""

from dataclasses import dataclass, fields
from decimal import Decimal
from enum import Enum
from typing import ClassVar, TypeVar

from iamcfo.reports.aging import AgingBucket

COMPANY_TOTAL = "Company Total"
ZERO = Decimal("0")


class ReportKind(str, Enum):
    PL = "pl"
    CASH_FLOW = "cf"
    AR = "ar"
    AP = "ap"
    PAYROLL = "payroll"

    @property
    def title(self) -> str:
        return {
            ReportKind.PL: "P&L Statement",
            ReportKind.CASH_FLOW: "Cash Flow Statement",
            ReportKind.AR: "A/R Aging",
            ReportKind.AP: "A/P Aging",
            ReportKind.PAYROLL: "Payroll Statement",
        }[self]


S = TypeVar("S", bound="_Summary")


@dataclass
class _Summary:
    name: str

    def _amount_fields(self) -> list[str]:
        return [f.name for f in fields(self) if f.name != "name"]

    def is_zero(self) -> bool:
        return all(getattr(self, f) == 0 for f in self._amount_fields())

    @classmethod
    def combine(cls: type[S], summaries: list[S], name: str = COMPANY_TOTAL) -> S:
        """Company-wide reduction over all summaries."""
        result = cls(name=name)
        for summary in summaries:
            for f in result._amount_fields():
                setattr(result, f, getattr(result, f) + getattr(summary, f))
        return result


@dataclass
class PLSummary(_Summary):
    revenue: Decimal = ZERO
    cogs: Decimal = ZERO
    expenses: Decimal = ZERO

    @property
    def gross_profit(self) -> Decimal:
        return self.revenue - self.cogs

    @property
    def net_income(self) -> Decimal:
        return self.revenue - self.cogs - self.expenses

    @property
    def margin(self) -> Decimal:
        return self.net_income / self.revenue if self.revenue else ZERO


@dataclass
class CashFlowSummary(_Summary):
    operating: Decimal = ZERO
    financing: Decimal = ZERO
    investing: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.operating + self.financing + self.investing


@dataclass
class AgingSummary(_Summary):
    current: Decimal = ZERO
    days_31_60: Decimal = ZERO
    days_61_90: Decimal = ZERO
    days_91_120: Decimal = ZERO
    over_120: Decimal = ZERO
    total: Decimal = ZERO

    _BUCKET_FIELDS: ClassVar[dict[AgingBucket, str]] = {
        AgingBucket.CURRENT: "current",
        AgingBucket.DAYS_31_60: "days_31_60",
        AgingBucket.DAYS_61_90: "days_61_90",
        AgingBucket.DAYS_91_120: "days_91_120",
        AgingBucket.OVER_120: "over_120",
    }

    def add(self, bucket: AgingBucket, amount: Decimal) -> None:
        attr = self._BUCKET_FIELDS[bucket]
        setattr(self, attr, getattr(self, attr) + amount)
        self.total += amount

    def bucket_amount(self, bucket: AgingBucket) -> Decimal:
        return getattr(self, self._BUCKET_FIELDS[bucket])

    @property
    def over_90(self) -> Decimal:
        return self.days_91_120 + self.over_120


@dataclass
class PayrollSummary(_Summary):
    total: Decimal = ZERO


# Tagged by class; the report kind travels alongside in ReportResult
ReportSummary = PLSummary | CashFlowSummary | AgingSummary | PayrollSummary


@dataclass
class CategoryTotal:
    """Account-level total inside one report section."""

    name: str
    total: Decimal
