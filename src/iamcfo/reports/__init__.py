"""Financial reports over the journal, aging and payments relations."""

from iamcfo.reports.aging import AgingBucket, aging_bucket, days_outstanding
from iamcfo.reports.classification import CashFlowClass, PLCategory, classify, pl_category
from iamcfo.reports.periods import DateRange, ReportPeriod, date_range
from iamcfo.reports.service import ReportResult, ReportService
from iamcfo.reports.summaries import (
    AgingSummary,
    CashFlowSummary,
    PayrollSummary,
    PLSummary,
    ReportKind,
)

__all__ = [
    "AgingBucket",
    "aging_bucket",
    "days_outstanding",
    "CashFlowClass",
    "PLCategory",
    "classify",
    "pl_category",
    "DateRange",
    "ReportPeriod",
    "date_range",
    "ReportResult",
    "ReportService",
    "AgingSummary",
    "CashFlowSummary",
    "PayrollSummary",
    "PLSummary",
    "ReportKind",
]
