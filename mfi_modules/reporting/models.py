"""
Reporting Domain Models (``mfi_modules.reporting.models``).

Responsibility
--------------
Frozen value objects for the read-only reports: trial balance, loan
portfolio (with the per-calculation-mode summary) and the journal listing.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Built by the
functions in ``statements.py`` and returned by ``ReportingService``.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from mfi_kernel.selectors.journal_selector import JournalEntryDTO
from mfi_modules.loans.models import CalculationMethod, Loan, LoanStatus


class ReportType(str, Enum):
    """Types of reports."""

    TRIAL_BALANCE = "trial_balance"
    LOAN_PORTFOLIO = "loan_portfolio"
    JOURNAL_LISTING = "journal_listing"


@dataclass(frozen=True)
class ReportMetadata:
    """Metadata attached to every report."""

    report_type: ReportType
    as_of_date: date
    generated_at: str  # ISO format timestamp from injected clock
    period_start: date | None = None
    period_end: date | None = None


# =========================================================================
# Trial Balance
# =========================================================================


@dataclass(frozen=True)
class TrialBalanceLineItem:
    """A single line in the trial balance."""

    account_id: UUID
    account_code: str
    account_name: str
    account_type: str
    debit_balance: Decimal
    credit_balance: Decimal


@dataclass(frozen=True)
class TrialBalanceReport:
    metadata: ReportMetadata
    lines: tuple[TrialBalanceLineItem, ...]
    total_debits: Decimal
    total_credits: Decimal
    is_balanced: bool


# =========================================================================
# Loan Portfolio
# =========================================================================


@dataclass(frozen=True)
class StatusGroup:
    """Loans of the portfolio sharing one status."""

    status: LoanStatus
    loans: tuple[Loan, ...]
    total_principal: Decimal
    total_remaining: Decimal


@dataclass(frozen=True)
class CalculationModeSummary:
    """Active-loan figures for one calculation mode."""

    calculation_method: CalculationMethod
    active_count: int
    total_principal: Decimal
    average_interest_rate: Decimal


@dataclass(frozen=True)
class LoanPortfolioReport:
    """
    Loans disbursed on or before the as-of date.

    ``loans`` and ``by_status`` honour the status filter; ``by_method``
    always summarises the active loans so the dashboard figures do not
    depend on which slice of the portfolio is being listed.
    """

    metadata: ReportMetadata
    status_filter: LoanStatus | None
    loans: tuple[Loan, ...]
    by_status: tuple[StatusGroup, ...]
    total_count: int
    total_principal: Decimal
    total_remaining: Decimal
    by_method: tuple[CalculationModeSummary, ...]

    def summary_for(self, method: CalculationMethod) -> CalculationModeSummary:
        for summary in self.by_method:
            if summary.calculation_method == method:
                return summary
        raise KeyError(method)


# =========================================================================
# Journal Listing
# =========================================================================


@dataclass(frozen=True)
class JournalListingReport:
    """Journal entries in a date range with their lines (the day book)."""

    metadata: ReportMetadata
    entries: tuple[JournalEntryDTO, ...]
    total_debits: Decimal
    total_credits: Decimal

    @property
    def entry_count(self) -> int:
        return len(self.entries)
