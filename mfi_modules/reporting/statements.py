"""
Pure report transformation functions.

These functions turn selector rows and loan snapshots into the report
value objects of ``mfi_modules.reporting.models``.  ZERO I/O. ZERO side
effects.

- No database access
- No clock access (the caller supplies ``ReportMetadata``)
- Deterministic: same inputs always produce same outputs
"""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from mfi_kernel.db.types import BALANCE_TOLERANCE, ZERO, round_money
from mfi_kernel.selectors.journal_selector import JournalEntryDTO
from mfi_kernel.selectors.ledger_selector import TrialBalanceRow
from mfi_modules.loans.models import CalculationMethod, Loan, LoanStatus
from mfi_modules.reporting.models import (
    CalculationModeSummary,
    JournalListingReport,
    LoanPortfolioReport,
    ReportMetadata,
    StatusGroup,
    TrialBalanceLineItem,
    TrialBalanceReport,
)


# =========================================================================
# 1. TRIAL BALANCE
# =========================================================================


def build_trial_balance(
    rows: Sequence[TrialBalanceRow],
    metadata: ReportMetadata,
) -> TrialBalanceReport:
    """Build a trial balance report from selector rows."""
    items = tuple(
        TrialBalanceLineItem(
            account_id=row.account_id,
            account_code=row.account_code,
            account_name=row.account_name,
            account_type=row.account_type,
            debit_balance=row.debit_balance,
            credit_balance=row.credit_balance,
        )
        for row in rows
    )
    total_debits = sum((item.debit_balance for item in items), ZERO)
    total_credits = sum((item.credit_balance for item in items), ZERO)
    return TrialBalanceReport(
        metadata=metadata,
        lines=items,
        total_debits=total_debits,
        total_credits=total_credits,
        is_balanced=abs(total_debits - total_credits) <= BALANCE_TOLERANCE,
    )


# =========================================================================
# 2. LOAN PORTFOLIO
# =========================================================================


def group_by_status(loans: Sequence[Loan]) -> tuple[StatusGroup, ...]:
    """Group loans by status, in LoanStatus declaration order; empty groups are omitted."""
    groups: list[StatusGroup] = []
    for status in LoanStatus:
        members = tuple(loan for loan in loans if loan.status == status)
        if not members:
            continue
        groups.append(
            StatusGroup(
                status=status,
                loans=members,
                total_principal=sum((loan.principal for loan in members), ZERO),
                total_remaining=sum((loan.remaining_amount for loan in members), ZERO),
            )
        )
    return tuple(groups)


def summarize_by_method(loans: Sequence[Loan]) -> tuple[CalculationModeSummary, ...]:
    """
    Per-calculation-mode figures over the ACTIVE loans in ``loans``.

    Every mode is reported, with zeros when it has no active loans.  The
    average interest rate is a plain mean rounded to 2 dp.
    """
    summaries: list[CalculationModeSummary] = []
    for method in CalculationMethod:
        active = [
            loan for loan in loans
            if loan.calculation_method == method and loan.status == LoanStatus.ACTIVE
        ]
        if active:
            average = round_money(
                sum((loan.annual_rate for loan in active), ZERO) / len(active)
            )
        else:
            average = round_money(ZERO)
        summaries.append(
            CalculationModeSummary(
                calculation_method=method,
                active_count=len(active),
                total_principal=sum((loan.principal for loan in active), ZERO),
                average_interest_rate=average,
            )
        )
    return tuple(summaries)


def build_loan_portfolio(
    loans: Sequence[Loan],
    metadata: ReportMetadata,
    status_filter: LoanStatus | None = None,
) -> LoanPortfolioReport:
    """
    Build the portfolio report.

    Args:
        loans: Every loan disbursed on or before the as-of date.
        metadata: Report metadata.
        status_filter: Restrict the listing to one status; None lists all.
    """
    selected = tuple(
        loan for loan in loans
        if status_filter is None or loan.status == status_filter
    )
    return LoanPortfolioReport(
        metadata=metadata,
        status_filter=status_filter,
        loans=selected,
        by_status=group_by_status(selected),
        total_count=len(selected),
        total_principal=sum((loan.principal for loan in selected), ZERO),
        total_remaining=sum((loan.remaining_amount for loan in selected), ZERO),
        by_method=summarize_by_method(loans),
    )


# =========================================================================
# 3. JOURNAL LISTING
# =========================================================================


def build_journal_listing(
    entries: Sequence[JournalEntryDTO],
    metadata: ReportMetadata,
) -> JournalListingReport:
    return JournalListingReport(
        metadata=metadata,
        entries=tuple(entries),
        total_debits=sum((entry.total_debits for entry in entries), ZERO),
        total_credits=sum((entry.total_credits for entry in entries), ZERO),
    )


# =========================================================================
# Rendering
# =========================================================================


def render_to_dict(obj: object) -> dict | list | str | int | float | bool | None:
    """
    Convert any report dataclass to a plain dict for JSON serialization.

    Decimal, UUID, date and Enum values become strings; tuples become
    lists; nested dataclasses become nested dicts.
    """
    if obj is None:
        return None
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [render_to_dict(item) for item in obj]
    if isinstance(obj, dict):
        return {str(k): render_to_dict(v) for k, v in obj.items()}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: render_to_dict(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, (str, int, float, bool)):
        return obj
    return str(obj)
