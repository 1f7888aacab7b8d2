"""
Reporting Module Service (``mfi_modules.reporting.service``).

Responsibility
--------------
Builds the trial balance, loan portfolio and journal listing by bridging
the kernel selectors (``LedgerSelector``, ``JournalSelector``) and the loan
repository to the pure functions in ``statements.py``.  This is a
**read-only** service: nothing is posted or updated.

Architecture position
---------------------
**Modules layer**.  Constructor: ``session`` + ``clock``.

Invariants enforced
-------------------
* Read-only -- no mutations, no commit.
* All monetary amounts use ``Decimal`` -- NEVER ``float``.
* The trial balance reads running balances, which are current balances;
  ``as_of_date`` on a trial balance is recorded in the metadata only.

Failure modes
-------------
* Selector query failure  -> exception propagates (read-only, nothing to
  roll back).
* ``start_date`` after ``end_date``  -> ``ValueError`` before any query.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy.orm import Session

from mfi_kernel.domain.clock import Clock, SystemClock
from mfi_kernel.logging_config import get_logger
from mfi_kernel.selectors.journal_selector import JournalSelector
from mfi_kernel.selectors.ledger_selector import LedgerSelector
from mfi_modules.loans.models import LoanStatus
from mfi_modules.loans.repository import LoanRepository, SqlAlchemyLoanRepository
from mfi_modules.reporting.models import (
    JournalListingReport,
    LoanPortfolioReport,
    ReportMetadata,
    ReportType,
    TrialBalanceReport,
)
from mfi_modules.reporting.statements import (
    build_journal_listing,
    build_loan_portfolio,
    build_trial_balance,
)

logger = get_logger("modules.reporting.service")


class ReportingService:
    """
    Report generation service.

    Contract
    --------
    * Every public method returns a frozen report DTO.
    * Clock is injectable for deterministic ``generated_at`` stamps.

    Non-goals
    ---------
    * Does NOT render PDF or CSV; ``render_to_dict`` gives a JSON-ready dict.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        loans: LoanRepository | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._ledger = LedgerSelector(session)
        self._journal = JournalSelector(session)
        self._loans = loans or SqlAlchemyLoanRepository(session)

    def _build_metadata(
        self,
        report_type: ReportType,
        as_of_date: date | None,
        period_start: date | None = None,
        period_end: date | None = None,
    ) -> ReportMetadata:
        """Build report metadata with injected clock timestamp."""
        return ReportMetadata(
            report_type=report_type,
            as_of_date=as_of_date or self._clock.today(),
            generated_at=self._clock.now().isoformat(),
            period_start=period_start,
            period_end=period_end,
        )

    # =========================================================================
    # Public API
    # =========================================================================

    def trial_balance(
        self,
        as_of_date: date | None = None,
        include_zero: bool = False,
    ) -> TrialBalanceReport:
        """
        Trial balance over active accounts.

        Positive running balances land in the debit column, negative ones
        in the credit column as absolute values.
        """
        metadata = self._build_metadata(ReportType.TRIAL_BALANCE, as_of_date)
        rows = self._ledger.trial_balance(include_zero=include_zero).rows
        report = build_trial_balance(rows, metadata)

        logger.info(
            "trial_balance_generated",
            extra={
                "as_of_date": metadata.as_of_date.isoformat(),
                "line_count": len(report.lines),
                "total_debits": str(report.total_debits),
                "total_credits": str(report.total_credits),
                "is_balanced": report.is_balanced,
            },
        )
        if not report.is_balanced:
            logger.error(
                "trial_balance_out_of_balance",
                extra={
                    "total_debits": str(report.total_debits),
                    "total_credits": str(report.total_credits),
                },
            )
        return report

    def loan_portfolio(
        self,
        status: LoanStatus | str | None = LoanStatus.ACTIVE,
        as_of_date: date | None = None,
    ) -> LoanPortfolioReport:
        """
        Loans disbursed on or before ``as_of_date`` (default: today).

        Args:
            status: Status to list; None lists every status.
            as_of_date: Cutoff on the disbursement date.
        """
        status_filter = LoanStatus(status) if status is not None else None
        metadata = self._build_metadata(ReportType.LOAN_PORTFOLIO, as_of_date)

        loans = [
            model.to_dto()
            for model in self._loans.list_loans(
                disbursed_on_or_before=metadata.as_of_date,
            )
        ]
        report = build_loan_portfolio(loans, metadata, status_filter)

        logger.info(
            "loan_portfolio_generated",
            extra={
                "as_of_date": metadata.as_of_date.isoformat(),
                "status": status_filter.value if status_filter else "all",
                "loan_count": report.total_count,
                "total_principal": str(report.total_principal),
                "total_remaining": str(report.total_remaining),
            },
        )
        return report

    def journal_listing(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
        is_posted: bool | None = None,
    ) -> JournalListingReport:
        """
        Journal entries between two dates inclusive, with their lines.

        Passing the same date twice gives the day book for that date.
        """
        if start_date is not None and end_date is not None and start_date > end_date:
            raise ValueError(
                f"start_date {start_date} is after end_date {end_date}"
            )
        metadata = self._build_metadata(
            ReportType.JOURNAL_LISTING,
            end_date,
            period_start=start_date,
            period_end=end_date,
        )
        entries = self._journal.list_entries(
            start_date=start_date,
            end_date=end_date,
            is_posted=is_posted,
        )
        report = build_journal_listing(entries, metadata)

        logger.info(
            "journal_listing_generated",
            extra={
                "start_date": start_date.isoformat() if start_date else None,
                "end_date": end_date.isoformat() if end_date else None,
                "entry_count": report.entry_count,
            },
        )
        return report
