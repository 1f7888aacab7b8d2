"""
Module: mfi_kernel.selectors.journal_selector
Responsibility: Read-only query access to journal entries and their detail
    lines.  Converts ORM rows to DTOs.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Lines are ordered by line_seq.
    - Multi-entry results are ordered by entry_date, then created_at.

Failure modes:
    - Returns None or an empty list when nothing matches; never raises on
      absence of data.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from mfi_kernel.db.types import BALANCE_TOLERANCE
from mfi_kernel.models.journal import JournalEntry, JournalEntryDetail
from mfi_kernel.selectors.base import BaseSelector


@dataclass
class JournalLineDTO:
    """Data transfer object for a journal entry detail line."""

    id: UUID
    account_id: UUID
    account_code: str
    account_name: str
    debit_amount: Decimal
    credit_amount: Decimal
    description: str | None
    line_seq: int


@dataclass
class JournalEntryDTO:
    """Data transfer object for a journal entry."""

    id: UUID
    entry_date: date
    reference_number: str | None
    description: str | None
    is_posted: bool
    posted_at: datetime | None
    posted_by_id: UUID | None
    created_by_id: UUID
    lines: list[JournalLineDTO]

    @property
    def total_debits(self) -> Decimal:
        return sum((line.debit_amount for line in self.lines), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        return sum((line.credit_amount for line in self.lines), Decimal("0"))

    @property
    def is_balanced(self) -> bool:
        return abs(self.total_debits - self.total_credits) <= BALANCE_TOLERANCE


class JournalSelector(BaseSelector):
    """
    Selector for journal entry queries.

    Guarantees:
        - Details and their accounts are eager-loaded to avoid N+1 queries.
    """

    def _query(self):
        return (
            select(JournalEntry)
            .options(selectinload(JournalEntry.details).selectinload(JournalEntryDetail.account))
            .execution_options(populate_existing=True)
        )

    def _to_dto(self, entry: JournalEntry) -> JournalEntryDTO:
        lines = [
            JournalLineDTO(
                id=detail.id,
                account_id=detail.account_id,
                account_code=detail.account.code,
                account_name=detail.account.name,
                debit_amount=detail.debit_amount,
                credit_amount=detail.credit_amount,
                description=detail.description,
                line_seq=detail.line_seq,
            )
            for detail in sorted(entry.details, key=lambda d: d.line_seq)
        ]
        return JournalEntryDTO(
            id=entry.id,
            entry_date=entry.entry_date,
            reference_number=entry.reference_number,
            description=entry.description,
            is_posted=entry.is_posted,
            posted_at=entry.posted_at,
            posted_by_id=entry.posted_by_id,
            created_by_id=entry.created_by_id,
            lines=lines,
        )

    def get_entry(self, entry_id: UUID) -> JournalEntryDTO | None:
        entry = self.session.execute(
            self._query().where(JournalEntry.id == entry_id)
        ).scalar_one_or_none()
        return self._to_dto(entry) if entry is not None else None

    def list_entries(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
        is_posted: bool | None = None,
        reference_number: str | None = None,
    ) -> list[JournalEntryDTO]:
        """
        Entries filtered by inclusive date range and posted flag.

        Any filter left as None is not applied.
        """
        stmt = self._query()
        if start_date is not None:
            stmt = stmt.where(JournalEntry.entry_date >= start_date)
        if end_date is not None:
            stmt = stmt.where(JournalEntry.entry_date <= end_date)
        if is_posted is not None:
            stmt = stmt.where(JournalEntry.is_posted.is_(is_posted))
        if reference_number is not None:
            stmt = stmt.where(JournalEntry.reference_number == reference_number)
        stmt = stmt.order_by(JournalEntry.entry_date, JournalEntry.created_at)
        return [self._to_dto(e) for e in self.session.execute(stmt).scalars()]
