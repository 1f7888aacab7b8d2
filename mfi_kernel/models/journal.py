"""
Module: mfi_kernel.models.journal
Responsibility: ORM persistence for journal entries and their detail lines.
Architecture position: Kernel > Models.  May import from db/ only.
    MUST NOT import from services/, selectors/ or outer layers.

Invariants enforced:
    - Debits == Credits per entry within 0.001 (checked by
      JournalPostingService before anything is written; is_balanced is a
      read-side convenience only).
    - Posting is one-way: is_posted flips false -> true exactly once, and
      posted_at / posted_by_id are set only then.
    - At most one of debit_amount / credit_amount is non-zero per line
      (validated by the posting service, not by the column types).

Failure modes:
    - UnbalancedJournalEntryError at creation if debits != credits.
    - AlreadyPostedError on a second posting attempt.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mfi_kernel.db.base import TrackedBase, UUIDString
from mfi_kernel.db.types import BALANCE_TOLERANCE

if TYPE_CHECKING:
    from mfi_kernel.models.account import Account


class JournalEntry(TrackedBase):
    """
    Journal entry header -- the unit of double-entry bookkeeping.

    Contract:
        Created unposted.  Posting applies every detail line to its
        account's running balance and stamps posted_at / posted_by_id.
        There is no unposting.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        Index("idx_journal_entry_date", "entry_date"),
        Index("idx_journal_posted", "is_posted"),
        Index("idx_journal_reference", "reference_number"),
    )

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    is_posted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    posted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    posted_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    details: Mapped[list["JournalEntryDetail"]] = relationship(
        back_populates="entry",
        order_by="JournalEntryDetail.line_seq",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        state = "posted" if self.is_posted else "unposted"
        return f"<JournalEntry {self.reference_number or self.id} {state}>"

    @property
    def total_debits(self) -> Decimal:
        return sum((d.debit_amount for d in self.details), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        return sum((d.credit_amount for d in self.details), Decimal("0"))

    @property
    def is_balanced(self) -> bool:
        return abs(self.total_debits - self.total_credits) <= BALANCE_TOLERANCE


class JournalEntryDetail(TrackedBase):
    """One debit or credit line of a journal entry."""

    __tablename__ = "journal_entry_details"

    __table_args__ = (
        Index("idx_journal_detail_entry", "journal_entry_id"),
        Index("idx_journal_detail_account", "account_id"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    debit_amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2),
        default=Decimal("0"),
        nullable=False,
    )

    credit_amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2),
        default=Decimal("0"),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    line_seq: Mapped[int] = mapped_column(Integer, nullable=False)

    entry: Mapped["JournalEntry"] = relationship(back_populates="details")

    account: Mapped["Account"] = relationship(back_populates="journal_details")

    @property
    def net_amount(self) -> Decimal:
        """Balance effect of this line: debit adds, credit subtracts."""
        return self.debit_amount - self.credit_amount
