"""
Module: mfi_kernel.models.money_transaction
Responsibility: Append-only transaction ledger -- one row per money-moving
    event (loan disbursement, loan repayment), consumed by reporting and
    the dashboard.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Rows are only ever inserted (TransactionLedger has no update path).
    - related_loan_id is a plain reference, not a foreign key, so the kernel
      does not depend on module tables.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from mfi_kernel.db.base import TrackedBase, UUIDString


class TransactionType(str, Enum):
    """Kinds of money-moving events."""

    LOAN_DISBURSEMENT = "loan_disbursement"
    LOAN_PAYMENT = "loan_payment"


class MoneyTransaction(TrackedBase):
    """A single money-moving event."""

    __tablename__ = "transactions"

    __table_args__ = (
        Index("idx_transaction_type", "transaction_type"),
        Index("idx_transaction_date", "transaction_date"),
        Index("idx_transaction_loan", "related_loan_id"),
        Index("idx_transaction_client", "client_id"),
    )

    client_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    transaction_type: Mapped[str] = mapped_column(String(50), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)

    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)

    reference_number: Mapped[str] = mapped_column(String(100), nullable=False)

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    related_loan_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    journal_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<MoneyTransaction {self.transaction_type} {self.amount}>"
