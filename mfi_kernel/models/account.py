"""
Module: mfi_kernel.models.account
Responsibility: ORM persistence for the Chart of Accounts (COA) -- the target
    of every journal entry detail line, and the holder of running balances.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - code is unique (uq_account_code).
    - current_balance is mutated ONLY by JournalPostingService inside a
      posting unit of work (SQL-side increment under row lock).

Failure modes:
    - AccountNotFoundError when a detail line references a missing account.
    - AccountInactiveError when a detail line targets an inactive account.
    - DuplicateAccountCodeError when a code is reused.

Audit relevance:
    Balances use a uniform sign convention: a debit adds to the balance and
    a credit subtracts from it, for every account type.  Liability, equity
    and revenue accounts therefore carry negative balances when they hold
    their usual credit-side amounts.
"""

from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mfi_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from mfi_kernel.models.journal import JournalEntryDetail


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class Account(TrackedBase):
    """
    Chart of Accounts entry -- a single node in the ledger hierarchy.

    Contract:
        Account.code is globally unique.  current_balance starts at zero and
        only changes when a journal entry referencing the account is posted.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("code", name="uq_account_code"),
        Index("idx_account_type", "account_type"),
        Index("idx_account_active", "is_active"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    account_type: Mapped[str] = mapped_column(String(20), nullable=False)

    parent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=True,
    )

    current_balance: Mapped[Decimal] = mapped_column(
        Numeric(18, 2),
        default=Decimal("0"),
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    journal_details: Mapped[list["JournalEntryDetail"]] = relationship(
        back_populates="account",
        lazy="dynamic",
    )

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"

    @property
    def type(self) -> AccountType:
        return AccountType(self.account_type)
