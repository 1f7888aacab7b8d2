"""
Data Transfer Objects for the ledger kernel.

Frozen dataclasses passed across the service boundary.  ZERO I/O.

- JournalLineSpec: one requested debit/credit line of a new entry.
- BalanceChange / PostingResult: the observable effect of posting an entry.
  Running balances are exposed to callers only through these.
- AccountUpdate: explicit partial update for a chart-of-accounts node.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


@dataclass(frozen=True)
class JournalLineSpec:
    """A requested journal entry detail line."""

    account_id: UUID
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    description: str | None = None

    @classmethod
    def debit_line(cls, account_id: UUID, amount: Decimal, description: str | None = None) -> "JournalLineSpec":
        return cls(account_id=account_id, debit=amount, description=description)

    @classmethod
    def credit_line(cls, account_id: UUID, amount: Decimal, description: str | None = None) -> "JournalLineSpec":
        return cls(account_id=account_id, credit=amount, description=description)


@dataclass(frozen=True)
class BalanceChange:
    """Net effect of one posting on one account."""

    account_id: UUID
    account_code: str
    delta: Decimal
    new_balance: Decimal


@dataclass(frozen=True)
class PostingResult:
    """Outcome of posting a journal entry."""

    entry_id: UUID
    reference_number: str | None
    entry_date: date
    posted_at: datetime
    posted_by_id: UUID
    balance_changes: tuple[BalanceChange, ...] = field(default_factory=tuple)

    def change_for(self, account_id: UUID) -> BalanceChange | None:
        for change in self.balance_changes:
            if change.account_id == account_id:
                return change
        return None


class _Unchanged(Enum):
    UNCHANGED = "unchanged"

    def __repr__(self) -> str:
        return "UNCHANGED"


UNCHANGED = _Unchanged.UNCHANGED


@dataclass(frozen=True)
class AccountUpdate:
    """
    Partial update of an Account.

    A field left as ``UNCHANGED`` is not touched.  ``None`` clears
    ``parent_id`` (making the account top-level) or ``description``.
    The update set is fixed by this type: code, type and current_balance
    can never be changed through it.
    """

    name: str | _Unchanged = UNCHANGED
    is_active: bool | _Unchanged = UNCHANGED
    parent_id: UUID | None | _Unchanged = UNCHANGED
    description: str | None | _Unchanged = UNCHANGED

    def changed_fields(self) -> dict[str, object]:
        return {
            name: value
            for name, value in (
                ("name", self.name),
                ("is_active", self.is_active),
                ("parent_id", self.parent_id),
                ("description", self.description),
            )
            if value is not UNCHANGED
        }
