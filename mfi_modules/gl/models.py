"""
General Ledger Domain Models (``mfi_modules.gl.models``).

Frozen snapshots returned by ``GeneralLedgerService``.  No I/O.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from mfi_kernel.domain.dtos import PostingResult
from mfi_kernel.models.account import Account
from mfi_kernel.selectors.journal_selector import JournalEntryDTO


@dataclass(frozen=True)
class AccountInfo:
    """Snapshot of a chart-of-accounts row."""

    id: UUID
    code: str
    name: str
    account_type: str
    parent_id: UUID | None
    current_balance: Decimal
    is_active: bool
    description: str | None = None

    @classmethod
    def from_model(cls, account: Account) -> "AccountInfo":
        return cls(
            id=account.id,
            code=account.code,
            name=account.name,
            account_type=account.account_type,
            parent_id=account.parent_id,
            current_balance=account.current_balance,
            is_active=account.is_active,
            description=account.description,
        )


@dataclass(frozen=True)
class JournalEntryRecord:
    """A created journal entry and, when posted at creation, its posting."""

    entry: JournalEntryDTO
    posting: PostingResult | None = None

    @property
    def entry_id(self) -> UUID:
        return self.entry.id
