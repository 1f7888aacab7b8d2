"""
Repository interfaces for kernel entities.

Services depend on these abstract interfaces; the SQLAlchemy
implementations are the only ones that touch the Session API.
"""

from mfi_kernel.repositories.account_repository import (
    AccountRepository,
    SqlAlchemyAccountRepository,
)
from mfi_kernel.repositories.journal_repository import (
    JournalEntryRepository,
    SqlAlchemyJournalEntryRepository,
)

__all__ = [
    "AccountRepository",
    "SqlAlchemyAccountRepository",
    "JournalEntryRepository",
    "SqlAlchemyJournalEntryRepository",
]
