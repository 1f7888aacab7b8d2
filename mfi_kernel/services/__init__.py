"""Kernel services.  All flush within the caller's transaction; none commit."""

from mfi_kernel.services.account_service import AccountService
from mfi_kernel.services.base import BaseService
from mfi_kernel.services.journal_posting_service import (
    JournalEntryResult,
    JournalPostingService,
    ValidatedLine,
)
from mfi_kernel.services.transaction_ledger import TransactionLedger

__all__ = [
    "AccountService",
    "BaseService",
    "JournalEntryResult",
    "JournalPostingService",
    "TransactionLedger",
    "ValidatedLine",
]
