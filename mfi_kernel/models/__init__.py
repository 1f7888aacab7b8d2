"""Kernel ORM models: chart of accounts, journal, transaction ledger."""

from mfi_kernel.models.account import Account, AccountType
from mfi_kernel.models.journal import JournalEntry, JournalEntryDetail
from mfi_kernel.models.money_transaction import MoneyTransaction, TransactionType

__all__ = [
    "Account",
    "AccountType",
    "JournalEntry",
    "JournalEntryDetail",
    "MoneyTransaction",
    "TransactionType",
]
