"""Read-only selectors over the ledger."""

from mfi_kernel.selectors.base import BaseSelector
from mfi_kernel.selectors.journal_selector import (
    JournalEntryDTO,
    JournalLineDTO,
    JournalSelector,
)
from mfi_kernel.selectors.ledger_selector import (
    LedgerSelector,
    TrialBalance,
    TrialBalanceRow,
)

__all__ = [
    "BaseSelector",
    "JournalEntryDTO",
    "JournalLineDTO",
    "JournalSelector",
    "LedgerSelector",
    "TrialBalance",
    "TrialBalanceRow",
]
