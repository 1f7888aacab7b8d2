"""General ledger module: chart of accounts and manual journal entries."""

from mfi_modules.gl.models import AccountInfo, JournalEntryRecord
from mfi_modules.gl.service import GeneralLedgerService

__all__ = ["AccountInfo", "GeneralLedgerService", "JournalEntryRecord"]
