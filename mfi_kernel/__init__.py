"""
MFI Kernel - Loan Amortization & Double-Entry Ledger Engine

A relational ledger kernel for a microfinance back office with:
- Balanced double-entry journal entries (debits == credits)
- One-way posting that applies running account balances atomically
- Row-level locking for same-loan / same-account serialization
- Typed, machine-readable errors
- Structured JSON logging
"""

__version__ = "0.1.0"
