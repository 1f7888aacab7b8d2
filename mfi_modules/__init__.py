"""
MFI Modules.

Orchestration layers over the MFI kernel:

- loans: EMI calculator, amortization scheduler, loan lifecycle
- gl: chart of accounts and manual journal entries
- reporting: trial balance, loan portfolio, journal listing

Module services own the transaction boundary; kernel services only flush.
"""
