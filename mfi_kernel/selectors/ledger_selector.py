"""
Module: mfi_kernel.selectors.ledger_selector
Responsibility: Read-only views over account running balances: the trial
    balance and per-account balances.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Balances follow the uniform convention (debit +, credit -).  A
      positive running balance is shown in the debit column of the trial
      balance, a negative one in the credit column as its absolute value.
    - Because every posted entry is balanced, total debits equal total
      credits on the trial balance.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from mfi_kernel.db.types import BALANCE_TOLERANCE, ZERO
from mfi_kernel.models.account import Account
from mfi_kernel.selectors.base import BaseSelector


@dataclass
class TrialBalanceRow:
    """A single row in a trial balance report."""

    account_id: UUID
    account_code: str
    account_name: str
    account_type: str
    debit_balance: Decimal
    credit_balance: Decimal

    @property
    def balance(self) -> Decimal:
        """Running balance (debit +, credit -)."""
        return self.debit_balance - self.credit_balance


@dataclass
class TrialBalance:
    """Trial balance rows with column totals."""

    rows: list[TrialBalanceRow]

    @property
    def total_debits(self) -> Decimal:
        return sum((r.debit_balance for r in self.rows), ZERO)

    @property
    def total_credits(self) -> Decimal:
        return sum((r.credit_balance for r in self.rows), ZERO)

    @property
    def is_balanced(self) -> bool:
        return abs(self.total_debits - self.total_credits) <= BALANCE_TOLERANCE


class LedgerSelector(BaseSelector):
    """Selector for balance queries."""

    def trial_balance(self, include_zero: bool = False) -> TrialBalance:
        """Trial balance over active accounts, ordered by account code."""
        stmt = (
            select(Account)
            .where(Account.is_active.is_(True))
            .order_by(Account.code)
            .execution_options(populate_existing=True)
        )
        rows: list[TrialBalanceRow] = []
        for account in self.session.execute(stmt).scalars():
            balance = account.current_balance
            if balance == ZERO and not include_zero:
                continue
            rows.append(
                TrialBalanceRow(
                    account_id=account.id,
                    account_code=account.code,
                    account_name=account.name,
                    account_type=account.account_type,
                    debit_balance=balance if balance > ZERO else ZERO,
                    credit_balance=-balance if balance < ZERO else ZERO,
                )
            )
        return TrialBalance(rows=rows)
