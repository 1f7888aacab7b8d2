"""
Lending Posting Profiles.

The journal lines a lending event produces, expressed in account ROLES.
``LoanService`` resolves roles to accounts through ``LoanConfig`` and
hands the lines to the kernel ``JournalPostingService``.

Profiles:
    LoanDisbursed   -- Dr loan portfolio / Cr cash for the principal;
                       Dr cash / Cr fee income for a processing fee.
    LoanRepayment   -- Dr cash for amount + late fee;
                       Cr loan portfolio (principal), Cr interest income
                       (interest), Cr fee income (late fee), Cr client
                       deposits (anything paid above the installment).

Zero-amount lines are never emitted.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID

from mfi_kernel.db.types import ZERO, round_money
from mfi_kernel.domain.dtos import JournalLineSpec


class AccountRole(Enum):
    """Logical account roles for lending."""

    CASH = "cash"
    LOAN_PORTFOLIO = "loan_portfolio"
    CLIENT_DEPOSITS = "client_deposits"
    INTEREST_INCOME = "interest_income"
    FEE_INCOME = "fee_income"


@dataclass(frozen=True)
class PaymentAllocation:
    """How one installment payment splits across principal, interest, fees."""

    amount: Decimal
    principal: Decimal
    interest: Decimal
    late_fee: Decimal
    overpayment: Decimal

    @property
    def cash_received(self) -> Decimal:
        return self.amount + self.late_fee


def principal_due(scheduled: Decimal, outstanding: Decimal, final: bool) -> Decimal:
    """
    Principal one installment collects.

    Rows are rounded independently, so their principals need not add up to
    the loan.  The final installment collects whatever is still
    outstanding; earlier ones never collect more than that.
    """
    if final:
        return outstanding
    return min(scheduled, outstanding)


def allocate_payment(
    amount: Decimal,
    principal: Decimal,
    interest: Decimal,
    late_fee: Decimal = ZERO,
) -> PaymentAllocation:
    """
    Split ``amount`` over an installment: principal first, then interest,
    the rest is overpayment.  ``late_fee`` is collected on top of
    ``amount``.

    Scheduled principal and interest are each rounded, so their sum can
    exceed the rounded EMI by a cent; interest then takes the shortfall.
    """
    amount = round_money(amount)
    principal_part = min(principal, amount)
    interest_part = min(interest, amount - principal_part)
    return PaymentAllocation(
        amount=amount,
        principal=principal_part,
        interest=interest_part,
        late_fee=round_money(late_fee),
        overpayment=amount - principal_part - interest_part,
    )


def _line(accounts: dict[AccountRole, UUID], role: AccountRole, debit=ZERO, credit=ZERO, memo=None):
    return JournalLineSpec(
        account_id=accounts[role],
        debit=debit,
        credit=credit,
        description=memo,
    )


def disbursement_lines(
    accounts: dict[AccountRole, UUID],
    principal: Decimal,
    processing_fee: Decimal = ZERO,
) -> list[JournalLineSpec]:
    """LoanDisbursed profile."""
    lines = [
        _line(accounts, AccountRole.LOAN_PORTFOLIO, debit=principal, memo="Loan principal disbursed"),
        _line(accounts, AccountRole.CASH, credit=principal, memo="Loan principal disbursed"),
    ]
    if processing_fee > ZERO:
        lines.append(_line(accounts, AccountRole.CASH, debit=processing_fee, memo="Processing fee collected"))
        lines.append(_line(accounts, AccountRole.FEE_INCOME, credit=processing_fee, memo="Processing fee"))
    return lines


def repayment_lines(
    accounts: dict[AccountRole, UUID],
    allocation: PaymentAllocation,
) -> list[JournalLineSpec]:
    """LoanRepayment profile."""
    lines = [
        _line(accounts, AccountRole.CASH, debit=allocation.cash_received, memo="Installment payment received"),
    ]
    credits = (
        (AccountRole.LOAN_PORTFOLIO, allocation.principal, "Principal repaid"),
        (AccountRole.INTEREST_INCOME, allocation.interest, "Interest earned"),
        (AccountRole.FEE_INCOME, allocation.late_fee, "Late payment fee"),
        (AccountRole.CLIENT_DEPOSITS, allocation.overpayment, "Overpayment held for client"),
    )
    for role, amount, memo in credits:
        if amount > ZERO:
            lines.append(_line(accounts, role, credit=amount, memo=memo))
    return lines
