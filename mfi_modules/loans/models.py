"""
Lending Domain Models (``mfi_modules.loans.models``).

Responsibility
--------------
Frozen value objects for the nouns of lending: products, loans, scheduled
installments, payments, and the results returned by ``LoanService``.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O, no database.  ORM
rows in ``orm.py`` convert to these through ``to_dto()``.

Invariants enforced
-------------------
* All monetary fields are ``Decimal``; never ``float``.
* All dataclasses are ``frozen=True``.
* ``LoanStatus.can_transition_to`` is the single definition of the loan
  state machine: pending -> active -> closed | defaulted.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from mfi_kernel.domain.dtos import PostingResult


class CalculationMethod(str, Enum):
    """How interest is computed over the tenure."""

    FLAT = "flat"
    DIMINISHING = "diminishing"


class LoanStatus(str, Enum):
    """Loan lifecycle states.  ``closed`` and ``defaulted`` are terminal."""

    PENDING = "pending"
    ACTIVE = "active"
    CLOSED = "closed"
    DEFAULTED = "defaulted"

    def can_transition_to(self, target: "LoanStatus") -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS: dict[LoanStatus, frozenset[LoanStatus]] = {
    LoanStatus.PENDING: frozenset({LoanStatus.ACTIVE}),
    LoanStatus.ACTIVE: frozenset({LoanStatus.CLOSED, LoanStatus.DEFAULTED}),
    LoanStatus.CLOSED: frozenset(),
    LoanStatus.DEFAULTED: frozenset(),
}


@dataclass(frozen=True)
class LoanTerms:
    """
    Calculator output for one (principal, rate, tenure, method).

    ``principal_per_period`` and ``interest_per_period`` are constant only
    in flat mode; they are None for diminishing loans.
    """

    calculation_method: CalculationMethod
    principal: Decimal
    annual_rate: Decimal
    tenure_months: int
    emi: Decimal
    total_interest: Decimal
    total_amount: Decimal
    principal_per_period: Decimal | None = None
    interest_per_period: Decimal | None = None


@dataclass(frozen=True)
class ScheduledInstallment:
    """One row of an amortization schedule."""

    installment_number: int
    due_date: date
    emi_amount: Decimal
    principal_amount: Decimal
    interest_amount: Decimal
    remaining_principal: Decimal
    is_paid: bool = False
    paid_date: date | None = None
    payment_reference: str | None = None


@dataclass(frozen=True)
class LoanProduct:
    """A configured loan product (``loan_types`` in the back office)."""

    id: UUID
    name: str
    description: str | None
    min_amount: Decimal
    max_amount: Decimal
    min_tenure_months: int
    max_tenure_months: int
    default_interest_rate: Decimal
    processing_fee: Decimal
    late_fee: Decimal
    is_active: bool


@dataclass(frozen=True)
class Loan:
    """Snapshot of a loan row."""

    id: UUID
    client_id: UUID
    product_id: UUID | None
    calculation_method: CalculationMethod
    principal: Decimal
    annual_rate: Decimal
    tenure_months: int
    disbursement_date: date
    end_date: date
    emi_amount: Decimal
    total_interest: Decimal
    total_amount: Decimal
    processing_fee: Decimal
    remaining_amount: Decimal
    status: LoanStatus
    disbursed_at: datetime | None = None
    closed_at: datetime | None = None


@dataclass(frozen=True)
class Payment:
    """Snapshot of a recorded installment payment."""

    id: UUID
    loan_id: UUID
    installment_number: int
    amount: Decimal
    principal_amount: Decimal
    interest_amount: Decimal
    late_fee: Decimal
    payment_date: date
    due_date: date
    is_late: bool
    remaining_principal: Decimal
    transaction_reference: str
    notes: str | None = None


@dataclass(frozen=True)
class CreatedLoan:
    """Result of ``LoanService.create_loan``."""

    loan: Loan
    schedule: tuple[ScheduledInstallment, ...]


@dataclass(frozen=True)
class DisbursementResult:
    """Result of ``LoanService.disburse``."""

    loan: Loan
    transaction_id: UUID
    posting: PostingResult | None = None


@dataclass(frozen=True)
class PaymentReceipt:
    """Result of ``LoanService.record_payment``."""

    payment: Payment
    loan_status: LoanStatus
    remaining_amount: Decimal
    transaction_id: UUID
    posting: PostingResult | None = None

    @property
    def loan_closed(self) -> bool:
        return self.loan_status is LoanStatus.CLOSED

    @property
    def overpayment(self) -> Decimal:
        return self.payment.amount - self.payment.principal_amount - self.payment.interest_amount


@dataclass(frozen=True)
class LoanDetail:
    """A loan with its schedule and payment history."""

    loan: Loan
    schedule: tuple[ScheduledInstallment, ...] = field(default_factory=tuple)
    payments: tuple[Payment, ...] = field(default_factory=tuple)

    @property
    def paid_count(self) -> int:
        return sum(1 for row in self.schedule if row.is_paid)

    @property
    def next_due(self) -> ScheduledInstallment | None:
        for row in self.schedule:
            if not row.is_paid:
                return row
        return None
