"""
Lending ORM Models (``mfi_modules.loans.orm``).

Responsibility
--------------
SQLAlchemy persistence for loan products, loans, their installment
schedules and recorded payments.  Each model converts to the frozen
dataclass of the same name in ``models.py`` via ``to_dto()``.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``mfi_kernel.db`` and
sibling ``models.py``.  MUST NOT be imported by ``mfi_kernel``.

Invariants enforced
-------------------
* (loan_id, installment_number) is unique on both ``loan_installments``
  and ``loan_payments``: one schedule row and at most one payment per
  installment.
* Loan and schedule rows are written in one unit of work by
  ``LoanService.create_loan``.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mfi_kernel.db.base import TrackedBase, UUIDString
from mfi_modules.loans.models import (
    CalculationMethod,
    Loan,
    LoanProduct,
    LoanStatus,
    Payment,
    ScheduledInstallment,
)


# ---------------------------------------------------------------------------
# 1. LoanProductModel
# ---------------------------------------------------------------------------


class LoanProductModel(TrackedBase):
    """
    ORM model for loan products.

    Guarantees:
        - name is unique (uq_loan_product_name).
        - min_amount <= max_amount and min_tenure <= max_tenure are checked
          by ``LoanService.create_product``.
    """

    __tablename__ = "loan_products"

    __table_args__ = (
        UniqueConstraint("name", name="uq_loan_product_name"),
        Index("idx_loan_product_active", "is_active"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    min_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    max_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    min_tenure_months: Mapped[int] = mapped_column(Integer, nullable=False)
    max_tenure_months: Mapped[int] = mapped_column(Integer, nullable=False)
    default_interest_rate: Mapped[Decimal] = mapped_column(Numeric(9, 4), nullable=False)
    processing_fee: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    late_fee: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    def to_dto(self) -> LoanProduct:
        return LoanProduct(
            id=self.id,
            name=self.name,
            description=self.description,
            min_amount=self.min_amount,
            max_amount=self.max_amount,
            min_tenure_months=self.min_tenure_months,
            max_tenure_months=self.max_tenure_months,
            default_interest_rate=self.default_interest_rate,
            processing_fee=self.processing_fee,
            late_fee=self.late_fee,
            is_active=self.is_active,
        )


# ---------------------------------------------------------------------------
# 2. LoanModel
# ---------------------------------------------------------------------------


class LoanModel(TrackedBase):
    """
    ORM model for a loan.

    ``client_id`` is an opaque reference to the client registry, which
    lives outside this engine.
    """

    __tablename__ = "loans"

    __table_args__ = (
        Index("idx_loan_client", "client_id"),
        Index("idx_loan_status", "status"),
        Index("idx_loan_disbursement_date", "disbursement_date"),
    )

    client_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    product_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("loan_products.id"), nullable=True
    )
    calculation_method: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    interest_rate: Mapped[Decimal] = mapped_column(Numeric(9, 4), nullable=False)
    tenure_months: Mapped[int] = mapped_column(Integer, nullable=False)
    disbursement_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    emi_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    total_interest: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    processing_fee: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    remaining_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=LoanStatus.PENDING.value)
    disbursed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    installments: Mapped[list["InstallmentModel"]] = relationship(
        back_populates="loan",
        order_by="InstallmentModel.installment_number",
        cascade="all, delete-orphan",
    )
    payments: Mapped[list["LoanPaymentModel"]] = relationship(
        back_populates="loan",
        order_by="LoanPaymentModel.installment_number",
    )

    def to_dto(self) -> Loan:
        return Loan(
            id=self.id,
            client_id=self.client_id,
            product_id=self.product_id,
            calculation_method=CalculationMethod(self.calculation_method),
            principal=self.amount,
            annual_rate=self.interest_rate,
            tenure_months=self.tenure_months,
            disbursement_date=self.disbursement_date,
            end_date=self.end_date,
            emi_amount=self.emi_amount,
            total_interest=self.total_interest,
            total_amount=self.total_amount,
            processing_fee=self.processing_fee,
            remaining_amount=self.remaining_amount,
            status=LoanStatus(self.status),
            disbursed_at=self.disbursed_at,
            closed_at=self.closed_at,
        )


# ---------------------------------------------------------------------------
# 3. InstallmentModel
# ---------------------------------------------------------------------------


class InstallmentModel(TrackedBase):
    """One scheduled installment.  ``is_paid`` flips false -> true exactly once."""

    __tablename__ = "loan_installments"

    __table_args__ = (
        UniqueConstraint("loan_id", "installment_number", name="uq_loan_installment_number"),
        Index("idx_installment_due_date", "due_date"),
        Index("idx_installment_paid", "is_paid"),
    )

    loan_id: Mapped[UUID] = mapped_column(UUIDString(), ForeignKey("loans.id"), nullable=False)
    installment_number: Mapped[int] = mapped_column(Integer, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    emi_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    principal_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    interest_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    remaining_principal: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False)
    paid_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payment_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    loan: Mapped["LoanModel"] = relationship(back_populates="installments")

    @classmethod
    def from_scheduled(
        cls,
        row: ScheduledInstallment,
        actor_id: UUID,
    ) -> "InstallmentModel":
        return cls(
            installment_number=row.installment_number,
            due_date=row.due_date,
            emi_amount=row.emi_amount,
            principal_amount=row.principal_amount,
            interest_amount=row.interest_amount,
            remaining_principal=row.remaining_principal,
            is_paid=False,
            created_by_id=actor_id,
        )

    def to_dto(self) -> ScheduledInstallment:
        return ScheduledInstallment(
            installment_number=self.installment_number,
            due_date=self.due_date,
            emi_amount=self.emi_amount,
            principal_amount=self.principal_amount,
            interest_amount=self.interest_amount,
            remaining_principal=self.remaining_principal,
            is_paid=self.is_paid,
            paid_date=self.paid_date,
            payment_reference=self.payment_reference,
        )


# ---------------------------------------------------------------------------
# 4. LoanPaymentModel
# ---------------------------------------------------------------------------


class LoanPaymentModel(TrackedBase):
    """
    A payment applied to one installment.

    Guarantees:
        - At most one payment per (loan_id, installment_number)
          (uq_loan_payment_installment).  A concurrent second payment for
          the same installment fails on this constraint.
    """

    __tablename__ = "loan_payments"

    __table_args__ = (
        UniqueConstraint("loan_id", "installment_number", name="uq_loan_payment_installment"),
        Index("idx_loan_payment_date", "payment_date"),
    )

    loan_id: Mapped[UUID] = mapped_column(UUIDString(), ForeignKey("loans.id"), nullable=False)
    installment_number: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    principal_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    interest_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    late_fee: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_late: Mapped[bool] = mapped_column(Boolean, default=False)
    remaining_principal: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    transaction_reference: Mapped[str] = mapped_column(String(100), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    journal_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("journal_entries.id"), nullable=True
    )

    loan: Mapped["LoanModel"] = relationship(back_populates="payments")

    def to_dto(self) -> Payment:
        return Payment(
            id=self.id,
            loan_id=self.loan_id,
            installment_number=self.installment_number,
            amount=self.amount,
            principal_amount=self.principal_amount,
            interest_amount=self.interest_amount,
            late_fee=self.late_fee,
            payment_date=self.payment_date,
            due_date=self.due_date,
            is_late=self.is_late,
            remaining_principal=self.remaining_principal,
            transaction_reference=self.transaction_reference,
            notes=self.notes,
        )
