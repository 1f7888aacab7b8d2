"""
LoanRepository -- persistence interface for loans and their schedules.

Contract:
    ``get_for_update`` locks the loan row (SELECT ... FOR UPDATE) so that
    payments, disbursement and default of one loan serialize.
    ``mark_installment_paid`` is a compare-and-swap on ``is_paid``: of two
    concurrent payments for the same installment exactly one wins.
"""

from abc import ABC, abstractmethod
from datetime import date
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, selectinload

from mfi_modules.loans.orm import (
    InstallmentModel,
    LoanModel,
    LoanPaymentModel,
    LoanProductModel,
)


class LoanRepository(ABC):
    """Persistence operations on loans, installments, payments and products."""

    @abstractmethod
    def add_product(self, product: LoanProductModel) -> LoanProductModel: ...

    @abstractmethod
    def get_product(self, product_id: UUID) -> LoanProductModel | None: ...

    @abstractmethod
    def get_product_by_name(self, name: str) -> LoanProductModel | None: ...

    @abstractmethod
    def list_products(self, active_only: bool = False) -> list[LoanProductModel]: ...

    @abstractmethod
    def add(self, loan: LoanModel) -> LoanModel: ...

    @abstractmethod
    def get(self, loan_id: UUID) -> LoanModel | None: ...

    @abstractmethod
    def get_for_update(self, loan_id: UUID) -> LoanModel | None: ...

    @abstractmethod
    def list_loans(
        self,
        status: str | None = None,
        disbursed_on_or_before: date | None = None,
    ) -> list[LoanModel]: ...

    @abstractmethod
    def get_installment(self, loan_id: UUID, installment_number: int) -> InstallmentModel | None: ...

    @abstractmethod
    def mark_installment_paid(
        self,
        loan_id: UUID,
        installment_number: int,
        paid_date: date,
        payment_reference: str,
        actor_id: UUID,
    ) -> bool: ...

    @abstractmethod
    def count_unpaid(self, loan_id: UUID) -> int: ...

    @abstractmethod
    def add_payment(self, payment: LoanPaymentModel) -> LoanPaymentModel: ...

    @abstractmethod
    def payments(self, loan_id: UUID) -> list[LoanPaymentModel]: ...


class SqlAlchemyLoanRepository(LoanRepository):
    """LoanRepository backed by a SQLAlchemy Session."""

    def __init__(self, session: Session):
        self._session = session

    # Products

    def add_product(self, product: LoanProductModel) -> LoanProductModel:
        self._session.add(product)
        self._session.flush()
        return product

    def get_product(self, product_id: UUID) -> LoanProductModel | None:
        return self._session.get(LoanProductModel, product_id)

    def get_product_by_name(self, name: str) -> LoanProductModel | None:
        return self._session.execute(
            select(LoanProductModel).where(LoanProductModel.name == name)
        ).scalar_one_or_none()

    def list_products(self, active_only: bool = False) -> list[LoanProductModel]:
        stmt = select(LoanProductModel).order_by(LoanProductModel.name)
        if active_only:
            stmt = stmt.where(LoanProductModel.is_active.is_(True))
        return list(self._session.execute(stmt).scalars())

    # Loans

    def add(self, loan: LoanModel) -> LoanModel:
        self._session.add(loan)
        self._session.flush()
        return loan

    def get(self, loan_id: UUID) -> LoanModel | None:
        return self._session.execute(
            select(LoanModel)
            .where(LoanModel.id == loan_id)
            .options(selectinload(LoanModel.installments), selectinload(LoanModel.payments))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_for_update(self, loan_id: UUID) -> LoanModel | None:
        return self._session.execute(
            select(LoanModel)
            .where(LoanModel.id == loan_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def list_loans(
        self,
        status: str | None = None,
        disbursed_on_or_before: date | None = None,
    ) -> list[LoanModel]:
        stmt = (
            select(LoanModel)
            .order_by(LoanModel.disbursement_date, LoanModel.created_at)
            .execution_options(populate_existing=True)
        )
        if status is not None:
            stmt = stmt.where(LoanModel.status == status)
        if disbursed_on_or_before is not None:
            stmt = stmt.where(LoanModel.disbursement_date <= disbursed_on_or_before)
        return list(self._session.execute(stmt).scalars())

    # Installments

    def get_installment(self, loan_id: UUID, installment_number: int) -> InstallmentModel | None:
        return self._session.execute(
            select(InstallmentModel)
            .where(
                InstallmentModel.loan_id == loan_id,
                InstallmentModel.installment_number == installment_number,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def mark_installment_paid(
        self,
        loan_id: UUID,
        installment_number: int,
        paid_date: date,
        payment_reference: str,
        actor_id: UUID,
    ) -> bool:
        result = self._session.execute(
            update(InstallmentModel)
            .where(
                InstallmentModel.loan_id == loan_id,
                InstallmentModel.installment_number == installment_number,
                InstallmentModel.is_paid.is_(False),
            )
            .values(
                is_paid=True,
                paid_date=paid_date,
                payment_reference=payment_reference,
                updated_by_id=actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        won = result.rowcount == 1
        if won:
            # Bring any already-loaded InstallmentModel in line with the row.
            self.get_installment(loan_id, installment_number)
        return won

    def count_unpaid(self, loan_id: UUID) -> int:
        return self._session.execute(
            select(func.count())
            .select_from(InstallmentModel)
            .where(InstallmentModel.loan_id == loan_id, InstallmentModel.is_paid.is_(False))
        ).scalar_one()

    # Payments

    def add_payment(self, payment: LoanPaymentModel) -> LoanPaymentModel:
        self._session.add(payment)
        self._session.flush()
        return payment

    def payments(self, loan_id: UUID) -> list[LoanPaymentModel]:
        return list(
            self._session.execute(
                select(LoanPaymentModel)
                .where(LoanPaymentModel.loan_id == loan_id)
                .order_by(LoanPaymentModel.installment_number)
            ).scalars()
        )
