"""
Lending Module Service (``mfi_modules.loans.service``).

Responsibility
--------------
The loan lifecycle: product setup, loan origination with its persisted
amortization schedule, disbursement, installment payments, default, and
read access to a loan with its schedule and payments.  Ledger side effects
go through the kernel ``JournalPostingService``; every money-moving event
is also appended to the transaction ledger.

Architecture position
---------------------
**Modules layer** -- thin glue.  ``LoanService`` is the sole public entry
point for lending.  It composes the pure calculator and scheduler, the
``LoanRepository``, and the kernel posting / transaction-ledger services.

Invariants enforced
-------------------
* Each public command is one transaction (``unit_of_work``): commit on
  success, rollback on any error.  Payment + installment + loan balance +
  journal entry + transaction row apply together or not at all.
* The loan row is locked before any state change, so commands on one
  loan serialize.
* An installment is marked paid by compare-and-swap and the payments
  table is unique per (loan, installment): a second payment for the same
  installment always fails with ``InstallmentAlreadyPaidError``.
* ``remaining_amount`` only decreases, never below zero, and is exactly
  zero once the last installment is paid, at which point the loan closes.

Failure modes
-------------
* ``InvalidLoanParametersError`` / ``LoanProductNotFoundError`` at
  origination.
* ``LoanNotFoundError``, ``InvalidStateTransitionError``,
  ``InstallmentNotFoundError``, ``InstallmentAlreadyPaidError``,
  ``InsufficientPaymentAmountError`` on commands.
* ``AccountNotFoundError`` / ``AccountInactiveError`` when a configured
  ledger account is missing or inactive.
* ``PersistenceFailureError`` for any database failure.

Usage::

    service = LoanService(session, clock=clock)
    created = service.create_loan(
        client_id=client_id, principal=Decimal("120000"),
        annual_rate=Decimal("12"), tenure_months=12,
        calculation_method="flat", disbursement_date=date(2024, 1, 15),
        actor_id=actor_id,
    )
    service.disburse(created.loan.id, actor_id=actor_id)
    receipt = service.record_payment(
        created.loan.id, 1, Decimal("11200.00"), date(2024, 2, 15),
        actor_id=actor_id,
    )
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mfi_kernel.db.types import ZERO, round_money, to_decimal
from mfi_kernel.domain.clock import Clock, SystemClock
from mfi_kernel.domain.dtos import PostingResult
from mfi_kernel.exceptions import (
    AccountInactiveError,
    AccountNotFoundError,
    InstallmentAlreadyPaidError,
    InstallmentNotFoundError,
    InsufficientPaymentAmountError,
    InvalidLoanParametersError,
    InvalidStateTransitionError,
    LoanNotFoundError,
    LoanProductNotFoundError,
)
from mfi_kernel.logging_config import LogContext, get_logger
from mfi_kernel.models.money_transaction import TransactionType
from mfi_kernel.repositories.account_repository import (
    AccountRepository,
    SqlAlchemyAccountRepository,
)
from mfi_kernel.services.journal_posting_service import JournalPostingService
from mfi_kernel.services.transaction_ledger import TransactionLedger
from mfi_modules._posting_helpers import unit_of_work
from mfi_modules.loans.calculations import (
    calculate_loan,
    parse_calculation_method,
    validate_loan_parameters,
)
from mfi_modules.loans.config import LoanConfig
from mfi_modules.loans.models import (
    CalculationMethod,
    CreatedLoan,
    DisbursementResult,
    Loan,
    LoanDetail,
    LoanProduct,
    LoanStatus,
    LoanTerms,
    PaymentReceipt,
)
from mfi_modules.loans.notifications import PaymentNotifier
from mfi_modules.loans.orm import (
    InstallmentModel,
    LoanModel,
    LoanPaymentModel,
    LoanProductModel,
)
from mfi_modules.loans.profiles import (
    AccountRole,
    allocate_payment,
    disbursement_lines,
    principal_due,
    repayment_lines,
)
from mfi_modules.loans.repository import LoanRepository, SqlAlchemyLoanRepository
from mfi_modules.loans.schedule import build_schedule, end_date_for

logger = get_logger("modules.loans.service")


def _money(field: str, value: Decimal | int | str) -> Decimal:
    try:
        return to_decimal(value)
    except (TypeError, ValueError) as exc:
        raise InvalidLoanParametersError(field, value, str(exc)) from exc


class LoanService:
    """
    Orchestrates the loan lifecycle.

    Contract
    --------
    * Every command commits on success and rolls back on failure.
    * ``calculate_loan`` and ``get_loan`` never write.

    Non-goals
    ---------
    * Does NOT manage clients or staff; ``client_id`` is an opaque reference.
    * Does NOT deliver notifications; it hands receipts to a
      ``PaymentNotifier`` when one is configured.
    """

    def __init__(
        self,
        session: Session,
        config: LoanConfig | None = None,
        clock: Clock | None = None,
        loans: LoanRepository | None = None,
        accounts: AccountRepository | None = None,
        notifier: PaymentNotifier | None = None,
    ):
        self._session = session
        self._config = config or LoanConfig()
        self._clock = clock or SystemClock()
        self._loans = loans or SqlAlchemyLoanRepository(session)
        self._accounts = accounts or SqlAlchemyAccountRepository(session)
        self._notifier = notifier
        self._posting = JournalPostingService(session, clock=self._clock, accounts=self._accounts)
        self._ledger = TransactionLedger(session)

    # =========================================================================
    # Calculation
    # =========================================================================

    def calculate_loan(
        self,
        principal: Decimal | int | str,
        annual_rate: Decimal | int | str,
        tenure_months: int,
        calculation_method: CalculationMethod | str | None = None,
    ) -> LoanTerms:
        """EMI, total interest and total payable.  Pure; nothing is stored."""
        method = calculation_method or self._config.default_calculation_method
        return calculate_loan(principal, annual_rate, tenure_months, method)

    # =========================================================================
    # Products
    # =========================================================================

    def create_product(
        self,
        name: str,
        min_amount: Decimal,
        max_amount: Decimal,
        min_tenure_months: int,
        max_tenure_months: int,
        default_interest_rate: Decimal,
        actor_id: UUID,
        processing_fee: Decimal = ZERO,
        late_fee: Decimal = ZERO,
        description: str | None = None,
    ) -> LoanProduct:
        """Add a loan product.  Limits are inclusive."""
        min_amount = _money("min_amount", min_amount)
        max_amount = _money("max_amount", max_amount)
        default_interest_rate = _money("default_interest_rate", default_interest_rate)
        processing_fee = _money("processing_fee", processing_fee)
        late_fee = _money("late_fee", late_fee)

        if not name or not name.strip():
            raise InvalidLoanParametersError("name", name, "must not be blank")
        if min_amount <= ZERO or max_amount < min_amount:
            raise InvalidLoanParametersError(
                "max_amount", max_amount, f"must be >= min_amount {min_amount} > 0"
            )
        if min_tenure_months < 1 or max_tenure_months < min_tenure_months:
            raise InvalidLoanParametersError(
                "max_tenure_months", max_tenure_months,
                f"must be >= min_tenure_months {min_tenure_months} >= 1",
            )
        if default_interest_rate < ZERO:
            raise InvalidLoanParametersError("default_interest_rate", default_interest_rate, "must not be negative")
        if processing_fee < ZERO or late_fee < ZERO:
            raise InvalidLoanParametersError("fees", f"{processing_fee}/{late_fee}", "must not be negative")

        with unit_of_work(self._session, "loan_product_create", product_name=name):
            if self._loans.get_product_by_name(name) is not None:
                raise InvalidLoanParametersError("name", name, "a product with this name exists")
            product = self._loans.add_product(
                LoanProductModel(
                    name=name,
                    description=description,
                    min_amount=min_amount,
                    max_amount=max_amount,
                    min_tenure_months=min_tenure_months,
                    max_tenure_months=max_tenure_months,
                    default_interest_rate=default_interest_rate,
                    processing_fee=round_money(processing_fee),
                    late_fee=round_money(late_fee),
                    is_active=True,
                    created_by_id=actor_id,
                )
            )
            dto = product.to_dto()
        return dto

    def list_products(self, active_only: bool = True) -> list[LoanProduct]:
        return [p.to_dto() for p in self._loans.list_products(active_only=active_only)]

    # =========================================================================
    # Origination
    # =========================================================================

    def _product_for_loan(
        self,
        product_id: UUID,
        principal: Decimal,
        tenure_months: int,
    ) -> LoanProductModel:
        product = self._loans.get_product(product_id)
        if product is None:
            raise LoanProductNotFoundError(str(product_id))
        if not product.is_active:
            raise InvalidLoanParametersError("product_id", product_id, "loan product is inactive")
        if not product.min_amount <= principal <= product.max_amount:
            raise InvalidLoanParametersError(
                "principal", principal,
                f"outside product limits {product.min_amount}..{product.max_amount}",
            )
        if not product.min_tenure_months <= tenure_months <= product.max_tenure_months:
            raise InvalidLoanParametersError(
                "tenure_months", tenure_months,
                f"outside product limits {product.min_tenure_months}..{product.max_tenure_months}",
            )
        return product

    def create_loan(
        self,
        client_id: UUID,
        principal: Decimal | int | str,
        tenure_months: int,
        disbursement_date: date,
        actor_id: UUID,
        annual_rate: Decimal | int | str | None = None,
        calculation_method: CalculationMethod | str | None = None,
        product_id: UUID | None = None,
        processing_fee: Decimal | int | str | None = None,
    ) -> CreatedLoan:
        """
        Create a ``pending`` loan and persist its full schedule.

        ``annual_rate`` and ``processing_fee`` default to the product's
        values when a product is given.  The calculation method defaults to
        the configured one.
        """
        method = parse_calculation_method(
            calculation_method or self._config.default_calculation_method
        )

        with LogContext.bind(actor_id=str(actor_id), client_id=str(client_id)):
            with unit_of_work(self._session, "loan_create", client_id=str(client_id)):
                product = None
                if product_id is not None:
                    product = self._product_for_loan(
                        product_id, _money("principal", principal), tenure_months
                    )
                if annual_rate is None:
                    if product is None:
                        raise InvalidLoanParametersError(
                            "annual_rate", None, "required when no loan product is given"
                        )
                    annual_rate = product.default_interest_rate
                if processing_fee is None:
                    processing_fee = product.processing_fee if product is not None else ZERO
                fee = _money("processing_fee", processing_fee)
                if fee < ZERO:
                    raise InvalidLoanParametersError("processing_fee", fee, "must not be negative")

                principal, annual_rate, tenure_months = validate_loan_parameters(
                    principal, annual_rate, tenure_months
                )
                terms = calculate_loan(principal, annual_rate, tenure_months, method)
                schedule = build_schedule(
                    principal, annual_rate, tenure_months, method, disbursement_date
                )

                loan = LoanModel(
                    client_id=client_id,
                    product_id=product_id,
                    calculation_method=method.value,
                    amount=round_money(principal),
                    interest_rate=annual_rate,
                    tenure_months=tenure_months,
                    disbursement_date=disbursement_date,
                    end_date=end_date_for(disbursement_date, tenure_months),
                    emi_amount=terms.emi,
                    total_interest=terms.total_interest,
                    total_amount=terms.total_amount,
                    processing_fee=round_money(fee),
                    remaining_amount=round_money(principal),
                    status=LoanStatus.PENDING.value,
                    created_by_id=actor_id,
                )
                loan.installments = [
                    InstallmentModel.from_scheduled(row, actor_id) for row in schedule
                ]
                self._loans.add(loan)

                logger.info(
                    "loan_created",
                    extra={
                        "loan_id": str(loan.id),
                        "calculation_method": method.value,
                        "principal": str(loan.amount),
                        "emi": str(terms.emi),
                        "tenure_months": tenure_months,
                    },
                )
                created = CreatedLoan(loan=loan.to_dto(), schedule=tuple(schedule))
        return created

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def _locked_loan(self, loan_id: UUID) -> LoanModel:
        loan = self._loans.get_for_update(loan_id)
        if loan is None:
            raise LoanNotFoundError(str(loan_id))
        return loan

    def _require_transition(self, loan: LoanModel, target: LoanStatus) -> None:
        if not LoanStatus(loan.status).can_transition_to(target):
            raise InvalidStateTransitionError(str(loan.id), loan.status, target.value)

    def _ledger_accounts(self) -> dict[AccountRole, UUID]:
        """Resolve the configured account codes to active account ids."""
        resolved: dict[AccountRole, UUID] = {}
        for role in AccountRole:
            code = self._config.accounts.code_for(role)
            account = self._accounts.get_by_code(code)
            if account is None:
                raise AccountNotFoundError(code)
            if not account.is_active:
                raise AccountInactiveError(code)
            resolved[role] = account.id
        return resolved

    def disburse(self, loan_id: UUID, actor_id: UUID) -> DisbursementResult:
        """
        ``pending`` -> ``active``.

        Posts the disbursement entry (principal, plus the processing fee
        when non-zero) and appends a ``loan_disbursement`` transaction.
        """
        with LogContext.bind(loan_id=str(loan_id), actor_id=str(actor_id)):
            with unit_of_work(self._session, "loan_disburse", loan_id=str(loan_id)):
                loan = self._locked_loan(loan_id)
                self._require_transition(loan, LoanStatus.ACTIVE)

                reference = f"LOAN-DISB-{str(loan.id)[:8].upper()}"
                posting: PostingResult | None = None
                entry_id: UUID | None = None
                if self._config.ledger_posting_enabled:
                    result = self._posting.create_entry(
                        entry_date=loan.disbursement_date,
                        reference_number=reference,
                        description=f"Loan disbursement for loan {loan.id}",
                        lines=disbursement_lines(
                            self._ledger_accounts(), loan.amount, loan.processing_fee
                        ),
                        actor_id=actor_id,
                        post=True,
                    )
                    posting = result.posting
                    entry_id = result.entry_id

                transaction = self._ledger.record(
                    TransactionType.LOAN_DISBURSEMENT,
                    amount=loan.amount,
                    transaction_date=loan.disbursement_date,
                    reference_number=reference,
                    actor_id=actor_id,
                    client_id=loan.client_id,
                    related_loan_id=loan.id,
                    journal_entry_id=entry_id,
                    description=f"Loan disbursement for loan ID: {loan.id}",
                )

                loan.status = LoanStatus.ACTIVE.value
                loan.disbursed_at = self._clock.now()
                loan.updated_by_id = actor_id
                self._session.flush()

                logger.info(
                    "loan_disbursed",
                    extra={
                        "principal": str(loan.amount),
                        "processing_fee": str(loan.processing_fee),
                        "journal_entry_id": str(entry_id) if entry_id else None,
                    },
                )
                disbursed = DisbursementResult(
                    loan=loan.to_dto(),
                    transaction_id=transaction.id,
                    posting=posting,
                )
        return disbursed

    def record_payment(
        self,
        loan_id: UUID,
        installment_number: int,
        amount: Decimal | int | str,
        payment_date: date,
        actor_id: UUID,
        late_fee: Decimal | int | str | None = None,
        transaction_reference: str | None = None,
        notes: str | None = None,
    ) -> PaymentReceipt:
        """
        Pay one installment in full.

        ``amount`` must cover the installment EMI; any excess is credited
        to client deposits.  A payment after the due date is late, and when
        ``late_fee`` is not given a late payment is charged the product's
        late fee.

        Paying the last unpaid installment closes the loan.  That
        installment collects all the principal still outstanding, which can
        be a few cents above its scheduled principal, so its minimum amount
        may exceed its EMI.
        """
        amount = _money("amount", amount)
        if amount <= ZERO:
            raise InvalidLoanParametersError("amount", amount, "must be greater than zero")
        explicit_late_fee = None if late_fee is None else _money("late_fee", late_fee)
        if explicit_late_fee is not None and explicit_late_fee < ZERO:
            raise InvalidLoanParametersError("late_fee", explicit_late_fee, "must not be negative")

        with LogContext.bind(loan_id=str(loan_id), actor_id=str(actor_id)):
            with unit_of_work(
                self._session, "loan_payment",
                loan_id=str(loan_id), installment_number=installment_number,
            ):
                loan = self._locked_loan(loan_id)
                if LoanStatus(loan.status) is not LoanStatus.ACTIVE:
                    raise InvalidStateTransitionError(str(loan.id), loan.status, "payment")

                installment = self._loans.get_installment(loan_id, installment_number)
                if installment is None:
                    raise InstallmentNotFoundError(str(loan_id), installment_number)
                if installment.is_paid:
                    raise InstallmentAlreadyPaidError(str(loan_id), installment_number)
                closing = self._loans.count_unpaid(loan_id) == 1
                principal_part = principal_due(
                    installment.principal_amount, loan.remaining_amount, closing
                )
                minimum = max(installment.emi_amount, principal_part)
                if amount < minimum:
                    raise InsufficientPaymentAmountError(
                        str(loan_id), installment_number, str(amount), str(minimum)
                    )

                is_late = payment_date > installment.due_date
                if explicit_late_fee is not None:
                    fee = explicit_late_fee
                elif is_late and loan.product_id is not None:
                    product = self._loans.get_product(loan.product_id)
                    fee = product.late_fee if product is not None else ZERO
                else:
                    fee = ZERO

                reference = transaction_reference or (
                    f"LOAN-PMT-{str(loan.id)[:8].upper()}-{installment_number:03d}"
                )
                allocation = allocate_payment(
                    amount, principal_part, installment.interest_amount, fee
                )

                if not self._loans.mark_installment_paid(
                    loan_id, installment_number, payment_date, reference, actor_id
                ):
                    raise InstallmentAlreadyPaidError(str(loan_id), installment_number)

                remaining = loan.remaining_amount - allocation.principal

                try:
                    payment = self._loans.add_payment(
                        LoanPaymentModel(
                            loan_id=loan.id,
                            installment_number=installment_number,
                            amount=allocation.amount,
                            principal_amount=allocation.principal,
                            interest_amount=allocation.interest,
                            late_fee=allocation.late_fee,
                            payment_date=payment_date,
                            due_date=installment.due_date,
                            is_late=is_late,
                            remaining_principal=remaining,
                            transaction_reference=reference,
                            notes=notes or f"Payment for installment #{installment_number}",
                            created_by_id=actor_id,
                        )
                    )
                except IntegrityError as exc:
                    raise InstallmentAlreadyPaidError(str(loan_id), installment_number) from exc

                posting: PostingResult | None = None
                if self._config.ledger_posting_enabled:
                    result = self._posting.create_entry(
                        entry_date=payment_date,
                        reference_number=reference,
                        description=f"Loan payment for installment #{installment_number} of loan {loan.id}",
                        lines=repayment_lines(self._ledger_accounts(), allocation),
                        actor_id=actor_id,
                        post=True,
                    )
                    posting = result.posting
                    payment.journal_entry_id = result.entry_id

                transaction = self._ledger.record(
                    TransactionType.LOAN_PAYMENT,
                    amount=allocation.amount,
                    transaction_date=payment_date,
                    reference_number=reference,
                    actor_id=actor_id,
                    client_id=loan.client_id,
                    related_loan_id=loan.id,
                    journal_entry_id=payment.journal_entry_id,
                    description=f"Loan payment for installment #{installment_number}",
                )

                loan.remaining_amount = remaining
                loan.updated_by_id = actor_id
                if closing:
                    loan.status = LoanStatus.CLOSED.value
                    loan.closed_at = self._clock.now()
                self._session.flush()

                logger.info(
                    "loan_payment_recorded",
                    extra={
                        "installment_number": installment_number,
                        "amount": str(allocation.amount),
                        "late_fee": str(allocation.late_fee),
                        "is_late": is_late,
                        "remaining_amount": str(remaining),
                    },
                )
                if closing:
                    logger.info("loan_closed", extra={"installment_count": loan.tenure_months})

                receipt = PaymentReceipt(
                    payment=payment.to_dto(),
                    loan_status=LoanStatus(loan.status),
                    remaining_amount=remaining,
                    transaction_id=transaction.id,
                    posting=posting,
                )
                loan_dto = loan.to_dto()

            self._notify(loan_dto, receipt)
        return receipt

    def _notify(self, loan: Loan, receipt: PaymentReceipt) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier.payment_recorded(loan, receipt)
        except Exception:
            logger.warning(
                "payment_notification_failed",
                extra={"installment_number": receipt.payment.installment_number},
                exc_info=True,
            )

    def mark_defaulted(self, loan_id: UUID, actor_id: UUID) -> Loan:
        """``active`` -> ``defaulted``.  No further payments are accepted."""
        with LogContext.bind(loan_id=str(loan_id), actor_id=str(actor_id)):
            with unit_of_work(self._session, "loan_default", loan_id=str(loan_id)):
                loan = self._locked_loan(loan_id)
                self._require_transition(loan, LoanStatus.DEFAULTED)
                loan.status = LoanStatus.DEFAULTED.value
                loan.updated_by_id = actor_id
                self._session.flush()
                logger.info(
                    "loan_defaulted",
                    extra={"remaining_amount": str(loan.remaining_amount)},
                )
                dto = loan.to_dto()
        return dto

    def set_status(self, loan_id: UUID, status: LoanStatus | str, actor_id: UUID) -> Loan:
        """
        Status change requested from outside.

        ``active`` disburses and ``defaulted`` marks the loan defaulted.
        Closing happens only by paying the last installment, so every
        other target is rejected.
        """
        try:
            target = LoanStatus(status)
        except ValueError:
            target = None

        if target is LoanStatus.ACTIVE:
            return self.disburse(loan_id, actor_id).loan
        if target is LoanStatus.DEFAULTED:
            return self.mark_defaulted(loan_id, actor_id)

        loan = self._loans.get(loan_id)
        if loan is None:
            raise LoanNotFoundError(str(loan_id))
        raise InvalidStateTransitionError(str(loan_id), loan.status, str(getattr(status, "value", status)))

    # =========================================================================
    # Queries
    # =========================================================================

    def get_loan(self, loan_id: UUID) -> LoanDetail:
        loan = self._loans.get(loan_id)
        if loan is None:
            raise LoanNotFoundError(str(loan_id))
        return LoanDetail(
            loan=loan.to_dto(),
            schedule=tuple(row.to_dto() for row in loan.installments),
            payments=tuple(p.to_dto() for p in self._loans.payments(loan_id)),
        )

    def list_loans(
        self,
        status: LoanStatus | str | None = None,
        disbursed_on_or_before: date | None = None,
    ) -> list[Loan]:
        status_value = None
        if status is not None:
            try:
                status_value = LoanStatus(status).value
            except ValueError as exc:
                raise InvalidLoanParametersError("status", status, "unknown loan status") from exc
        return [
            loan.to_dto()
            for loan in self._loans.list_loans(status_value, disbursed_on_or_before)
        ]
