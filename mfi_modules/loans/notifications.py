"""
Payment notification hook.

The SMS collaborator (outside this engine) implements ``PaymentNotifier``.
``LoanService`` calls it after the payment has committed; anything it
raises is logged and dropped, never undoing or failing the payment.
"""

from typing import Protocol, runtime_checkable

from mfi_modules.loans.models import Loan, PaymentReceipt


@runtime_checkable
class PaymentNotifier(Protocol):
    """Receives a recorded payment, fire-and-forget."""

    def payment_recorded(self, loan: Loan, receipt: PaymentReceipt) -> None: ...
