"""
Lending module (``mfi_modules.loans``).

Flat and diminishing-rate loan calculation, amortization schedules, and
the loan lifecycle (pending -> active -> closed | defaulted) with its
ledger postings.
"""

from mfi_modules.loans.calculations import (
    calculate_diminishing_loan,
    calculate_flat_loan,
    calculate_loan,
    validate_loan_parameters,
)
from mfi_modules.loans.config import LoanAccountCodes, LoanConfig
from mfi_modules.loans.models import (
    CalculationMethod,
    CreatedLoan,
    DisbursementResult,
    Loan,
    LoanDetail,
    LoanProduct,
    LoanStatus,
    LoanTerms,
    Payment,
    PaymentReceipt,
    ScheduledInstallment,
)
from mfi_modules.loans.notifications import PaymentNotifier
from mfi_modules.loans.schedule import add_months, build_schedule
from mfi_modules.loans.service import LoanService

__all__ = [
    "CalculationMethod",
    "CreatedLoan",
    "DisbursementResult",
    "Loan",
    "LoanAccountCodes",
    "LoanConfig",
    "LoanDetail",
    "LoanProduct",
    "LoanService",
    "LoanStatus",
    "LoanTerms",
    "Payment",
    "PaymentNotifier",
    "PaymentReceipt",
    "ScheduledInstallment",
    "add_months",
    "build_schedule",
    "calculate_diminishing_loan",
    "calculate_flat_loan",
    "calculate_loan",
    "validate_loan_parameters",
]
