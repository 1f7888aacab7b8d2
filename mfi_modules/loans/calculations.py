"""
Loan Pure Calculation Functions.

Domain math for the two interest methods the back office offers:
- Flat rate: interest on the original principal for the whole tenure,
  spread evenly across installments.
- Diminishing rate: standard amortizing-loan EMI with interest on the
  outstanding principal each month.

All arithmetic is exact ``Decimal``; money is rounded to 2 places only
when it is emitted.  Inputs are (principal > 0, annual rate % >= 0,
tenure months >= 1), anything else raises InvalidLoanParametersError.
"""

from decimal import Decimal

from mfi_kernel.db.types import ZERO, round_money, to_decimal
from mfi_kernel.exceptions import InvalidLoanParametersError
from mfi_modules.loans.models import CalculationMethod, LoanTerms

MONTHS_PER_YEAR = Decimal("12")
PERCENT = Decimal("100")
# rate% x months -> fraction of principal: 12 months x 100 percent
FLAT_DIVISOR = MONTHS_PER_YEAR * PERCENT


def validate_loan_parameters(
    principal: Decimal | int | str,
    annual_rate: Decimal | int | str,
    tenure_months: int,
) -> tuple[Decimal, Decimal, int]:
    """
    Coerce and range-check calculator inputs.

    Returns:
        (principal, annual_rate, tenure_months) as (Decimal, Decimal, int).
    """
    try:
        principal = to_decimal(principal)
    except (TypeError, ValueError) as exc:
        raise InvalidLoanParametersError("principal", principal, str(exc)) from exc
    try:
        annual_rate = to_decimal(annual_rate)
    except (TypeError, ValueError) as exc:
        raise InvalidLoanParametersError("annual_rate", annual_rate, str(exc)) from exc

    if not principal.is_finite() or principal <= ZERO:
        raise InvalidLoanParametersError("principal", principal, "must be greater than zero")
    if not annual_rate.is_finite() or annual_rate < ZERO:
        raise InvalidLoanParametersError("annual_rate", annual_rate, "must not be negative")
    if isinstance(tenure_months, bool) or not isinstance(tenure_months, int):
        raise InvalidLoanParametersError("tenure_months", tenure_months, "must be a whole number of months")
    if tenure_months < 1:
        raise InvalidLoanParametersError("tenure_months", tenure_months, "must be at least 1")
    return principal, annual_rate, tenure_months


def monthly_rate(annual_rate: Decimal) -> Decimal:
    """Annual percentage -> monthly fraction (12 -> 0.01)."""
    return annual_rate / MONTHS_PER_YEAR / PERCENT


def flat_total_interest(principal: Decimal, annual_rate: Decimal, tenure_months: int) -> Decimal:
    """Unrounded flat-rate interest over the whole tenure."""
    return principal * annual_rate * Decimal(tenure_months) / FLAT_DIVISOR


def diminishing_emi(principal: Decimal, annual_rate: Decimal, tenure_months: int) -> Decimal:
    """
    Unrounded EMI of a diminishing-rate loan.

    EMI = P * r * (1 + r)^n / ((1 + r)^n - 1), and P / n when r = 0.
    """
    r = monthly_rate(annual_rate)
    if r == ZERO:
        return principal / Decimal(tenure_months)
    growth = (Decimal("1") + r) ** tenure_months
    if growth == Decimal("1"):
        return principal / Decimal(tenure_months)
    return principal * r * growth / (growth - Decimal("1"))


def calculate_flat_loan(
    principal: Decimal | int | str,
    annual_rate: Decimal | int | str,
    tenure_months: int,
) -> LoanTerms:
    """
    Flat-rate terms.

    >>> calculate_flat_loan(Decimal("120000"), Decimal("12"), 12).emi
    Decimal('11200.00')
    """
    principal, annual_rate, tenure_months = validate_loan_parameters(
        principal, annual_rate, tenure_months
    )
    n = Decimal(tenure_months)
    total_interest = flat_total_interest(principal, annual_rate, tenure_months)
    total_amount = principal + total_interest

    return LoanTerms(
        calculation_method=CalculationMethod.FLAT,
        principal=principal,
        annual_rate=annual_rate,
        tenure_months=tenure_months,
        emi=round_money(total_amount / n),
        total_interest=round_money(total_interest),
        total_amount=round_money(total_amount),
        principal_per_period=round_money(principal / n),
        interest_per_period=round_money(total_interest / n),
    )


def calculate_diminishing_loan(
    principal: Decimal | int | str,
    annual_rate: Decimal | int | str,
    tenure_months: int,
) -> LoanTerms:
    """
    Diminishing-rate terms.

    Total interest is the sum of each month's interest on the outstanding
    principal, which for an exact EMI equals ``EMI x n - P``.
    """
    principal, annual_rate, tenure_months = validate_loan_parameters(
        principal, annual_rate, tenure_months
    )
    emi = diminishing_emi(principal, annual_rate, tenure_months)
    total_interest = emi * Decimal(tenure_months) - principal
    if total_interest < ZERO:
        total_interest = ZERO

    return LoanTerms(
        calculation_method=CalculationMethod.DIMINISHING,
        principal=principal,
        annual_rate=annual_rate,
        tenure_months=tenure_months,
        emi=round_money(emi),
        total_interest=round_money(total_interest),
        total_amount=round_money(principal + total_interest),
    )


_CALCULATORS = {
    CalculationMethod.FLAT: calculate_flat_loan,
    CalculationMethod.DIMINISHING: calculate_diminishing_loan,
}


def parse_calculation_method(method: CalculationMethod | str) -> CalculationMethod:
    try:
        return CalculationMethod(method)
    except ValueError as exc:
        raise InvalidLoanParametersError(
            "calculation_method", method, "must be 'flat' or 'diminishing'"
        ) from exc


def calculate_loan(
    principal: Decimal | int | str,
    annual_rate: Decimal | int | str,
    tenure_months: int,
    method: CalculationMethod | str,
) -> LoanTerms:
    """Loan terms for either calculation method."""
    return _CALCULATORS[parse_calculation_method(method)](principal, annual_rate, tenure_months)
