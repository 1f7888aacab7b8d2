"""
Amortization schedule builder.

``build_schedule`` is a pure function of the loan parameters and the
disbursement date: the same inputs always give the same rows, so a stored
schedule can be re-derived and compared at any time.

Due dates fall on the disbursement day-of-month, i months later, clamped
to the last day of shorter months (Jan 31 -> Feb 28/29 -> Mar 31).
"""

import calendar
from datetime import date
from decimal import Decimal

from mfi_kernel.db.types import ZERO, round_money
from mfi_modules.loans.calculations import (
    diminishing_emi,
    flat_total_interest,
    monthly_rate,
    parse_calculation_method,
    validate_loan_parameters,
)
from mfi_modules.loans.models import CalculationMethod, ScheduledInstallment


def add_months(start: date, months: int) -> date:
    """``start`` moved forward ``months`` calendar months, day clamped to month end."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day))


def _flat_rows(
    principal: Decimal,
    annual_rate: Decimal,
    tenure_months: int,
    disbursement_date: date,
) -> list[ScheduledInstallment]:
    n = Decimal(tenure_months)
    total_interest = flat_total_interest(principal, annual_rate, tenure_months)
    emi = round_money((principal + total_interest) / n)
    principal_part = principal / n
    interest_part = round_money(total_interest / n)

    rows = []
    for i in range(1, tenure_months + 1):
        remaining = ZERO if i == tenure_months else principal - principal_part * i
        rows.append(
            ScheduledInstallment(
                installment_number=i,
                due_date=add_months(disbursement_date, i),
                emi_amount=emi,
                principal_amount=round_money(principal_part),
                interest_amount=interest_part,
                remaining_principal=round_money(max(remaining, ZERO)),
            )
        )
    return rows


def _diminishing_rows(
    principal: Decimal,
    annual_rate: Decimal,
    tenure_months: int,
    disbursement_date: date,
) -> list[ScheduledInstallment]:
    r = monthly_rate(annual_rate)
    emi = diminishing_emi(principal, annual_rate, tenure_months)
    outstanding = principal

    rows = []
    for i in range(1, tenure_months + 1):
        interest = outstanding * r
        if i == tenure_months:
            # Final row clears whatever is left.
            principal_part = outstanding
            outstanding = ZERO
        else:
            principal_part = emi - interest
            outstanding = max(outstanding - principal_part, ZERO)
        rows.append(
            ScheduledInstallment(
                installment_number=i,
                due_date=add_months(disbursement_date, i),
                emi_amount=round_money(emi),
                principal_amount=round_money(principal_part),
                interest_amount=round_money(interest),
                remaining_principal=round_money(outstanding),
            )
        )
    return rows


def build_schedule(
    principal: Decimal | int | str,
    annual_rate: Decimal | int | str,
    tenure_months: int,
    method: CalculationMethod | str,
    disbursement_date: date,
) -> list[ScheduledInstallment]:
    """
    Installment rows 1..tenure_months, all unpaid.

    Flat loans repeat the same EMI / principal / interest on every row.
    Diminishing loans carry the exact outstanding principal from row to
    row; the last row's principal is whatever remains.  Either way the
    last row's remaining principal is exactly 0.
    """
    method = parse_calculation_method(method)
    principal, annual_rate, tenure_months = validate_loan_parameters(
        principal, annual_rate, tenure_months
    )
    if method is CalculationMethod.FLAT:
        return _flat_rows(principal, annual_rate, tenure_months, disbursement_date)
    return _diminishing_rows(principal, annual_rate, tenure_months, disbursement_date)


def end_date_for(disbursement_date: date, tenure_months: int) -> date:
    """Date of the final installment."""
    return add_months(disbursement_date, tenure_months)
