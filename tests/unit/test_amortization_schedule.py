"""
Unit tests for the amortization schedule builder.

Verifies:
- Row contents for flat and diminishing loans
- Remaining principal reaches exactly zero
- Due-date month arithmetic with month-end clamping
"""

import pytest
from datetime import date
from decimal import Decimal

from mfi_kernel.exceptions import InvalidLoanParametersError
from mfi_modules.loans.schedule import add_months, build_schedule, end_date_for

DISBURSED = date(2024, 1, 15)


class TestFlatSchedule:
    @pytest.fixture
    def rows(self):
        return build_schedule(Decimal("120000"), Decimal("12"), 12, "flat", DISBURSED)

    def test_one_row_per_month(self, rows):
        assert [r.installment_number for r in rows] == list(range(1, 13))

    def test_every_row_identical_split(self, rows):
        for row in rows:
            assert row.emi_amount == Decimal("11200.00")
            assert row.principal_amount == Decimal("10000.00")
            assert row.interest_amount == Decimal("1200.00")

    def test_remaining_principal_steps_down(self, rows):
        assert rows[0].remaining_principal == Decimal("110000.00")
        assert rows[5].remaining_principal == Decimal("60000.00")
        assert rows[-1].remaining_principal == Decimal("0.00")

    def test_rows_start_unpaid(self, rows):
        assert not any(r.is_paid for r in rows)
        assert all(r.paid_date is None for r in rows)

    def test_uneven_principal_last_row_is_zero(self):
        rows = build_schedule(Decimal("100000"), Decimal("10"), 3, "flat", DISBURSED)
        assert rows[0].principal_amount == Decimal("33333.33")
        assert rows[0].remaining_principal == Decimal("66666.67")
        assert rows[1].remaining_principal == Decimal("33333.33")
        assert rows[2].remaining_principal == Decimal("0.00")


class TestDiminishingSchedule:
    @pytest.fixture
    def rows(self):
        return build_schedule(Decimal("120000"), Decimal("12"), 12, "diminishing", DISBURSED)

    def test_first_row(self, rows):
        first = rows[0]
        assert first.emi_amount == Decimal("10661.85")
        assert first.interest_amount == Decimal("1200.00")
        assert first.principal_amount == Decimal("9461.85")
        assert first.remaining_principal == Decimal("110538.15")

    def test_second_row_interest_on_outstanding(self, rows):
        assert rows[1].interest_amount == Decimal("1105.38")

    def test_interest_falls_principal_rises(self, rows):
        for earlier, later in zip(rows, rows[1:]):
            assert later.interest_amount <= earlier.interest_amount
            assert later.principal_amount >= earlier.principal_amount

    def test_final_remaining_is_zero(self, rows):
        assert rows[-1].remaining_principal == Decimal("0.00")

    def test_principal_sums_to_loan(self, rows):
        total = sum(r.principal_amount for r in rows)
        assert abs(total - Decimal("120000")) <= Decimal("0.06")

    def test_zero_rate(self):
        rows = build_schedule(Decimal("1200"), Decimal("0"), 12, "diminishing", DISBURSED)
        assert all(r.interest_amount == Decimal("0.00") for r in rows)
        assert all(r.principal_amount == Decimal("100.00") for r in rows)
        assert rows[-1].remaining_principal == Decimal("0.00")


class TestDueDates:
    def test_same_day_each_month(self):
        rows = build_schedule(Decimal("1000"), Decimal("10"), 3, "flat", DISBURSED)
        assert [r.due_date for r in rows] == [
            date(2024, 2, 15),
            date(2024, 3, 15),
            date(2024, 4, 15),
        ]

    def test_month_end_clamped(self):
        rows = build_schedule(Decimal("1000"), Decimal("10"), 4, "diminishing", date(2024, 1, 31))
        assert [r.due_date for r in rows] == [
            date(2024, 2, 29),
            date(2024, 3, 31),
            date(2024, 4, 30),
            date(2024, 5, 31),
        ]

    @pytest.mark.parametrize(
        "start, months, expected",
        [
            (date(2023, 1, 31), 1, date(2023, 2, 28)),
            (date(2024, 1, 31), 1, date(2024, 2, 29)),
            (date(2024, 11, 15), 2, date(2025, 1, 15)),
            (date(2024, 12, 31), 12, date(2025, 12, 31)),
            (date(2024, 8, 31), 1, date(2024, 9, 30)),
        ],
    )
    def test_add_months(self, start, months, expected):
        assert add_months(start, months) == expected

    def test_end_date_is_last_due_date(self):
        rows = build_schedule(Decimal("1000"), Decimal("10"), 18, "flat", DISBURSED)
        assert end_date_for(DISBURSED, 18) == rows[-1].due_date == date(2025, 7, 15)


class TestScheduleValidation:
    def test_invalid_method(self):
        with pytest.raises(InvalidLoanParametersError):
            build_schedule(Decimal("1000"), Decimal("10"), 12, "balloon", DISBURSED)

    def test_invalid_tenure(self):
        with pytest.raises(InvalidLoanParametersError):
            build_schedule(Decimal("1000"), Decimal("10"), 0, "flat", DISBURSED)

    def test_pure_function(self):
        first = build_schedule(Decimal("75000"), Decimal("18"), 9, "diminishing", DISBURSED)
        second = build_schedule(Decimal("75000"), Decimal("18"), 9, "diminishing", DISBURSED)
        assert first == second
