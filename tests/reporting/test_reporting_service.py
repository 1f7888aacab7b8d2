"""
Tests for the ReportingService and the pure statement builders.

The trial balance is checked after a disbursement and a repayment.  The
portfolio tests cover status grouping, the per-calculation-mode summary
and the filters.  The journal listing tests cover date ranges.
"""

import json
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from mfi_kernel.domain.dtos import AccountUpdate, JournalLineSpec
from mfi_modules.loans import LoanStatus
from mfi_modules.loans.models import CalculationMethod
from mfi_modules.reporting import ReportType, render_to_dict
from mfi_modules.reporting.models import ReportMetadata
from mfi_modules.reporting.statements import build_loan_portfolio, summarize_by_method


def _make_loan(loan_service, actor_id, principal, rate, method, disbursed_on, disburse=True):
    created = loan_service.create_loan(
        client_id=uuid4(),
        principal=Decimal(principal),
        annual_rate=Decimal(rate),
        tenure_months=12,
        calculation_method=method,
        disbursement_date=disbursed_on,
        actor_id=actor_id,
    )
    if disburse:
        loan_service.disburse(created.loan.id, actor_id=actor_id)
    return created


class TestTrialBalance:
    def test_balances_after_disbursement_and_payment(self, reporting_service, loan_service, active_loan, actor_id):
        row = active_loan.schedule[0]
        loan_service.record_payment(active_loan.loan.id, 1, row.emi_amount, row.due_date, actor_id)

        report = reporting_service.trial_balance()

        assert report.is_balanced
        assert report.total_debits == Decimal("110000.00")
        assert report.total_credits == Decimal("110000.00")
        by_code = {line.account_code: line for line in report.lines}
        assert by_code["1200"].debit_balance == Decimal("110000.00")
        assert by_code["1000"].credit_balance == Decimal("108800.00")
        assert by_code["4000"].credit_balance == Decimal("1200.00")

    def test_zero_balances_omitted_by_default(self, reporting_service, active_loan):
        report = reporting_service.trial_balance()
        assert [line.account_code for line in report.lines] == ["1000", "1200"]

    def test_include_zero_lists_every_active_account(self, reporting_service, gl_service, chart_of_accounts, actor_id):
        dormant = gl_service.create_account("6000", "Dormant", "expense", actor_id)
        gl_service.update_account(dormant.id, AccountUpdate(is_active=False), actor_id)

        report = reporting_service.trial_balance(include_zero=True)

        codes = [line.account_code for line in report.lines]
        assert codes == sorted(chart_of_accounts)
        assert "6000" not in codes
        assert report.total_debits == report.total_credits == Decimal("0")

    def test_metadata(self, reporting_service, chart_of_accounts):
        report = reporting_service.trial_balance(as_of_date=date(2024, 3, 31))
        assert report.metadata.report_type is ReportType.TRIAL_BALANCE
        assert report.metadata.as_of_date == date(2024, 3, 31)
        assert report.metadata.generated_at == "2024-06-30T12:00:00+00:00"

    def test_as_of_defaults_to_clock_today(self, reporting_service, chart_of_accounts):
        assert reporting_service.trial_balance().metadata.as_of_date == date(2024, 6, 30)

    def test_generation_logged(self, reporting_service, active_loan, captured_logs):
        reporting_service.trial_balance()
        record = next(r for r in captured_logs() if r["message"] == "trial_balance_generated")
        assert record["is_balanced"] is True
        assert record["total_debits"] == "120000.00"


class TestLoanPortfolio:
    @pytest.fixture
    def portfolio(self, loan_service, actor_id):
        flat_a = _make_loan(loan_service, actor_id, "120000", "12", "flat", date(2024, 1, 15))
        _make_loan(loan_service, actor_id, "60000", "18", "flat", date(2024, 2, 1))
        _make_loan(loan_service, actor_id, "50000", "15", "diminishing", date(2024, 3, 1))
        _make_loan(loan_service, actor_id, "10000", "20", "diminishing", date(2024, 4, 1), disburse=False)
        _make_loan(loan_service, actor_id, "40000", "24", "flat", date(2024, 9, 1))
        loan_service.mark_defaulted(flat_a.loan.id, actor_id)
        return flat_a

    def test_active_is_default_filter(self, reporting_service, portfolio):
        report = reporting_service.loan_portfolio()

        assert report.status_filter is LoanStatus.ACTIVE
        assert report.total_count == 2
        assert report.total_principal == Decimal("110000.00")
        assert [group.status for group in report.by_status] == [LoanStatus.ACTIVE]

    def test_all_statuses(self, reporting_service, portfolio):
        report = reporting_service.loan_portfolio(status=None)

        assert report.total_count == 4
        groups = {group.status: group for group in report.by_status}
        assert set(groups) == {LoanStatus.PENDING, LoanStatus.ACTIVE, LoanStatus.DEFAULTED}
        assert groups[LoanStatus.DEFAULTED].total_principal == Decimal("120000.00")
        assert groups[LoanStatus.PENDING].loans[0].principal == Decimal("10000.00")

    def test_as_of_excludes_later_disbursements(self, reporting_service, portfolio):
        report = reporting_service.loan_portfolio(status=None, as_of_date=date(2024, 2, 28))
        assert report.total_count == 2
        assert report.metadata.as_of_date == date(2024, 2, 28)

    def test_future_loan_included_once_as_of_reached(self, reporting_service, portfolio):
        report = reporting_service.loan_portfolio(as_of_date=date(2024, 12, 31))
        assert report.total_count == 3

    def test_status_filter_accepts_strings(self, reporting_service, portfolio):
        report = reporting_service.loan_portfolio(status="defaulted")
        assert report.total_count == 1
        assert report.loans[0].id == portfolio.loan.id

    def test_summary_by_method_covers_active_loans(self, reporting_service, portfolio):
        report = reporting_service.loan_portfolio(status="defaulted")

        flat = report.summary_for(CalculationMethod.FLAT)
        diminishing = report.summary_for(CalculationMethod.DIMINISHING)
        assert (flat.active_count, flat.total_principal) == (1, Decimal("60000.00"))
        assert flat.average_interest_rate == Decimal("18.00")
        assert (diminishing.active_count, diminishing.total_principal) == (1, Decimal("50000.00"))
        assert diminishing.average_interest_rate == Decimal("15.00")

    def test_remaining_tracks_payments(self, reporting_service, loan_service, active_loan, actor_id):
        row = active_loan.schedule[0]
        loan_service.record_payment(active_loan.loan.id, 1, row.emi_amount, row.due_date, actor_id)

        report = reporting_service.loan_portfolio()
        assert report.total_remaining == Decimal("110000.00")

    def test_empty_portfolio(self, reporting_service, chart_of_accounts):
        report = reporting_service.loan_portfolio()
        assert report.total_count == 0
        assert report.by_status == ()
        assert all(summary.active_count == 0 for summary in report.by_method)


class TestSummarizeByMethod:
    def test_average_is_rounded_mean(self, loan_service, actor_id):
        for rate in ("10", "11", "11"):
            _make_loan(loan_service, actor_id, "10000", rate, "flat", date(2024, 1, 1))
        loans = loan_service.list_loans(status=LoanStatus.ACTIVE)

        (flat, diminishing) = summarize_by_method(loans)

        assert flat.calculation_method is CalculationMethod.FLAT
        assert flat.average_interest_rate == Decimal("10.67")
        assert diminishing.active_count == 0
        assert diminishing.average_interest_rate == Decimal("0.00")

    def test_builder_is_pure(self, loan_service, actor_id):
        _make_loan(loan_service, actor_id, "10000", "12", "flat", date(2024, 1, 1))
        loans = loan_service.list_loans()
        metadata = ReportMetadata(
            report_type=ReportType.LOAN_PORTFOLIO,
            as_of_date=date(2024, 6, 30),
            generated_at="2024-06-30T12:00:00+00:00",
        )
        assert build_loan_portfolio(loans, metadata) == build_loan_portfolio(loans, metadata)


class TestJournalListing:
    def test_lists_loan_entries_in_date_order(self, reporting_service, loan_service, active_loan, actor_id):
        row = active_loan.schedule[0]
        loan_service.record_payment(active_loan.loan.id, 1, row.emi_amount, row.due_date, actor_id)

        report = reporting_service.journal_listing()

        assert report.entry_count == 2
        assert [e.entry_date for e in report.entries] == [date(2024, 1, 15), date(2024, 2, 15)]
        assert report.entries[0].reference_number.startswith("LOAN-DISB-")
        assert report.total_debits == report.total_credits == Decimal("131200.00")

    def test_date_range_is_inclusive(self, reporting_service, loan_service, active_loan, actor_id):
        row = active_loan.schedule[0]
        loan_service.record_payment(active_loan.loan.id, 1, row.emi_amount, row.due_date, actor_id)

        report = reporting_service.journal_listing(date(2024, 2, 15), date(2024, 2, 15))

        assert report.entry_count == 1
        assert report.metadata.period_start == report.metadata.period_end == date(2024, 2, 15)

    def test_unposted_filter(self, reporting_service, gl_service, chart_of_accounts, actor_id):
        gl_service.create_journal_entry(
            date(2024, 3, 1), "JV-1", None,
            [
                JournalLineSpec.debit_line(chart_of_accounts["5100"], Decimal("75")),
                JournalLineSpec.credit_line(chart_of_accounts["1000"], Decimal("75")),
            ],
            actor_id,
        )
        assert reporting_service.journal_listing(is_posted=False).entry_count == 1
        assert reporting_service.journal_listing(is_posted=True).entry_count == 0

    def test_reversed_range_rejected(self, reporting_service, chart_of_accounts):
        with pytest.raises(ValueError):
            reporting_service.journal_listing(date(2024, 3, 1), date(2024, 2, 1))


class TestRenderToDict:
    def test_report_renders_to_json(self, reporting_service, active_loan):
        rendered = render_to_dict(reporting_service.loan_portfolio())

        json.dumps(rendered)
        assert rendered["metadata"]["report_type"] == "loan_portfolio"
        assert rendered["total_principal"] == "120000.00"
        assert rendered["loans"][0]["calculation_method"] == "flat"
        assert rendered["status_filter"] == "active"
