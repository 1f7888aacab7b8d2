"""
Tests for the journal posting engine.

Verifies:
- Balanced entries post and move each account by debit - credit
- Unbalanced, empty and malformed entries are rejected before any write
- Posting is one-way (AlreadyPostedError on a second post)
- Unknown and inactive accounts are rejected
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from mfi_kernel.domain.dtos import AccountUpdate, JournalLineSpec
from mfi_kernel.exceptions import (
    AccountInactiveError,
    AccountNotFoundError,
    AlreadyPostedError,
    EmptyJournalEntryError,
    InvalidJournalLineError,
    JournalEntryNotFoundError,
    UnbalancedJournalEntryError,
)
from mfi_kernel.models.journal import JournalEntry
from mfi_kernel.services.journal_posting_service import JournalPostingService

ENTRY_DATE = date(2024, 3, 31)


@pytest.fixture
def posting(session, deterministic_clock):
    return JournalPostingService(session, clock=deterministic_clock)


@pytest.fixture
def cash(chart_of_accounts):
    return chart_of_accounts["1000"]


@pytest.fixture
def expenses(chart_of_accounts):
    return chart_of_accounts["5100"]


def _rent(cash, expenses, debit="500", credit="500"):
    return [
        JournalLineSpec.debit_line(expenses, Decimal(debit), "Office rent"),
        JournalLineSpec.credit_line(cash, Decimal(credit), "Office rent"),
    ]


def _entry_count(session) -> int:
    return session.query(JournalEntry).count()


class TestCreateEntry:
    def test_balanced_entry_created_unposted(self, posting, session, cash, expenses, actor_id, balance_of):
        result = posting.create_entry(ENTRY_DATE, "JV-0001", "Office rent", _rent(cash, expenses), actor_id)
        session.commit()

        assert result.posting is None
        assert result.entry.is_posted is False
        assert [d.line_seq for d in result.entry.details] == [1, 2]
        # unposted entries do not touch balances
        assert balance_of("5100") == Decimal("0")

    def test_unbalanced_rejected(self, posting, session, cash, expenses, actor_id):
        with pytest.raises(UnbalancedJournalEntryError) as exc_info:
            posting.create_entry(ENTRY_DATE, "JV-0002", None, _rent(cash, expenses, credit="400"), actor_id)

        assert exc_info.value.debits == "500.00"
        assert exc_info.value.credits == "400.00"
        session.rollback()
        assert _entry_count(session) == 0

    def test_within_tolerance_accepted(self, posting, cash, expenses, actor_id):
        lines = [
            JournalLineSpec.debit_line(expenses, Decimal("100.0004")),
            JournalLineSpec.credit_line(cash, Decimal("100")),
        ]
        result = posting.create_entry(ENTRY_DATE, None, None, lines, actor_id)
        assert [d.debit_amount for d in result.entry.details] == [Decimal("100.00"), Decimal("0")]

    def test_sub_cent_lines_checked_as_stored(self, posting, session, cash, expenses, actor_id):
        # 0.005 + 0.005 rounds to 0.01 + 0.01, which no longer matches the 0.01 credit
        lines = [
            JournalLineSpec.debit_line(expenses, Decimal("0.005")),
            JournalLineSpec.debit_line(expenses, Decimal("0.005")),
            JournalLineSpec.credit_line(cash, Decimal("0.01")),
        ]
        with pytest.raises(UnbalancedJournalEntryError) as exc_info:
            posting.create_entry(ENTRY_DATE, None, None, lines, actor_id)
        assert exc_info.value.debits == "0.02"
        assert exc_info.value.credits == "0.01"
        session.rollback()
        assert _entry_count(session) == 0

    def test_line_rounding_to_zero_rejected(self, posting, cash, expenses, actor_id):
        lines = [
            JournalLineSpec.debit_line(expenses, Decimal("0.004")),
            JournalLineSpec.credit_line(cash, Decimal("0.004")),
        ]
        with pytest.raises(InvalidJournalLineError) as exc_info:
            posting.create_entry(ENTRY_DATE, None, None, lines, actor_id)
        assert exc_info.value.line_index == 0

    def test_posted_sub_cent_entry_moves_stored_amounts(self, posting, session, cash, expenses, actor_id, balance_of):
        lines = [
            JournalLineSpec.debit_line(expenses, Decimal("10.004")),
            JournalLineSpec.credit_line(cash, Decimal("10.001")),
        ]
        posting.create_entry(ENTRY_DATE, None, None, lines, actor_id, post=True)
        session.commit()

        assert balance_of("5100") == Decimal("10.00")
        assert balance_of("1000") == Decimal("-10.00")

    def test_empty_rejected(self, posting, actor_id):
        with pytest.raises(EmptyJournalEntryError):
            posting.create_entry(ENTRY_DATE, None, None, [], actor_id)

    @pytest.mark.parametrize(
        "debit, credit",
        [("-10", "0"), ("10", "10"), ("0", "0")],
    )
    def test_malformed_line_rejected(self, posting, cash, expenses, actor_id, debit, credit):
        lines = [
            JournalLineSpec(account_id=expenses, debit=Decimal(debit), credit=Decimal(credit)),
            JournalLineSpec.credit_line(cash, Decimal("10")),
        ]
        with pytest.raises(InvalidJournalLineError) as exc_info:
            posting.create_entry(ENTRY_DATE, None, None, lines, actor_id)
        assert exc_info.value.line_index == 0

    def test_unknown_account(self, posting, cash, actor_id):
        lines = [
            JournalLineSpec.debit_line(uuid4(), Decimal("10")),
            JournalLineSpec.credit_line(cash, Decimal("10")),
        ]
        with pytest.raises(AccountNotFoundError):
            posting.create_entry(ENTRY_DATE, None, None, lines, actor_id)

    def test_inactive_account(self, posting, gl_service, cash, expenses, actor_id):
        gl_service.update_account(expenses, AccountUpdate(is_active=False), actor_id)
        with pytest.raises(AccountInactiveError):
            posting.create_entry(ENTRY_DATE, None, None, _rent(cash, expenses), actor_id)


class TestPostEntry:
    def test_post_moves_balances(self, posting, session, cash, expenses, actor_id, balance_of, deterministic_clock):
        result = posting.create_entry(ENTRY_DATE, "JV-0001", "Office rent", _rent(cash, expenses), actor_id)
        posted = posting.post_entry(result.entry_id, actor_id)
        session.commit()

        assert posted.entry_id == result.entry_id
        assert posted.posted_by_id == actor_id
        assert posted.posted_at == deterministic_clock.now()
        assert posted.change_for(expenses).delta == Decimal("500")
        assert posted.change_for(expenses).new_balance == Decimal("500")
        assert posted.change_for(cash).delta == Decimal("-500")
        assert balance_of("5100") == Decimal("500.00")
        assert balance_of("1000") == Decimal("-500.00")

    def test_post_at_creation(self, posting, session, cash, expenses, actor_id, balance_of):
        result = posting.create_entry(ENTRY_DATE, None, None, _rent(cash, expenses), actor_id, post=True)
        session.commit()

        assert result.posting is not None
        assert result.entry.is_posted is True
        assert result.entry.posted_by_id == actor_id
        assert result.entry.posted_at is not None
        assert balance_of("5100") == Decimal("500.00")

    def test_second_post_rejected(self, posting, session, cash, expenses, actor_id, balance_of):
        result = posting.create_entry(ENTRY_DATE, None, None, _rent(cash, expenses), actor_id, post=True)
        session.commit()

        with pytest.raises(AlreadyPostedError):
            posting.post_entry(result.entry_id, actor_id)
        session.rollback()
        assert balance_of("5100") == Decimal("500.00")

    def test_unknown_entry(self, posting, actor_id):
        with pytest.raises(JournalEntryNotFoundError):
            posting.post_entry(uuid4(), actor_id)

    def test_same_account_twice_nets(self, posting, session, chart_of_accounts, actor_id, balance_of):
        cash = chart_of_accounts["1000"]
        lines = [
            JournalLineSpec.debit_line(cash, Decimal("300")),
            JournalLineSpec.credit_line(cash, Decimal("100")),
            JournalLineSpec.credit_line(chart_of_accounts["3000"], Decimal("200")),
        ]
        result = posting.create_entry(ENTRY_DATE, None, None, lines, actor_id, post=True)
        session.commit()

        assert result.posting.change_for(cash).delta == Decimal("200")
        assert balance_of("1000") == Decimal("200.00")
        assert balance_of("3000") == Decimal("-200.00")

    def test_balances_accumulate(self, posting, session, cash, expenses, actor_id, balance_of):
        for _ in range(3):
            posting.create_entry(ENTRY_DATE, None, None, _rent(cash, expenses), actor_id, post=True)
        session.commit()
        assert balance_of("5100") == Decimal("1500.00")
        assert balance_of("1000") == Decimal("-1500.00")

    def test_posting_logged(self, posting, cash, expenses, actor_id, captured_logs):
        result = posting.create_entry(ENTRY_DATE, "JV-LOG", None, _rent(cash, expenses), actor_id, post=True)

        records = {r["message"]: r for r in captured_logs()}
        assert records["journal_entry_created"]["reference_number"] == "JV-LOG"
        posted = records["journal_entry_posted"]
        assert posted["entry_id"] == str(result.entry_id)
        assert posted["account_count"] == 2
