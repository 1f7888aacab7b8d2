"""
Tests for GeneralLedgerService: chart of accounts and manual entries.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from mfi_kernel.domain.dtos import UNCHANGED, AccountUpdate, JournalLineSpec
from mfi_kernel.exceptions import (
    AccountNotFoundError,
    AlreadyPostedError,
    DuplicateAccountCodeError,
    InvalidAccountError,
    JournalEntryNotFoundError,
    UnbalancedJournalEntryError,
)
from mfi_kernel.models.account import AccountType


class TestChartOfAccounts:
    def test_seeded_chart(self, gl_service, chart_of_accounts):
        codes = [a.code for a in gl_service.list_accounts()]
        assert codes == ["1000", "1010", "1200", "2100", "3000", "4000", "4100", "5100", "5900"]

        cash_in_hand = gl_service.get_account_by_code("1010")
        assert cash_in_hand.parent_id == chart_of_accounts["1000"]
        assert cash_in_hand.current_balance == Decimal("0")

    def test_seeding_twice_creates_nothing(self, gl_service, chart_of_accounts, engine_config, actor_id):
        created = gl_service.seed_chart_of_accounts(engine_config.chart_of_accounts, actor_id)
        assert created == []
        assert len(gl_service.list_accounts()) == len(chart_of_accounts)

    def test_seeding_logs_counts(self, gl_service, engine_config, actor_id, captured_logs):
        created = gl_service.seed_chart_of_accounts(engine_config.chart_of_accounts, actor_id)
        gl_service.seed_chart_of_accounts(engine_config.chart_of_accounts, actor_id)

        seeded = [r for r in captured_logs() if r["message"] == "chart_of_accounts_seeded"]
        assert len(created) == 9
        assert [(r["created_count"], r["skipped_count"]) for r in seeded] == [(9, 0), (0, 9)]
        committed = [r for r in captured_logs() if r["message"] == "chart_seed_committed"]
        assert len(committed) == 2

    def test_create_account(self, gl_service, chart_of_accounts, actor_id):
        account = gl_service.create_account(
            code="1020", name="Petty Cash", account_type="asset", actor_id=actor_id,
            parent_id=chart_of_accounts["1000"],
        )
        assert account.account_type == "asset"
        assert account.is_active
        assert gl_service.get_account(account.id).name == "Petty Cash"

    def test_duplicate_code(self, gl_service, chart_of_accounts, actor_id):
        with pytest.raises(DuplicateAccountCodeError):
            gl_service.create_account(
                code="1000", name="Another Cash", account_type=AccountType.ASSET, actor_id=actor_id,
            )

    def test_unknown_parent(self, gl_service, chart_of_accounts, actor_id):
        with pytest.raises(AccountNotFoundError):
            gl_service.create_account(
                code="1030", name="Orphan", account_type="asset", actor_id=actor_id,
                parent_id=uuid4(),
            )

    def test_unknown_type(self, gl_service, actor_id, captured_logs):
        with pytest.raises(InvalidAccountError) as exc_info:
            gl_service.create_account(
                code="9000", name="Mystery", account_type="suspense", actor_id=actor_id,
            )
        assert exc_info.value.field == "account_type"
        assert exc_info.value.code == "INVALID_ACCOUNT"
        rejected = [r for r in captured_logs() if r["message"] == "account_create_rejected"]
        assert rejected[0]["error_code"] == "INVALID_ACCOUNT"

    def test_blank_name(self, gl_service, actor_id):
        with pytest.raises(InvalidAccountError) as exc_info:
            gl_service.create_account(code="9000", name="", account_type="asset", actor_id=actor_id)
        assert exc_info.value.field == "name"

    def test_list_unknown_type(self, gl_service, chart_of_accounts):
        with pytest.raises(InvalidAccountError):
            gl_service.list_accounts(account_type="suspense")

    def test_list_by_type(self, gl_service, chart_of_accounts):
        revenue = gl_service.list_accounts(account_type="revenue")
        assert [a.code for a in revenue] == ["4000", "4100"]

    def test_unknown_account(self, gl_service):
        with pytest.raises(AccountNotFoundError):
            gl_service.get_account(uuid4())


class TestUpdateAccount:
    def test_partial_update(self, gl_service, chart_of_accounts, actor_id):
        account_id = chart_of_accounts["5100"]
        updated = gl_service.update_account(
            account_id, AccountUpdate(name="Office Expenses"), actor_id,
        )
        assert updated.name == "Office Expenses"
        assert updated.is_active is True
        assert updated.code == "5100"

    def test_deactivate(self, gl_service, chart_of_accounts, actor_id):
        account_id = chart_of_accounts["5900"]
        gl_service.update_account(account_id, AccountUpdate(is_active=False), actor_id)

        assert gl_service.get_account(account_id).is_active is False
        active_codes = [a.code for a in gl_service.list_accounts(active_only=True)]
        assert "5900" not in active_codes

    def test_reparent(self, gl_service, chart_of_accounts, actor_id):
        updated = gl_service.update_account(
            chart_of_accounts["5900"],
            AccountUpdate(parent_id=chart_of_accounts["5100"]),
            actor_id,
        )
        assert updated.parent_id == chart_of_accounts["5100"]

    def test_own_parent_rejected(self, gl_service, chart_of_accounts, actor_id):
        account_id = chart_of_accounts["5100"]
        with pytest.raises(InvalidAccountError) as exc_info:
            gl_service.update_account(account_id, AccountUpdate(parent_id=account_id), actor_id)
        assert exc_info.value.field == "parent_id"
        assert gl_service.get_account(account_id).parent_id is None

    def test_clear_parent(self, gl_service, chart_of_accounts, actor_id):
        account_id = chart_of_accounts["1010"]
        assert gl_service.get_account(account_id).parent_id == chart_of_accounts["1000"]

        updated = gl_service.update_account(account_id, AccountUpdate(parent_id=None), actor_id)

        assert updated.parent_id is None
        assert gl_service.get_account(account_id).parent_id is None

    def test_clear_description(self, gl_service, chart_of_accounts, actor_id):
        account_id = chart_of_accounts["5100"]
        gl_service.update_account(account_id, AccountUpdate(description="Rent and utilities"), actor_id)

        updated = gl_service.update_account(account_id, AccountUpdate(description=None), actor_id)

        assert updated.description is None
        assert updated.name == gl_service.get_account(account_id).name

    def test_unset_fields_are_left_alone(self, gl_service, chart_of_accounts, actor_id):
        account_id = chart_of_accounts["1010"]
        update = AccountUpdate(name="Cash at Branch")
        assert update.parent_id is UNCHANGED
        assert update.changed_fields() == {"name": "Cash at Branch"}

        updated = gl_service.update_account(account_id, update, actor_id)
        assert updated.parent_id == chart_of_accounts["1000"]

    @pytest.mark.parametrize("update", [AccountUpdate(name=""), AccountUpdate(is_active=None)])
    def test_non_nullable_fields_cannot_be_cleared(self, gl_service, chart_of_accounts, actor_id, update):
        with pytest.raises(InvalidAccountError):
            gl_service.update_account(chart_of_accounts["5100"], update, actor_id)

    def test_unknown_parent_rejected(self, gl_service, chart_of_accounts, actor_id):
        with pytest.raises(AccountNotFoundError):
            gl_service.update_account(
                chart_of_accounts["5100"], AccountUpdate(parent_id=uuid4()), actor_id,
            )

    def test_empty_update_changes_nothing(self, gl_service, chart_of_accounts, actor_id):
        before = gl_service.get_account(chart_of_accounts["4000"])
        after = gl_service.update_account(chart_of_accounts["4000"], AccountUpdate(), actor_id)
        assert after == before

    def test_balance_not_updatable(self):
        assert "current_balance" not in AccountUpdate.__dataclass_fields__


class TestManualJournalEntries:
    def _lines(self, chart, debit="500", credit="500"):
        return [
            JournalLineSpec.debit_line(chart["5100"], Decimal(debit), "Rent"),
            JournalLineSpec.credit_line(chart["1000"], Decimal(credit), "Rent"),
        ]

    def test_create_then_post(self, gl_service, chart_of_accounts, actor_id, balance_of):
        record = gl_service.create_journal_entry(
            entry_date=date(2024, 3, 31), reference_number="JV-0001",
            description="Office rent", lines=self._lines(chart_of_accounts), actor_id=actor_id,
        )
        assert record.posting is None
        assert record.entry.is_posted is False
        assert record.entry.is_balanced
        assert [line.account_code for line in record.entry.lines] == ["5100", "1000"]

        posting = gl_service.post_journal_entry(record.entry_id, actor_id=actor_id)

        assert {c.account_code: c.delta for c in posting.balance_changes} == {
            "5100": Decimal("500.00"),
            "1000": Decimal("-500.00"),
        }
        assert balance_of("5100") == Decimal("500.00")
        assert balance_of("1000") == Decimal("-500.00")
        assert gl_service.get_journal_entry(record.entry_id).is_posted is True

    def test_create_and_post(self, gl_service, chart_of_accounts, actor_id, balance_of):
        record = gl_service.create_journal_entry(
            entry_date=date(2024, 3, 31), reference_number=None, description=None,
            lines=self._lines(chart_of_accounts), actor_id=actor_id, post=True,
        )
        assert record.posting is not None
        assert record.entry.is_posted is True
        assert balance_of("5100") == Decimal("500.00")

    def test_unbalanced_rolls_back(self, gl_service, chart_of_accounts, actor_id, reporting_service):
        with pytest.raises(UnbalancedJournalEntryError):
            gl_service.create_journal_entry(
                entry_date=date(2024, 3, 31), reference_number="JV-BAD", description=None,
                lines=self._lines(chart_of_accounts, credit="400"), actor_id=actor_id,
            )
        assert reporting_service.journal_listing().entry_count == 0

    def test_double_post(self, gl_service, chart_of_accounts, actor_id, balance_of, captured_logs):
        record = gl_service.create_journal_entry(
            entry_date=date(2024, 3, 31), reference_number=None, description=None,
            lines=self._lines(chart_of_accounts), actor_id=actor_id, post=True,
        )
        with pytest.raises(AlreadyPostedError):
            gl_service.post_journal_entry(record.entry_id, actor_id=actor_id)

        assert balance_of("5100") == Decimal("500.00")
        rejected = [r for r in captured_logs() if r["message"] == "journal_entry_post_rejected"]
        assert rejected[0]["error_code"] == "ALREADY_POSTED"

    def test_missing_entry(self, gl_service):
        with pytest.raises(JournalEntryNotFoundError):
            gl_service.get_journal_entry(uuid4())
