"""
General Ledger Module Service (``mfi_modules.gl.service``).

Responsibility
--------------
Manual bookkeeping: maintaining the chart of accounts and creating and
posting journal entries outside the lending flow.

Architecture position
---------------------
**Modules layer** -- thin glue.  ``GeneralLedgerService`` is the sole
public entry point for GL operations.  It composes the kernel
``AccountService`` and ``JournalPostingService`` and reads back through
the kernel selectors.

Invariants enforced
-------------------
* Each public command owns the transaction boundary (``unit_of_work``):
  commit on success, rollback on any failure.
* Double-entry balance and account checks are enforced by
  ``JournalPostingService`` before anything is written.
* ``current_balance`` is never settable here; it moves only by posting.

Failure modes
-------------
* Kernel validation errors propagate after rollback.
* ``PersistenceFailureError`` for any database failure.

Usage::

    gl = GeneralLedgerService(session, clock=clock)
    record = gl.create_journal_entry(
        entry_date=date(2024, 3, 31), reference_number="JV-0001",
        description="Office rent",
        lines=[
            JournalLineSpec.debit_line(rent_id, Decimal("500")),
            JournalLineSpec.credit_line(cash_id, Decimal("500")),
        ],
        actor_id=actor_id,
    )
    gl.post_journal_entry(record.entry_id, actor_id=actor_id)
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from mfi_config.schema import AccountDef
from mfi_kernel.domain.clock import Clock, SystemClock
from mfi_kernel.domain.dtos import AccountUpdate, JournalLineSpec, PostingResult
from mfi_kernel.exceptions import InvalidAccountError, JournalEntryNotFoundError
from mfi_kernel.logging_config import LogContext, get_logger
from mfi_kernel.models.account import AccountType
from mfi_kernel.repositories.account_repository import SqlAlchemyAccountRepository
from mfi_kernel.selectors.journal_selector import JournalEntryDTO, JournalSelector
from mfi_kernel.services.account_service import AccountService
from mfi_kernel.services.journal_posting_service import JournalPostingService
from mfi_modules._posting_helpers import unit_of_work
from mfi_modules.gl.models import AccountInfo, JournalEntryRecord

logger = get_logger("modules.gl.service")


class GeneralLedgerService:
    """
    Chart of accounts and manual journal entries.

    Contract
    --------
    * Commands commit on success and roll back on failure.
    * Reads (``get_account``, ``list_accounts``, ``get_journal_entry``)
      never write.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._account_repo = SqlAlchemyAccountRepository(session)
        self._accounts = AccountService(session, accounts=self._account_repo)
        self._posting = JournalPostingService(
            session, clock=self._clock, accounts=self._account_repo
        )
        self._journals = JournalSelector(session)

    # =========================================================================
    # Chart of accounts
    # =========================================================================

    def create_account(
        self,
        code: str,
        name: str,
        account_type: AccountType | str,
        actor_id: UUID,
        parent_id: UUID | None = None,
        description: str | None = None,
    ) -> AccountInfo:
        with unit_of_work(self._session, "account_create", account_code=code):
            account = self._accounts.create_account(
                code=code,
                name=name,
                account_type=account_type,
                actor_id=actor_id,
                parent_id=parent_id,
                description=description,
            )
            info = AccountInfo.from_model(account)
        return info

    def seed_chart_of_accounts(
        self,
        definitions: Sequence[AccountDef],
        actor_id: UUID,
    ) -> list[AccountInfo]:
        """
        Create the configured chart of accounts in one transaction.

        Codes that already exist are left untouched, so seeding twice is
        harmless.  A parent must appear before its children.

        Returns:
            The accounts created by this call.
        """
        created: list[AccountInfo] = []
        with unit_of_work(self._session, "chart_seed", account_count=len(definitions)):
            for definition in definitions:
                if self._account_repo.get_by_code(definition.code) is not None:
                    continue
                parent_id = None
                if definition.parent_code is not None:
                    parent_id = self._accounts.get_by_code(definition.parent_code).id
                account = self._accounts.create_account(
                    code=definition.code,
                    name=definition.name,
                    account_type=definition.account_type,
                    actor_id=actor_id,
                    parent_id=parent_id,
                )
                created.append(AccountInfo.from_model(account))
        logger.info(
            "chart_of_accounts_seeded",
            extra={
                "created_count": len(created),
                "skipped_count": len(definitions) - len(created),
            },
        )
        return created

    def update_account(
        self,
        account_id: UUID,
        update: AccountUpdate,
        actor_id: UUID,
    ) -> AccountInfo:
        with unit_of_work(self._session, "account_update", account_id=str(account_id)):
            account = self._accounts.update_account(account_id, update, actor_id)
            info = AccountInfo.from_model(account)
        return info

    def get_account(self, account_id: UUID) -> AccountInfo:
        return AccountInfo.from_model(self._accounts.get_account(account_id))

    def get_account_by_code(self, code: str) -> AccountInfo:
        return AccountInfo.from_model(self._accounts.get_by_code(code))

    def list_accounts(
        self,
        account_type: AccountType | str | None = None,
        active_only: bool = False,
    ) -> list[AccountInfo]:
        type_value = None
        if account_type is not None:
            try:
                type_value = AccountType(account_type).value
            except ValueError as exc:
                raise InvalidAccountError("account_type", account_type, "unknown account type") from exc
        return [
            AccountInfo.from_model(a)
            for a in self._account_repo.list(account_type=type_value, active_only=active_only)
        ]

    # =========================================================================
    # Journal entries
    # =========================================================================

    def create_journal_entry(
        self,
        entry_date: date,
        reference_number: str | None,
        description: str | None,
        lines: Sequence[JournalLineSpec],
        actor_id: UUID,
        post: bool = False,
    ) -> JournalEntryRecord:
        """Create an entry, optionally posting it in the same transaction."""
        with LogContext.bind(actor_id=str(actor_id)):
            with unit_of_work(
                self._session, "journal_entry_create",
                reference_number=reference_number, post=post,
            ):
                result = self._posting.create_entry(
                    entry_date=entry_date,
                    reference_number=reference_number,
                    description=description,
                    lines=lines,
                    actor_id=actor_id,
                    post=post,
                )
                entry_id = result.entry_id
                posting = result.posting
        return JournalEntryRecord(entry=self.get_journal_entry(entry_id), posting=posting)

    def post_journal_entry(self, entry_id: UUID, actor_id: UUID) -> PostingResult:
        with LogContext.bind(actor_id=str(actor_id)):
            with unit_of_work(self._session, "journal_entry_post", entry_id=str(entry_id)):
                posting = self._posting.post_entry(entry_id, actor_id)
        return posting

    def get_journal_entry(self, entry_id: UUID) -> JournalEntryDTO:
        entry = self._journals.get_entry(entry_id)
        if entry is None:
            raise JournalEntryNotFoundError(str(entry_id))
        return entry
