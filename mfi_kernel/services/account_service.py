"""
AccountService -- chart-of-accounts maintenance.

Responsibility:
    Creates accounts and applies explicit partial updates to them.  Never
    touches ``current_balance``: balances move only through
    JournalPostingService.

Architecture position:
    Kernel > Services.  Flush-only; ``mfi_modules.gl.service`` commits.

Failure modes:
    - DuplicateAccountCodeError when the code is already in use.
    - AccountNotFoundError for an unknown account or parent.
    - InvalidAccountError for an unknown account type, an empty name, or
      an account made its own parent.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from mfi_kernel.domain.dtos import AccountUpdate
from mfi_kernel.exceptions import (
    AccountNotFoundError,
    DuplicateAccountCodeError,
    InvalidAccountError,
)
from mfi_kernel.logging_config import get_logger
from mfi_kernel.models.account import Account, AccountType
from mfi_kernel.repositories.account_repository import (
    AccountRepository,
    SqlAlchemyAccountRepository,
)
from mfi_kernel.services.base import BaseService

logger = get_logger("services.account")


class AccountService(BaseService):
    """Create, update and fetch chart-of-accounts rows."""

    def __init__(self, session: Session, accounts: AccountRepository | None = None):
        super().__init__(session)
        self._accounts = accounts or SqlAlchemyAccountRepository(session)

    def get_account(self, account_id: UUID) -> Account:
        account = self._accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return account

    def get_by_code(self, code: str) -> Account:
        account = self._accounts.get_by_code(code)
        if account is None:
            raise AccountNotFoundError(code)
        return account

    def create_account(
        self,
        code: str,
        name: str,
        account_type: AccountType | str,
        actor_id: UUID,
        parent_id: UUID | None = None,
        description: str | None = None,
    ) -> Account:
        """
        Add an account to the chart with a zero balance.

        Raises:
            DuplicateAccountCodeError: ``code`` is already used.
            AccountNotFoundError: ``parent_id`` does not exist.
            InvalidAccountError: Unknown ``account_type`` or empty ``name``.
        """
        try:
            account_type = AccountType(account_type)
        except ValueError as exc:
            raise InvalidAccountError("account_type", account_type, "unknown account type") from exc
        if not name:
            raise InvalidAccountError("name", name, "must not be empty")

        if self._accounts.get_by_code(code) is not None:
            raise DuplicateAccountCodeError(code)
        if parent_id is not None and self._accounts.get(parent_id) is None:
            raise AccountNotFoundError(str(parent_id))

        account = self._accounts.add(
            Account(
                code=code,
                name=name,
                account_type=account_type.value,
                parent_id=parent_id,
                description=description,
                is_active=True,
                created_by_id=actor_id,
            )
        )
        logger.info(
            "account_created",
            extra={
                "account_id": str(account.id),
                "account_code": code,
                "account_type": account_type.value,
            },
        )
        return account

    def update_account(
        self,
        account_id: UUID,
        update: AccountUpdate,
        actor_id: UUID,
    ) -> Account:
        """
        Apply a partial update.  Fields left ``UNCHANGED`` are not touched;
        a ``parent_id`` of None makes the account top-level.

        Raises:
            AccountNotFoundError: Unknown account or parent.
            InvalidAccountError: Empty name, None for ``is_active``, or the
                account named as its own parent.
        """
        account = self.get_account(account_id)
        changes = update.changed_fields()

        if "name" in changes and not changes["name"]:
            raise InvalidAccountError("name", changes["name"], "must not be empty")
        if "is_active" in changes and changes["is_active"] is None:
            raise InvalidAccountError("is_active", None, "must be true or false")
        parent_id = changes.get("parent_id")
        if parent_id is not None:
            if parent_id == account_id:
                raise InvalidAccountError("parent_id", parent_id, "an account cannot be its own parent")
            if self._accounts.get(parent_id) is None:
                raise AccountNotFoundError(str(parent_id))

        for field_name, value in changes.items():
            setattr(account, field_name, value)
        if changes:
            account.updated_by_id = actor_id
            self.session.flush()

        logger.info(
            "account_updated",
            extra={
                "account_id": str(account_id),
                "changed_fields": sorted(changes),
            },
        )
        return account
