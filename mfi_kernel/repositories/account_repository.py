"""
AccountRepository -- persistence interface for chart-of-accounts rows.

Contract:
    ``lock_many`` takes row locks (SELECT ... FOR UPDATE) in ascending id
    order so two postings touching overlapping accounts cannot deadlock.
    ``apply_balance_delta`` increments ``current_balance`` in SQL, so a
    concurrent increment is never lost even without a row lock.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from mfi_kernel.models.account import Account


class AccountRepository(ABC):
    """Persistence operations on Account rows."""

    @abstractmethod
    def get(self, account_id: UUID) -> Account | None: ...

    @abstractmethod
    def get_by_code(self, code: str) -> Account | None: ...

    @abstractmethod
    def get_many(self, account_ids: Iterable[UUID]) -> dict[UUID, Account]: ...

    @abstractmethod
    def lock_many(self, account_ids: Iterable[UUID]) -> dict[UUID, Account]: ...

    @abstractmethod
    def list(self, account_type: str | None = None, active_only: bool = False) -> list[Account]: ...

    @abstractmethod
    def add(self, account: Account) -> Account: ...

    @abstractmethod
    def apply_balance_delta(self, account_id: UUID, delta: Decimal) -> Decimal: ...


class SqlAlchemyAccountRepository(AccountRepository):
    """AccountRepository backed by a SQLAlchemy Session."""

    def __init__(self, session: Session):
        self._session = session

    def get(self, account_id: UUID) -> Account | None:
        return self._session.get(Account, account_id, populate_existing=True)

    def get_by_code(self, code: str) -> Account | None:
        return self._session.execute(
            select(Account)
            .where(Account.code == code)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_many(self, account_ids: Iterable[UUID]) -> dict[UUID, Account]:
        ids = sorted(set(account_ids), key=str)
        if not ids:
            return {}
        rows = self._session.execute(
            select(Account).where(Account.id.in_(ids))
        ).scalars()
        return {account.id: account for account in rows}

    def lock_many(self, account_ids: Iterable[UUID]) -> dict[UUID, Account]:
        ids = sorted(set(account_ids), key=str)
        if not ids:
            return {}
        rows = self._session.execute(
            select(Account)
            .where(Account.id.in_(ids))
            .order_by(Account.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars()
        return {account.id: account for account in rows}

    def list(self, account_type: str | None = None, active_only: bool = False) -> list[Account]:
        stmt = select(Account).order_by(Account.code)
        if account_type is not None:
            stmt = stmt.where(Account.account_type == account_type)
        if active_only:
            stmt = stmt.where(Account.is_active.is_(True))
        return list(self._session.execute(stmt).scalars())

    def add(self, account: Account) -> Account:
        self._session.add(account)
        self._session.flush()
        return account

    def apply_balance_delta(self, account_id: UUID, delta: Decimal) -> Decimal:
        self._session.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(current_balance=Account.current_balance + delta)
            .execution_options(synchronize_session=False)
        )
        account = self._session.execute(
            select(Account)
            .where(Account.id == account_id)
            .execution_options(populate_existing=True)
        ).scalar_one()
        return account.current_balance
