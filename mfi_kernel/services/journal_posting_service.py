"""
JournalPostingService -- creates and posts balanced journal entries.

Responsibility:
    The single owner of account running balances.  Validates requested
    debit/credit lines, persists a JournalEntry with its details, and on
    posting applies every line to its account inside the caller's unit of
    work.

Architecture position:
    Kernel > Services.  Called by the lending module (disbursement and
    repayment entries) and by the GL module (manual bookkeeping).  Flushes
    only; the calling module service commits.

Invariants enforced:
    - Validation before mutation: empty entries, bad lines, imbalance and
      missing or inactive accounts are all rejected before anything is
      added to the session.
    - |sum(debits) - sum(credits)| <= 0.001 for every entry.
    - Posting is one-way: ``mark_posted`` is a compare-and-swap, so of two
      concurrent postings exactly one applies balances.
    - Balances move by ``debit - credit`` per line, incremented in SQL
      under row locks taken in account-id order.

Failure modes:
    - EmptyJournalEntryError, InvalidJournalLineError,
      UnbalancedJournalEntryError, AccountNotFoundError,
      AccountInactiveError at creation.
    - JournalEntryNotFoundError, AlreadyPostedError at posting.

Audit relevance:
    ``journal_entry_created`` and ``journal_entry_posted`` are logged with
    the entry id, reference and totals; posting also logs each balance
    change.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from mfi_kernel.db.types import BALANCE_TOLERANCE, ZERO, round_money, to_decimal
from mfi_kernel.domain.clock import Clock, SystemClock
from mfi_kernel.domain.dtos import BalanceChange, JournalLineSpec, PostingResult
from mfi_kernel.exceptions import (
    AccountInactiveError,
    AccountNotFoundError,
    AlreadyPostedError,
    EmptyJournalEntryError,
    InvalidJournalLineError,
    JournalEntryNotFoundError,
    UnbalancedJournalEntryError,
)
from mfi_kernel.logging_config import LogContext, get_logger
from mfi_kernel.models.account import Account
from mfi_kernel.models.journal import JournalEntry, JournalEntryDetail
from mfi_kernel.repositories.account_repository import (
    AccountRepository,
    SqlAlchemyAccountRepository,
)
from mfi_kernel.repositories.journal_repository import (
    JournalEntryRepository,
    SqlAlchemyJournalEntryRepository,
)
from mfi_kernel.services.base import BaseService

logger = get_logger("services.journal_posting")


@dataclass(frozen=True)
class ValidatedLine:
    """A journal line that passed validation, amounts rounded to 2 dp."""

    account: Account
    debit: Decimal
    credit: Decimal
    description: str | None


@dataclass(frozen=True)
class JournalEntryResult:
    """The created entry and, when posted in the same call, its posting."""

    entry: JournalEntry
    posting: PostingResult | None = None

    @property
    def entry_id(self) -> UUID:
        return self.entry.id


class JournalPostingService(BaseService):
    """
    Create and post journal entries.

    Contract:
        ``create_entry`` persists an unposted (or, with ``post=True``,
        posted) entry.  ``post_entry`` applies an unposted entry to account
        balances and returns the per-account changes.

    Non-goals:
        - Does NOT commit.  Callers own the transaction boundary.
        - Does NOT reverse or unpost entries.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        accounts: AccountRepository | None = None,
        journals: JournalEntryRepository | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._accounts = accounts or SqlAlchemyAccountRepository(session)
        self._journals = journals or SqlAlchemyJournalEntryRepository(session)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_lines(self, lines: Sequence[JournalLineSpec]) -> list[ValidatedLine]:
        """
        Check a set of requested lines without writing anything.

        Line shape is checked first, then the entry balance, then the
        referenced accounts.

        Returns:
            The lines with their Account rows attached, in input order.
        """
        if not lines:
            raise EmptyJournalEntryError()

        amounts: list[tuple[Decimal, Decimal]] = []
        for index, line in enumerate(lines):
            debit = to_decimal(line.debit)
            credit = to_decimal(line.credit)
            if debit < ZERO or credit < ZERO:
                raise InvalidJournalLineError(index, "amounts must not be negative")
            if debit > ZERO and credit > ZERO:
                raise InvalidJournalLineError(index, "a line is either a debit or a credit")
            # Balance and zero checks run on the stored (2 dp) amounts.
            debit, credit = round_money(debit), round_money(credit)
            if debit == ZERO and credit == ZERO:
                raise InvalidJournalLineError(index, "a line must carry at least 0.01")
            amounts.append((debit, credit))

        total_debits = sum((d for d, _ in amounts), ZERO)
        total_credits = sum((c for _, c in amounts), ZERO)
        if abs(total_debits - total_credits) > BALANCE_TOLERANCE:
            raise UnbalancedJournalEntryError(str(total_debits), str(total_credits))

        found = self._accounts.get_many(line.account_id for line in lines)
        validated: list[ValidatedLine] = []
        for line, (debit, credit) in zip(lines, amounts):
            account = found.get(line.account_id)
            if account is None:
                raise AccountNotFoundError(str(line.account_id))
            if not account.is_active:
                raise AccountInactiveError(str(line.account_id))
            validated.append(
                ValidatedLine(
                    account=account,
                    debit=debit,
                    credit=credit,
                    description=line.description,
                )
            )
        return validated

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_entry(
        self,
        entry_date: date,
        reference_number: str | None,
        description: str | None,
        lines: Sequence[JournalLineSpec],
        actor_id: UUID,
        post: bool = False,
    ) -> JournalEntryResult:
        """
        Validate and persist a journal entry with its detail lines.

        Args:
            entry_date: Accounting date of the entry.
            reference_number: Free-form external reference.
            description: Narrative for the entry.
            lines: Requested debit/credit lines (at least one).
            actor_id: Creator of the entry.
            post: Post the entry in the same unit of work.
        """
        validated = self.validate_lines(lines)

        entry = JournalEntry(
            entry_date=entry_date,
            reference_number=reference_number,
            description=description,
            is_posted=False,
            created_by_id=actor_id,
        )
        for seq, line in enumerate(validated, start=1):
            entry.details.append(
                JournalEntryDetail(
                    account_id=line.account.id,
                    debit_amount=line.debit,
                    credit_amount=line.credit,
                    description=line.description,
                    line_seq=seq,
                    created_by_id=actor_id,
                )
            )
        self._journals.add(entry)

        logger.info(
            "journal_entry_created",
            extra={
                "entry_id": str(entry.id),
                "reference_number": reference_number,
                "line_count": len(validated),
                "total_debits": str(sum((v.debit for v in validated), ZERO)),
                "total_credits": str(sum((v.credit for v in validated), ZERO)),
            },
        )

        posting = self.post_entry(entry.id, actor_id) if post else None
        return JournalEntryResult(entry=entry, posting=posting)

    def post_entry(self, entry_id: UUID, actor_id: UUID) -> PostingResult:
        """
        Apply an unposted entry to its accounts' running balances.

        Raises:
            JournalEntryNotFoundError: No entry with that id.
            AlreadyPostedError: The entry is (or concurrently became) posted.
        """
        with LogContext.bind(entry_id=str(entry_id)):
            entry = self._journals.get_for_update(entry_id)
            if entry is None:
                raise JournalEntryNotFoundError(str(entry_id))
            if entry.is_posted:
                raise AlreadyPostedError(str(entry_id))

            deltas: dict[UUID, Decimal] = {}
            for detail in entry.details:
                deltas[detail.account_id] = (
                    deltas.get(detail.account_id, ZERO) + detail.net_amount
                )

            locked = self._accounts.lock_many(deltas)
            for account_id in deltas:
                if account_id not in locked:
                    raise AccountNotFoundError(str(account_id))

            posted_at = self._clock.now()
            if not self._journals.mark_posted(entry_id, actor_id, posted_at):
                logger.warning("journal_entry_post_conflict")
                raise AlreadyPostedError(str(entry_id))

            changes: list[BalanceChange] = []
            for account_id in sorted(deltas, key=str):
                delta = deltas[account_id]
                new_balance = self._accounts.apply_balance_delta(account_id, delta)
                changes.append(
                    BalanceChange(
                        account_id=account_id,
                        account_code=locked[account_id].code,
                        delta=delta,
                        new_balance=new_balance,
                    )
                )
                logger.debug(
                    "account_balance_changed",
                    extra={
                        "account_id": str(account_id),
                        "delta": str(delta),
                        "new_balance": str(new_balance),
                    },
                )

            logger.info(
                "journal_entry_posted",
                extra={
                    "reference_number": entry.reference_number,
                    "posted_by_id": str(actor_id),
                    "account_count": len(changes),
                },
            )

            return PostingResult(
                entry_id=entry.id,
                reference_number=entry.reference_number,
                entry_date=entry.entry_date,
                posted_at=posted_at,
                posted_by_id=actor_id,
                balance_changes=tuple(changes),
            )
