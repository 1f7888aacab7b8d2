"""
JournalEntryRepository -- persistence interface for journal entries.

Contract:
    ``mark_posted`` is a compare-and-swap: it flips ``is_posted`` only if it
    is still false and reports whether this call won.  Two concurrent
    postings of one entry therefore see exactly one winner.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from mfi_kernel.models.journal import JournalEntry


class JournalEntryRepository(ABC):
    """Persistence operations on JournalEntry rows."""

    @abstractmethod
    def add(self, entry: JournalEntry) -> JournalEntry: ...

    @abstractmethod
    def get(self, entry_id: UUID) -> JournalEntry | None: ...

    @abstractmethod
    def get_for_update(self, entry_id: UUID) -> JournalEntry | None: ...

    @abstractmethod
    def mark_posted(self, entry_id: UUID, posted_by_id: UUID, posted_at: datetime) -> bool: ...


class SqlAlchemyJournalEntryRepository(JournalEntryRepository):
    """JournalEntryRepository backed by a SQLAlchemy Session."""

    def __init__(self, session: Session):
        self._session = session

    def add(self, entry: JournalEntry) -> JournalEntry:
        self._session.add(entry)
        self._session.flush()
        return entry

    def get(self, entry_id: UUID) -> JournalEntry | None:
        return self._session.execute(
            select(JournalEntry)
            .where(JournalEntry.id == entry_id)
            .options(selectinload(JournalEntry.details))
        ).scalar_one_or_none()

    def get_for_update(self, entry_id: UUID) -> JournalEntry | None:
        # populate_existing picks up a posting committed by another session
        # after this session first loaded the entry.
        return self._session.execute(
            select(JournalEntry)
            .where(JournalEntry.id == entry_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def mark_posted(self, entry_id: UUID, posted_by_id: UUID, posted_at: datetime) -> bool:
        result = self._session.execute(
            update(JournalEntry)
            .where(JournalEntry.id == entry_id, JournalEntry.is_posted.is_(False))
            .values(
                is_posted=True,
                posted_at=posted_at,
                posted_by_id=posted_by_id,
                updated_by_id=posted_by_id,
            )
            .execution_options(synchronize_session=False)
        )
        won = result.rowcount == 1
        if won:
            self._session.execute(
                select(JournalEntry)
                .where(JournalEntry.id == entry_id)
                .execution_options(populate_existing=True)
            ).scalar_one()
        return won
