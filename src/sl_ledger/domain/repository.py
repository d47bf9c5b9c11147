"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock (or the in-memory fake) that conforms to this Protocol.
Infrastructure layer provides the real implementation.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sl_ledger.domain.models import Event, LedgerEntry, Payment


class LedgerRepositoryProtocol(Protocol):
    # --- events ---

    async def get_event(self, db: AsyncSession, event_id: str) -> Event | None: ...

    async def get_events_by_ids(
        self, db: AsyncSession, event_ids: list[str]
    ) -> dict[str, Event]: ...

    async def list_events_for_user(self, db: AsyncSession, user_id: str) -> list[Event]: ...

    async def insert_event(self, db: AsyncSession, event: Event) -> Event: ...

    async def set_event_cancelled(self, db: AsyncSession, event_id: str) -> Event | None: ...

    async def rename_event(
        self, db: AsyncSession, event_id: str, title: str
    ) -> Event | None: ...

    async def delete_event(self, db: AsyncSession, event_id: str) -> bool: ...

    # --- entries ---

    async def get_entry(self, db: AsyncSession, entry_id: str) -> LedgerEntry | None: ...

    async def list_entries_for_event(
        self, db: AsyncSession, event_id: str
    ) -> list[LedgerEntry]: ...

    async def list_entries_involving_user(
        self, db: AsyncSession, user_id: str
    ) -> list[LedgerEntry]: ...

    async def insert_entries(
        self, db: AsyncSession, entries: list[LedgerEntry]
    ) -> list[LedgerEntry]: ...

    async def next_entry_position(self, db: AsyncSession, event_id: str) -> int: ...

    async def has_participant(
        self, db: AsyncSession, event_id: str, participant_id: str
    ) -> bool: ...

    async def update_entry_if_version(
        self, db: AsyncSession, entry: LedgerEntry, expected_version: int
    ) -> LedgerEntry | None:
        """Compare-and-swap write: None when no row matched id + expected_version."""
        ...

    async def delete_entry_if_unpaid(self, db: AsyncSession, entry_id: str) -> bool: ...

    # --- payments ---

    async def insert_payment(self, db: AsyncSession, payment: Payment) -> Payment: ...

    # --- users ---

    async def find_existing_user_ids(
        self, db: AsyncSession, user_ids: list[str]
    ) -> set[str]: ...
