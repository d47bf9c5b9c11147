"""In-memory ledger repository for service, settlement and concurrency tests.

Behaves like LedgerRepository against a single database: the compare-and-swap
update is atomic, reads return copies, and every read yields to the event loop
once so concurrent coroutines genuinely interleave between read and write.
"""

import asyncio
from dataclasses import replace
from datetime import UTC, datetime

import pytest

from src.sl_ledger.domain.models import Event, LedgerEntry, Payment


class InMemoryLedgerRepository:
    def __init__(self) -> None:
        self.events: dict[str, Event] = {}
        self.entries: dict[str, LedgerEntry] = {}
        self.payments: list[Payment] = []
        self.users: set[str] = set()
        self.cas_attempts = 0

    # --- seeding helpers ---

    def add_users(self, *user_ids: str) -> None:
        self.users.update(user_ids)

    def seed_event(self, event: Event, entries: list[LedgerEntry]) -> None:
        self.events[event.id] = replace(event, entry_ids=[])
        for entry in entries:
            self.entries[entry.id] = replace(entry, event_id=event.id)

    # --- events ---

    def _with_entry_ids(self, event: Event) -> Event:
        own = sorted(
            (e for e in self.entries.values() if e.event_id == event.id),
            key=lambda e: (e.position, e.id),
        )
        return replace(event, entry_ids=[e.id for e in own])

    async def get_event(self, db: object, event_id: str) -> Event | None:
        await asyncio.sleep(0)
        event = self.events.get(event_id)
        return self._with_entry_ids(event) if event else None

    async def get_events_by_ids(self, db: object, event_ids: list[str]) -> dict[str, Event]:
        return {
            eid: self._with_entry_ids(self.events[eid])
            for eid in set(event_ids)
            if eid in self.events
        }

    async def list_events_for_user(self, db: object, user_id: str) -> list[Event]:
        mine = {
            e.event_id for e in self.entries.values() if e.participant_id == user_id
        }
        return [
            self._with_entry_ids(ev)
            for ev in self.events.values()
            if ev.creator_id == user_id or ev.id in mine
        ]

    async def insert_event(self, db: object, event: Event) -> Event:
        self.events[event.id] = replace(event, entry_ids=[])
        return replace(event, entry_ids=[])

    async def set_event_cancelled(self, db: object, event_id: str) -> Event | None:
        event = self.events.get(event_id)
        if event is None:
            return None
        self.events[event_id] = replace(event, cancelled=True)
        return self._with_entry_ids(self.events[event_id])

    async def rename_event(self, db: object, event_id: str, title: str) -> Event | None:
        event = self.events.get(event_id)
        if event is None:
            return None
        self.events[event_id] = replace(event, title=title)
        return self._with_entry_ids(self.events[event_id])

    async def delete_event(self, db: object, event_id: str) -> bool:
        if event_id not in self.events:
            return False
        own = [e for e in self.entries.values() if e.event_id == event_id]
        if any(e.paid > 0 for e in own):
            return False
        del self.events[event_id]
        for entry in own:
            del self.entries[entry.id]
        return True

    # --- entries ---

    async def get_entry(self, db: object, entry_id: str) -> LedgerEntry | None:
        await asyncio.sleep(0)
        entry = self.entries.get(entry_id)
        return replace(entry) if entry else None

    async def list_entries_for_event(self, db: object, event_id: str) -> list[LedgerEntry]:
        return sorted(
            (replace(e) for e in self.entries.values() if e.event_id == event_id),
            key=lambda e: (e.position, e.id),
        )

    async def list_entries_involving_user(
        self, db: object, user_id: str
    ) -> list[LedgerEntry]:
        created = {ev.id for ev in self.events.values() if ev.creator_id == user_id}
        return [
            replace(e)
            for e in self.entries.values()
            if e.participant_id == user_id or e.event_id in created
        ]

    async def insert_entries(self, db: object, entries: list[LedgerEntry]) -> list[LedgerEntry]:
        for entry in entries:
            self.entries[entry.id] = replace(entry)
        return list(entries)

    async def next_entry_position(self, db: object, event_id: str) -> int:
        positions = [e.position for e in self.entries.values() if e.event_id == event_id]
        return max(positions) + 1 if positions else 0

    async def has_participant(self, db: object, event_id: str, participant_id: str) -> bool:
        return any(
            e.event_id == event_id and e.participant_id == participant_id
            for e in self.entries.values()
        )

    async def update_entry_if_version(
        self, db: object, entry: LedgerEntry, expected_version: int
    ) -> LedgerEntry | None:
        # No await between check and write: atomic with respect to other coroutines
        self.cas_attempts += 1
        stored = self.entries.get(entry.id)
        if stored is None or stored.version != expected_version:
            return None
        updated = replace(
            entry,
            version=stored.version + 1,
            updated_at=datetime.now(UTC),
        )
        self.entries[entry.id] = updated
        return replace(updated)

    async def delete_entry_if_unpaid(self, db: object, entry_id: str) -> bool:
        entry = self.entries.get(entry_id)
        if entry is None or entry.paid > 0:
            return False
        del self.entries[entry_id]
        return True

    # --- payments ---

    async def insert_payment(self, db: object, payment: Payment) -> Payment:
        self.payments.append(payment)
        return payment

    # --- users ---

    async def find_existing_user_ids(self, db: object, user_ids: list[str]) -> set[str]:
        return {uid for uid in user_ids if uid in self.users}


@pytest.fixture
def memory_repo() -> InMemoryLedgerRepository:
    repo = InMemoryLedgerRepository()
    repo.add_users("alice", "bob", "carol", "dave")
    return repo
