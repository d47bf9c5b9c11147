"""LedgerApplicationService — composition layer and transaction boundary.

Mutating operations validate first, then run their writes and `commit()`;
any exception triggers `rollback()` and is re-raised, so an operation lands
completely or not at all (an event with all its entries, an entry update with
its payment record). Read-only operations run without an explicit transaction.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.sl_common.datetime_utils import utc_now
from src.sl_common.errors import (
    DeleteWithBalanceError,
    EntryNotFoundError,
    EventNotFoundError,
    InvalidInputError,
    UserNotFoundError,
)
from src.sl_common.id_generator import generate_id
from src.sl_ledger.application.schemas import (
    EntryResponse,
    EventDetail,
    EventListResponse,
    EventSummary,
    PaymentResponse,
    UserAggregateResponse,
)
from src.sl_ledger.domain.aggregation import EventLedger, aggregate_for_user
from src.sl_ledger.domain.allocator import allocate, new_entry
from src.sl_ledger.domain.concurrency import ConcurrencyGuard
from src.sl_ledger.domain.models import Event
from src.sl_ledger.domain.repository import LedgerRepositoryProtocol
from src.sl_ledger.domain.settlement import SettlementEngine, apply_admin_edit
from src.sl_ledger.infrastructure.persistence import LedgerRepository

logger = logging.getLogger(__name__)


class LedgerApplicationService:
    def __init__(self, repo: LedgerRepositoryProtocol | None = None) -> None:
        self._repo: LedgerRepositoryProtocol = repo or LedgerRepository()
        self._guard = ConcurrencyGuard(self._repo)
        self._engine = SettlementEngine(self._repo, guard=self._guard)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def create_event(
        self,
        db: AsyncSession,
        creator_id: str,
        title: str,
        total_cents: int,
        participant_ids: list[str],
    ) -> EventDetail:
        title = title.strip()
        if not title:
            raise InvalidInputError("title must not be blank")
        if total_cents <= 0:
            raise InvalidInputError(f"total must be positive, got {total_cents} cents")
        if not participant_ids:
            raise InvalidInputError("at least one participant is required")

        event_id = generate_id("evt_")
        # Pure and may raise InvalidInputError; runs before any write
        entries = allocate(total_cents, participant_ids, event_id=event_id)

        await self._require_users(db, [creator_id, *participant_ids])

        event = Event(
            id=event_id,
            title=title,
            total=total_cents,
            creator_id=creator_id,
            cancelled=False,
            created_at=utc_now(),
        )
        try:
            saved = await self._repo.insert_event(db, event)
            saved_entries = await self._repo.insert_entries(db, entries)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Event created: event=%s creator=%s total=%d participants=%d",
            event_id, creator_id, total_cents, len(saved_entries),
        )
        return EventDetail.from_ledger(EventLedger.build(saved, saved_entries))

    async def list_events(self, db: AsyncSession, user_id: str) -> EventListResponse:
        events = await self._repo.list_events_for_user(db, user_id)
        return EventListResponse(items=[EventSummary.from_domain(e) for e in events])

    async def get_event(self, db: AsyncSession, event_id: str) -> EventDetail:
        ledger = await self._load_ledger(db, event_id)
        return EventDetail.from_ledger(ledger)

    async def add_participant(
        self,
        db: AsyncSession,
        event_id: str,
        user_id: str,
        obligation_cents: int = 0,
    ) -> EntryResponse:
        if obligation_cents < 0:
            raise InvalidInputError(
                f"obligation must not be negative, got {obligation_cents} cents"
            )
        event = await self._repo.get_event(db, event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        await self._require_users(db, [user_id])
        if await self._repo.has_participant(db, event_id, user_id):
            raise InvalidInputError(f"user {user_id} already participates in event {event_id}")

        try:
            position = await self._repo.next_entry_position(db, event_id)
            entry = new_entry(event_id, user_id, obligation_cents, position, utc_now())
            [saved] = await self._repo.insert_entries(db, [entry])
            await db.commit()
        except IntegrityError:
            # UNIQUE (event_id, participant_id) lost to a concurrent add
            await db.rollback()
            raise InvalidInputError(
                f"user {user_id} already participates in event {event_id}"
            ) from None
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Participant added: event=%s user=%s obligation=%d",
            event_id, user_id, obligation_cents,
        )
        return EntryResponse.from_domain(saved)

    async def rename_event(self, db: AsyncSession, event_id: str, title: str) -> EventDetail:
        """Change the title only; the total and the split stay as created."""
        title = title.strip()
        if not title:
            raise InvalidInputError("title must not be blank")
        try:
            event = await self._repo.rename_event(db, event_id, title)
            if event is None:
                raise EventNotFoundError(event_id)
            entries = await self._repo.list_entries_for_event(db, event_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Event renamed: event=%s", event_id)
        return EventDetail.from_ledger(EventLedger.build(event, entries))

    async def cancel_event(self, db: AsyncSession, event_id: str) -> EventDetail:
        """Exclude the event from aggregation. Entries and payments stay as they are."""
        try:
            event = await self._repo.set_event_cancelled(db, event_id)
            if event is None:
                raise EventNotFoundError(event_id)
            entries = await self._repo.list_entries_for_event(db, event_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Event cancelled: event=%s", event_id)
        return EventDetail.from_ledger(EventLedger.build(event, entries))

    async def delete_event(self, db: AsyncSession, event_id: str) -> None:
        """Hard delete with cascade to entries; refused once any money was recorded."""
        ledger = await self._load_ledger(db, event_id)
        if ledger.total_paid > 0 or any(e.paid > 0 for e in ledger.entries):
            raise DeleteWithBalanceError(f"event {event_id} has recorded payments")

        try:
            deleted = await self._repo.delete_event(db, event_id)
            if not deleted:
                # A payment landed between the read above and the delete
                raise DeleteWithBalanceError(f"event {event_id} has recorded payments")
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Event deleted: event=%s entries=%d", event_id, len(ledger.entries))

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    async def get_entry(self, db: AsyncSession, entry_id: str) -> EntryResponse:
        entry = await self._repo.get_entry(db, entry_id)
        if entry is None:
            raise EntryNotFoundError(entry_id)
        return EntryResponse.from_domain(entry)

    async def edit_entry(
        self,
        db: AsyncSession,
        entry_id: str,
        expected_version: int,
        obligation_cents: int | None = None,
        included: bool | None = None,
    ) -> EntryResponse:
        now = utc_now()
        try:
            updated = await self._guard.commit(
                db,
                entry_id,
                expected_version,
                lambda current: apply_admin_edit(
                    current, now, obligation=obligation_cents, included=included
                ),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Entry edited: entry=%s obligation=%d included=%s version=%d",
            entry_id, updated.obligation, updated.included, updated.version,
        )
        return EntryResponse.from_domain(updated)

    async def delete_entry(self, db: AsyncSession, entry_id: str) -> None:
        entry = await self._repo.get_entry(db, entry_id)
        if entry is None:
            raise EntryNotFoundError(entry_id)
        if entry.paid > 0:
            raise DeleteWithBalanceError(f"entry {entry_id} has {entry.paid} cents paid")

        try:
            deleted = await self._repo.delete_entry_if_unpaid(db, entry_id)
            if not deleted:
                if await self._repo.get_entry(db, entry_id) is None:
                    raise EntryNotFoundError(entry_id)
                raise DeleteWithBalanceError(f"entry {entry_id} has recorded payments")
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Entry deleted: entry=%s event=%s", entry_id, entry.event_id)

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    async def record_payment(
        self,
        db: AsyncSession,
        entry_id: str,
        payer_id: str,
        amount_cents: int,
        expected_version: int | None = None,
    ) -> PaymentResponse:
        """Apply a payment. VersionConflictError is surfaced, never retried here."""
        try:
            entry, payment = await self._engine.apply_payment(
                db, entry_id, payer_id, amount_cents, expected_version
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return PaymentResponse.from_result(payment, entry)

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    async def get_user_aggregate(
        self, db: AsyncSession, user_id: str, check_user: bool = True
    ) -> UserAggregateResponse:
        if check_user:
            await self._require_users(db, [user_id])
        entries = await self._repo.list_entries_involving_user(db, user_id)
        events = await self._repo.get_events_by_ids(db, [e.event_id for e in entries])
        aggregate = aggregate_for_user(user_id, entries, events)
        return UserAggregateResponse.from_domain(aggregate)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _load_ledger(self, db: AsyncSession, event_id: str) -> EventLedger:
        event = await self._repo.get_event(db, event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        entries = await self._repo.list_entries_for_event(db, event_id)
        return EventLedger.build(event, entries)

    async def _require_users(self, db: AsyncSession, user_ids: list[str]) -> None:
        wanted = list(dict.fromkeys(user_ids))
        existing = await self._repo.find_existing_user_ids(db, wanted)
        missing = [uid for uid in wanted if uid not in existing]
        if missing:
            raise UserNotFoundError(missing)
