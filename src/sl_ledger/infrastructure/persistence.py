"""LedgerRepository — concrete implementation of LedgerRepositoryProtocol.

All queries use raw text() SQL (no ORM session state).
The only way an existing entry row changes is _CAS_UPDATE_ENTRY_SQL, which
matches on (id, version) and bumps version by one. A result of 0 rows means a
concurrent writer got there first (or the row is gone).

Transaction ownership: The CALLER (application service) is responsible for
committing or rolling back.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sl_common.errors import InternalError
from src.sl_ledger.domain.models import Event, LedgerEntry, Payment

# ---------------------------------------------------------------------------
# SQL: events
# ---------------------------------------------------------------------------

_EVENT_COLUMNS = """
    e.id, e.title, e.total, e.creator_id, e.cancelled, e.created_at,
    COALESCE(
        array_agg(le.id ORDER BY le.position, le.id) FILTER (WHERE le.id IS NOT NULL),
        ARRAY[]::VARCHAR[]
    ) AS entry_ids
"""

_GET_EVENT_SQL = text(f"""
    SELECT {_EVENT_COLUMNS}
    FROM events e
    LEFT JOIN ledger_entries le ON le.event_id = e.id
    WHERE e.id = :event_id
    GROUP BY e.id
""")

_GET_EVENTS_BY_IDS_SQL = text(f"""
    SELECT {_EVENT_COLUMNS}
    FROM events e
    LEFT JOIN ledger_entries le ON le.event_id = e.id
    WHERE e.id = ANY(CAST(:event_ids AS VARCHAR[]))
    GROUP BY e.id
""")

_LIST_EVENTS_FOR_USER_SQL = text(f"""
    SELECT {_EVENT_COLUMNS}
    FROM events e
    LEFT JOIN ledger_entries le ON le.event_id = e.id
    WHERE e.creator_id = :user_id
       OR EXISTS (
            SELECT 1 FROM ledger_entries mine
            WHERE mine.event_id = e.id AND mine.participant_id = :user_id
       )
    GROUP BY e.id
    ORDER BY e.created_at DESC, e.id DESC
""")

_INSERT_EVENT_SQL = text("""
    INSERT INTO events (id, title, total, creator_id, cancelled, created_at)
    VALUES (:id, :title, :total, :creator_id, :cancelled, :created_at)
    RETURNING id, title, total, creator_id, cancelled, created_at
""")

_CANCEL_EVENT_SQL = text("""
    UPDATE events
    SET cancelled = TRUE,
        updated_at = NOW()
    WHERE id = :event_id
    RETURNING id
""")

_RENAME_EVENT_SQL = text("""
    UPDATE events
    SET title = :title,
        updated_at = NOW()
    WHERE id = :event_id
    RETURNING id
""")

# Refuses to delete while any entry carries a payment; payments also reference
# entries with ON DELETE RESTRICT, so the audit trail can never cascade away.
_DELETE_EVENT_SQL = text("""
    DELETE FROM events
    WHERE id = :event_id
      AND NOT EXISTS (
            SELECT 1 FROM ledger_entries
            WHERE event_id = :event_id AND paid > 0
      )
    RETURNING id
""")

# ---------------------------------------------------------------------------
# SQL: ledger entries
# ---------------------------------------------------------------------------

_ENTRY_COLUMNS = """
    id, event_id, participant_id, position, obligation, paid,
    included, settled, settled_at, version, created_at, updated_at
"""

_GET_ENTRY_SQL = text(f"""
    SELECT {_ENTRY_COLUMNS}
    FROM ledger_entries
    WHERE id = :entry_id
""")

_LIST_ENTRIES_FOR_EVENT_SQL = text(f"""
    SELECT {_ENTRY_COLUMNS}
    FROM ledger_entries
    WHERE event_id = :event_id
    ORDER BY position, id
""")

_LIST_ENTRIES_INVOLVING_USER_SQL = text(f"""
    SELECT {_ENTRY_COLUMNS}
    FROM ledger_entries
    WHERE participant_id = :user_id
       OR event_id IN (SELECT id FROM events WHERE creator_id = :user_id)
    ORDER BY event_id, position
""")

_INSERT_ENTRY_SQL = text("""
    INSERT INTO ledger_entries
        (id, event_id, participant_id, position, obligation, paid,
         included, settled, settled_at, version, created_at, updated_at)
    VALUES
        (:id, :event_id, :participant_id, :position, :obligation, :paid,
         :included, :settled, :settled_at, :version, :created_at, :updated_at)
""")

_NEXT_POSITION_SQL = text("""
    SELECT COALESCE(MAX(position) + 1, 0)
    FROM ledger_entries
    WHERE event_id = :event_id
""")

_HAS_PARTICIPANT_SQL = text("""
    SELECT 1
    FROM ledger_entries
    WHERE event_id = :event_id AND participant_id = :participant_id
    LIMIT 1
""")

_CAS_UPDATE_ENTRY_SQL = text(f"""
    UPDATE ledger_entries
    SET obligation = :obligation,
        paid       = :paid,
        included   = :included,
        settled    = :settled,
        settled_at = :settled_at,
        version    = version + 1,
        updated_at = NOW()
    WHERE id = :id AND version = :expected_version
    RETURNING {_ENTRY_COLUMNS}
""")

_DELETE_UNPAID_ENTRY_SQL = text("""
    DELETE FROM ledger_entries
    WHERE id = :entry_id AND paid = 0
    RETURNING id
""")

# ---------------------------------------------------------------------------
# SQL: payments, users
# ---------------------------------------------------------------------------

_INSERT_PAYMENT_SQL = text("""
    INSERT INTO payments (id, entry_id, payer_id, amount, created_at)
    VALUES (:id, :entry_id, :payer_id, :amount, :created_at)
    RETURNING id, entry_id, payer_id, amount, created_at
""")

_FIND_USERS_SQL = text("""
    SELECT id
    FROM users
    WHERE id = ANY(CAST(:user_ids AS VARCHAR[]))
      AND is_active
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_event(row: object) -> Event:
    return Event(
        id=row.id,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        total=row.total,  # type: ignore[attr-defined]
        creator_id=row.creator_id,  # type: ignore[attr-defined]
        cancelled=row.cancelled,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        entry_ids=list(getattr(row, "entry_ids", None) or []),
    )


def _row_to_entry(row: object) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,  # type: ignore[attr-defined]
        event_id=row.event_id,  # type: ignore[attr-defined]
        participant_id=row.participant_id,  # type: ignore[attr-defined]
        position=row.position,  # type: ignore[attr-defined]
        obligation=row.obligation,  # type: ignore[attr-defined]
        paid=row.paid,  # type: ignore[attr-defined]
        included=row.included,  # type: ignore[attr-defined]
        settled=row.settled,  # type: ignore[attr-defined]
        settled_at=row.settled_at,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_payment(row: object) -> Payment:
    return Payment(
        id=row.id,  # type: ignore[attr-defined]
        entry_id=row.entry_id,  # type: ignore[attr-defined]
        payer_id=row.payer_id,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _entry_params(entry: LedgerEntry) -> dict[str, object]:
    return {
        "id": entry.id,
        "event_id": entry.event_id,
        "participant_id": entry.participant_id,
        "position": entry.position,
        "obligation": entry.obligation,
        "paid": entry.paid,
        "included": entry.included,
        "settled": entry.settled,
        "settled_at": entry.settled_at,
        "version": entry.version,
        "created_at": entry.created_at,
        "updated_at": entry.updated_at or entry.created_at,
    }


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class LedgerRepository:
    """Concrete repository — each mutation is a single atomic SQL statement."""

    # --- events ---

    async def get_event(self, db: AsyncSession, event_id: str) -> Event | None:
        result = await db.execute(_GET_EVENT_SQL, {"event_id": event_id})
        row = result.fetchone()
        return _row_to_event(row) if row else None

    async def get_events_by_ids(
        self, db: AsyncSession, event_ids: list[str]
    ) -> dict[str, Event]:
        if not event_ids:
            return {}
        result = await db.execute(
            _GET_EVENTS_BY_IDS_SQL, {"event_ids": sorted(set(event_ids))}
        )
        events = [_row_to_event(row) for row in result.fetchall()]
        return {e.id: e for e in events}

    async def list_events_for_user(self, db: AsyncSession, user_id: str) -> list[Event]:
        result = await db.execute(_LIST_EVENTS_FOR_USER_SQL, {"user_id": user_id})
        return [_row_to_event(row) for row in result.fetchall()]

    async def insert_event(self, db: AsyncSession, event: Event) -> Event:
        result = await db.execute(
            _INSERT_EVENT_SQL,
            {
                "id": event.id,
                "title": event.title,
                "total": event.total,
                "creator_id": event.creator_id,
                "cancelled": event.cancelled,
                "created_at": event.created_at,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Event insert returned no rows")
        return _row_to_event(row)

    async def set_event_cancelled(self, db: AsyncSession, event_id: str) -> Event | None:
        result = await db.execute(_CANCEL_EVENT_SQL, {"event_id": event_id})
        if result.fetchone() is None:
            return None
        return await self.get_event(db, event_id)

    async def rename_event(
        self, db: AsyncSession, event_id: str, title: str
    ) -> Event | None:
        result = await db.execute(_RENAME_EVENT_SQL, {"event_id": event_id, "title": title})
        if result.fetchone() is None:
            return None
        return await self.get_event(db, event_id)

    async def delete_event(self, db: AsyncSession, event_id: str) -> bool:
        result = await db.execute(_DELETE_EVENT_SQL, {"event_id": event_id})
        return result.fetchone() is not None

    # --- entries ---

    async def get_entry(self, db: AsyncSession, entry_id: str) -> LedgerEntry | None:
        result = await db.execute(_GET_ENTRY_SQL, {"entry_id": entry_id})
        row = result.fetchone()
        return _row_to_entry(row) if row else None

    async def list_entries_for_event(
        self, db: AsyncSession, event_id: str
    ) -> list[LedgerEntry]:
        result = await db.execute(_LIST_ENTRIES_FOR_EVENT_SQL, {"event_id": event_id})
        return [_row_to_entry(row) for row in result.fetchall()]

    async def list_entries_involving_user(
        self, db: AsyncSession, user_id: str
    ) -> list[LedgerEntry]:
        result = await db.execute(_LIST_ENTRIES_INVOLVING_USER_SQL, {"user_id": user_id})
        return [_row_to_entry(row) for row in result.fetchall()]

    async def insert_entries(
        self, db: AsyncSession, entries: list[LedgerEntry]
    ) -> list[LedgerEntry]:
        if not entries:
            return []
        # executemany: one round trip for the whole split
        await db.execute(_INSERT_ENTRY_SQL, [_entry_params(e) for e in entries])
        return list(entries)

    async def next_entry_position(self, db: AsyncSession, event_id: str) -> int:
        result = await db.execute(_NEXT_POSITION_SQL, {"event_id": event_id})
        return int(result.scalar_one())

    async def has_participant(
        self, db: AsyncSession, event_id: str, participant_id: str
    ) -> bool:
        result = await db.execute(
            _HAS_PARTICIPANT_SQL,
            {"event_id": event_id, "participant_id": participant_id},
        )
        return result.fetchone() is not None

    async def update_entry_if_version(
        self, db: AsyncSession, entry: LedgerEntry, expected_version: int
    ) -> LedgerEntry | None:
        result = await db.execute(
            _CAS_UPDATE_ENTRY_SQL,
            {
                "id": entry.id,
                "obligation": entry.obligation,
                "paid": entry.paid,
                "included": entry.included,
                "settled": entry.settled,
                "settled_at": entry.settled_at,
                "expected_version": expected_version,
            },
        )
        row = result.fetchone()
        return _row_to_entry(row) if row else None

    async def delete_entry_if_unpaid(self, db: AsyncSession, entry_id: str) -> bool:
        result = await db.execute(_DELETE_UNPAID_ENTRY_SQL, {"entry_id": entry_id})
        return result.fetchone() is not None

    # --- payments ---

    async def insert_payment(self, db: AsyncSession, payment: Payment) -> Payment:
        result = await db.execute(
            _INSERT_PAYMENT_SQL,
            {
                "id": payment.id,
                "entry_id": payment.entry_id,
                "payer_id": payment.payer_id,
                "amount": payment.amount,
                "created_at": payment.created_at,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Payment insert returned no rows")
        return _row_to_payment(row)

    # --- users ---

    async def find_existing_user_ids(
        self, db: AsyncSession, user_ids: list[str]
    ) -> set[str]:
        if not user_ids:
            return set()
        result = await db.execute(_FIND_USERS_SQL, {"user_ids": sorted(set(user_ids))})
        return {row.id for row in result.fetchall()}
