"""Optimistic concurrency for ledger entries.

ConcurrencyGuard.commit(entry_id, expected_version, mutation) is the only way
an existing entry is written. The persisted version must still equal the
version the caller read; the write itself is a compare-and-swap
(UPDATE ... WHERE id = :id AND version = :expected_version) so two writers
racing on the same entry can never both succeed. Unrelated entries never
contend with each other.

A conflict is reported, never retried here: the caller re-reads and decides.
"""

import logging
from collections.abc import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from src.sl_common.errors import EntryNotFoundError, InternalError, VersionConflictError
from src.sl_ledger.domain.models import LedgerEntry
from src.sl_ledger.domain.repository import LedgerRepositoryProtocol

logger = logging.getLogger(__name__)

EntryMutation = Callable[[LedgerEntry], LedgerEntry]


def check_entry_invariants(entry: LedgerEntry) -> None:
    """Raise InternalError if a proposed entry state breaks the ledger invariants."""
    if entry.obligation < 0 or entry.paid < 0:
        raise InternalError(f"Entry {entry.id}: negative amounts")
    if entry.paid > entry.obligation:
        raise InternalError(
            f"Entry {entry.id}: paid {entry.paid} exceeds obligation {entry.obligation}"
        )
    if entry.settled != (entry.paid == entry.obligation):
        raise InternalError(f"Entry {entry.id}: settled flag out of sync with remaining")
    if entry.settled and entry.settled_at is None:
        raise InternalError(f"Entry {entry.id}: settled without settled_at")


class ConcurrencyGuard:
    def __init__(self, repo: LedgerRepositoryProtocol) -> None:
        self._repo = repo

    async def commit(
        self,
        db: AsyncSession,
        entry_id: str,
        expected_version: int,
        mutation: EntryMutation,
    ) -> LedgerEntry:
        """Apply mutation to the entry at expected_version and persist it.

        Raises:
            EntryNotFoundError: the entry does not exist (or vanished mid-write).
            VersionConflictError: another writer committed first.
            Any AppError raised by mutation itself; nothing is written then.
        """
        current = await self._repo.get_entry(db, entry_id)
        if current is None:
            raise EntryNotFoundError(entry_id)
        if current.version != expected_version:
            logger.warning(
                "Stale write rejected: entry=%s expected_version=%d current_version=%d",
                entry_id, expected_version, current.version,
            )
            raise VersionConflictError(entry_id, expected_version)

        proposed = mutation(current)
        if proposed.id != current.id or proposed.version != current.version:
            raise InternalError("Mutation must not change entry id or version")
        check_entry_invariants(proposed)

        updated = await self._repo.update_entry_if_version(db, proposed, expected_version)
        if updated is None:
            if await self._repo.get_entry(db, entry_id) is None:
                raise EntryNotFoundError(entry_id)
            logger.warning(
                "Lost compare-and-swap: entry=%s expected_version=%d",
                entry_id, expected_version,
            )
            raise VersionConflictError(entry_id, expected_version)
        return updated
