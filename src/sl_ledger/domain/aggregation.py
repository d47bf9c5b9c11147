"""Read-side projections over persisted ledger entries.

Nothing here writes. EventLedger and UserAggregate are rebuilt from storage on
every read; they are never patched in memory to "stay in sync".
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace

from src.sl_ledger.domain.models import Event, LedgerEntry, UserAggregate

logger = logging.getLogger(__name__)


@dataclass
class EventLedger:
    event: Event
    entries: list[LedgerEntry]

    @classmethod
    def build(cls, event: Event, entries: Iterable[LedgerEntry]) -> "EventLedger":
        own = sorted(
            (e for e in entries if e.event_id == event.id),
            key=lambda e: (e.position, e.id),
        )
        return cls(event=replace(event, entry_ids=[e.id for e in own]), entries=own)

    @property
    def included_entries(self) -> list[LedgerEntry]:
        return [e for e in self.entries if e.included]

    @property
    def total_obligation(self) -> int:
        return sum(e.obligation for e in self.included_entries)

    @property
    def total_paid(self) -> int:
        return sum(e.paid for e in self.included_entries)

    @property
    def total_remaining(self) -> int:
        return sum(e.remaining for e in self.included_entries)

    @property
    def is_fully_settled(self) -> bool:
        return all(e.settled for e in self.included_entries)

    @property
    def is_balanced(self) -> bool:
        """True while included obligations still add up to the event total."""
        return self.total_obligation == self.event.total

    def entry_for(self, participant_id: str) -> LedgerEntry | None:
        for entry in self.entries:
            if entry.participant_id == participant_id:
                return entry
        return None


def aggregate_for_user(
    user_id: str,
    entries: Iterable[LedgerEntry],
    events: Mapping[str, Event],
) -> UserAggregate:
    """Sum the user's open exposure across all live events.

    owed_by_user: remaining on included entries where the user is the
        participant, in events that are not cancelled.
    owed_to_user: remaining on included entries of non-cancelled events the
        user created, minus the creator's own entry.

    An entry whose event cannot be resolved is skipped (with a warning) so one
    bad row never fails the whole view.
    """
    aggregate = UserAggregate(user_id=user_id)
    seen: set[str] = set()
    for entry in entries:
        if entry.id in seen:
            continue
        seen.add(entry.id)

        event = events.get(entry.event_id)
        if event is None:
            logger.warning(
                "Aggregation skipped entry=%s: event %s not found", entry.id, entry.event_id
            )
            continue
        if event.cancelled or not entry.included:
            continue

        if entry.participant_id == user_id:
            aggregate.owed_by_user += entry.remaining
        elif event.creator_id == user_id:
            aggregate.owed_to_user += entry.remaining
    return aggregate
