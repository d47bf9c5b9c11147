"""Domain models for sl_ledger — pure dataclasses, no SQLAlchemy dependency.

All amounts are int cents. References between Event and LedgerEntry are plain
ids in one direction each: an Event lists its entry ids in split order, an
entry carries its event_id. Neither holds the other as an object.
"""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Event:
    id: str
    title: str
    total: int               # cents, > 0, fixed at creation
    creator_id: str
    cancelled: bool = False
    created_at: datetime | None = None
    entry_ids: list[str] = field(default_factory=list)  # split order


@dataclass
class LedgerEntry:
    """One participant's obligation within one event.

    Invariants (also enforced by CHECK constraints on ledger_entries):
      0 <= paid <= obligation
      settled  <=>  paid == obligation
      settled_at is written once, on the first transition to settled
    """

    id: str
    event_id: str
    participant_id: str
    obligation: int          # cents, >= 0
    paid: int = 0            # cents, never decreases
    included: bool = True
    settled: bool = False
    settled_at: datetime | None = None
    version: int = 0         # optimistic-concurrency token, +1 per mutation
    position: int = 0        # index in the event's split order
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def remaining(self) -> int:
        return self.obligation - self.paid


@dataclass
class Payment:
    """Append-only audit record of one applied payment. Never mutated."""

    id: str
    entry_id: str
    payer_id: str
    amount: int              # cents, > 0
    created_at: datetime | None = None


@dataclass
class UserAggregate:
    user_id: str
    owed_by_user: int = 0    # cents the user still owes across live events
    owed_to_user: int = 0    # cents others still owe on events the user created

    @property
    def net(self) -> int:
        """Positive = net creditor, negative = net debtor."""
        return self.owed_to_user - self.owed_by_user
