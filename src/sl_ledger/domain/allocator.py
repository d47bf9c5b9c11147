"""Equal-split allocation of an event total across ordered participants.

share = total // n, and the remainder (always < n cents) goes one cent at a
time to the first participants in the given order, so the shares always sum
to the total exactly. allocate(10000, [A, B, C]) -> A 3334, B 3333, C 3333.
"""

from datetime import datetime

from src.sl_common.datetime_utils import utc_now
from src.sl_common.errors import InvalidInputError
from src.sl_common.id_generator import generate_id
from src.sl_ledger.domain.models import LedgerEntry

MAX_PARTICIPANTS = 1000


def split_shares(total: int, n: int) -> list[int]:
    """Per-position shares in cents; earliest positions absorb the remainder."""
    if total <= 0:
        raise InvalidInputError(f"total must be positive, got {total} cents")
    if n <= 0:
        raise InvalidInputError("at least one participant is required")
    share, remainder = divmod(total, n)
    return [share + 1 if i < remainder else share for i in range(n)]


def new_entry(
    event_id: str,
    participant_id: str,
    obligation: int,
    position: int,
    now: datetime,
) -> LedgerEntry:
    """A fresh, unpaid entry at version 0.

    A zero obligation means nothing is owed, so such an entry starts out settled.
    """
    if obligation < 0:
        raise InvalidInputError(f"obligation must not be negative, got {obligation} cents")
    born_settled = obligation == 0
    return LedgerEntry(
        id=generate_id("ent_"),
        event_id=event_id,
        participant_id=participant_id,
        obligation=obligation,
        paid=0,
        included=True,
        settled=born_settled,
        settled_at=now if born_settled else None,
        version=0,
        position=position,
        created_at=now,
        updated_at=now,
    )


def allocate(total: int, participants: list[str], event_id: str = "") -> list[LedgerEntry]:
    """Build one entry per participant, in participant order.

    Pure apart from id generation: nothing is persisted here. event_id may be
    left empty and bound by the caller before persisting.
    """
    if not participants:
        raise InvalidInputError("at least one participant is required")
    if len(participants) > MAX_PARTICIPANTS:
        raise InvalidInputError(
            f"at most {MAX_PARTICIPANTS} participants, got {len(participants)}"
        )
    if len(set(participants)) != len(participants):
        raise InvalidInputError("participant ids must be unique")

    shares = split_shares(total, len(participants))
    now = utc_now()
    return [
        new_entry(event_id, participant_id, share, position, now)
        for position, (participant_id, share) in enumerate(zip(participants, shares))
    ]
