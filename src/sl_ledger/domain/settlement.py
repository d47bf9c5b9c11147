"""SettlementEngine — applies payments to a single ledger entry.

Rules for one payment of `amount` cents against an entry:
  - amount <= 0            -> InvalidAmountError
  - amount > remaining     -> OverPaymentError (never clamped: the caller must
                              resubmit the amount actually transferred)
  - otherwise paid += amount; the first time paid reaches obligation the entry
    becomes settled and settled_at is stamped; version += 1 (by the guard).

The entry update and the payment record are written in the caller's
transaction, so both land or neither does.
"""

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.sl_common.datetime_utils import utc_now
from src.sl_common.errors import (
    EntryNotFoundError,
    InvalidAmountError,
    InvalidInputError,
    OverPaymentError,
)
from src.sl_common.id_generator import generate_id
from src.sl_ledger.domain.concurrency import ConcurrencyGuard
from src.sl_ledger.domain.models import LedgerEntry, Payment
from src.sl_ledger.domain.repository import LedgerRepositoryProtocol

logger = logging.getLogger(__name__)


def derive_settlement(entry: LedgerEntry, now: datetime) -> LedgerEntry:
    """Recompute settled from paid/obligation; settled_at is only ever set once."""
    settled = entry.paid >= entry.obligation
    settled_at = entry.settled_at
    if settled and settled_at is None:
        settled_at = now
    return replace(entry, settled=settled, settled_at=settled_at, updated_at=now)


def apply_payment_to_entry(entry: LedgerEntry, amount: int, now: datetime) -> LedgerEntry:
    """Pure: return the entry as it would look after the payment."""
    if amount <= 0:
        raise InvalidAmountError(amount)
    if amount > entry.remaining:
        raise OverPaymentError(amount, entry.remaining)
    return derive_settlement(replace(entry, paid=entry.paid + amount), now)


def apply_admin_edit(
    entry: LedgerEntry,
    now: datetime,
    obligation: int | None = None,
    included: bool | None = None,
) -> LedgerEntry:
    """Pure: explicit administrative change of obligation and/or inclusion.

    Excluded entries carry zero obligation, so excluding an entry that already
    received money is refused, as is lowering an obligation below what was paid.
    """
    if obligation is None and included is None:
        raise InvalidInputError("nothing to update")

    new_included = entry.included if included is None else included
    new_obligation = entry.obligation if obligation is None else obligation

    if not new_included:
        if entry.paid > 0:
            raise InvalidInputError("cannot exclude an entry that has payments")
        if obligation is not None and obligation != 0:
            raise InvalidInputError("excluded entries carry zero obligation")
        new_obligation = 0
    if new_obligation < 0:
        raise InvalidInputError(f"obligation must not be negative, got {new_obligation} cents")
    if new_obligation < entry.paid:
        raise InvalidInputError(
            f"obligation {new_obligation} cents is below the {entry.paid} cents already paid"
        )
    return derive_settlement(
        replace(entry, obligation=new_obligation, included=new_included), now
    )


class SettlementEngine:
    def __init__(
        self,
        repo: LedgerRepositoryProtocol,
        guard: ConcurrencyGuard | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repo = repo
        self._guard = guard or ConcurrencyGuard(repo)
        self._clock = clock

    async def apply_payment(
        self,
        db: AsyncSession,
        entry_id: str,
        payer_id: str,
        amount: int,
        expected_version: int | None = None,
    ) -> tuple[LedgerEntry, Payment]:
        """Apply one payment and append its audit record.

        expected_version is the version token the payer last saw. Without one,
        the version read here is used, which still protects the write against
        any writer that commits between this read and the update.
        """
        if expected_version is None:
            snapshot = await self._repo.get_entry(db, entry_id)
            if snapshot is None:
                raise EntryNotFoundError(entry_id)
            expected_version = snapshot.version

        now = self._clock()
        updated = await self._guard.commit(
            db,
            entry_id,
            expected_version,
            lambda current: apply_payment_to_entry(current, amount, now),
        )

        payment = await self._repo.insert_payment(
            db,
            Payment(
                id=generate_id("pay_"),
                entry_id=entry_id,
                payer_id=payer_id,
                amount=amount,
                created_at=now,
            ),
        )
        logger.info(
            "Payment applied: entry=%s payer=%s amount=%d paid=%d/%d version=%d settled=%s",
            entry_id, payer_id, amount, updated.paid, updated.obligation,
            updated.version, updated.settled,
        )
        return updated, payment
