"""Pydantic request/response schemas for sl_ledger.

Amounts come in as decimal strings/numbers with at most two fractional digits
and are converted to cents with sl_common.money.to_cents. Amount *rules*
(positive total, payment bounds) are enforced by the domain, so every
violation surfaces through the same AppError envelope.

Responses carry each amount three ways: cents, decimal string, display string.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from src.sl_common.datetime_utils import isoformat_or_none
from src.sl_common.money import cents_to_decimal, cents_to_display, to_cents
from src.sl_ledger.domain.aggregation import EventLedger
from src.sl_ledger.domain.allocator import MAX_PARTICIPANTS
from src.sl_ledger.domain.models import Event, LedgerEntry, Payment, UserAggregate

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateEventRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    total: Decimal = Field(..., description="Event total, e.g. 100.00")
    participant_ids: list[str] = Field(
        ...,
        max_length=MAX_PARTICIPANTS,
        description="Included participants; split order = list order",
    )

    def total_cents(self) -> int:
        return to_cents(self.total)


class RenameEventRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)


class AddParticipantRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    obligation: Decimal = Field(Decimal("0"), description="Amount this participant owes")

    def obligation_cents(self) -> int:
        return to_cents(self.obligation)


class EditEntryRequest(BaseModel):
    expected_version: int = Field(..., ge=0, description="Version token last read")
    obligation: Decimal | None = None
    included: bool | None = None

    def obligation_cents(self) -> int | None:
        return to_cents(self.obligation) if self.obligation is not None else None


class PaymentRequest(BaseModel):
    entry_id: str = Field(..., min_length=1, max_length=64)
    amount: Decimal = Field(..., description="Amount paid, e.g. 12.50")
    expected_version: int | None = Field(
        None, ge=0, description="Version token last read; omit to pay against the current version"
    )

    def amount_cents(self) -> int:
        return to_cents(self.amount)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


def _money(prefix: str, cents: int) -> dict[str, object]:
    return {
        f"{prefix}_cents": cents,
        prefix: str(cents_to_decimal(cents)),
        f"{prefix}_display": cents_to_display(cents),
    }


class EntryResponse(BaseModel):
    id: str
    event_id: str
    participant_id: str
    position: int
    obligation_cents: int
    obligation: str
    obligation_display: str
    paid_cents: int
    paid: str
    paid_display: str
    remaining_cents: int
    remaining: str
    remaining_display: str
    included: bool
    settled: bool
    settled_at: str | None
    version: int

    @classmethod
    def from_domain(cls, entry: LedgerEntry) -> "EntryResponse":
        return cls(
            id=entry.id,
            event_id=entry.event_id,
            participant_id=entry.participant_id,
            position=entry.position,
            **_money("obligation", entry.obligation),
            **_money("paid", entry.paid),
            **_money("remaining", entry.remaining),
            included=entry.included,
            settled=entry.settled,
            settled_at=isoformat_or_none(entry.settled_at),
            version=entry.version,
        )


class EventSummary(BaseModel):
    id: str
    title: str
    total_cents: int
    total: str
    total_display: str
    creator_id: str
    cancelled: bool
    created_at: str | None
    entry_ids: list[str]

    @classmethod
    def from_domain(cls, event: Event) -> "EventSummary":
        return cls(
            id=event.id,
            title=event.title,
            **_money("total", event.total),
            creator_id=event.creator_id,
            cancelled=event.cancelled,
            created_at=isoformat_or_none(event.created_at),
            entry_ids=list(event.entry_ids),
        )


class EventDetail(EventSummary):
    entries: list[EntryResponse]
    total_obligation_cents: int
    total_paid_cents: int
    total_remaining_cents: int
    total_remaining_display: str
    fully_settled: bool
    balanced: bool

    @classmethod
    def from_ledger(cls, ledger: EventLedger) -> "EventDetail":
        summary = EventSummary.from_domain(ledger.event)
        return cls(
            **summary.model_dump(),
            entries=[EntryResponse.from_domain(e) for e in ledger.entries],
            total_obligation_cents=ledger.total_obligation,
            total_paid_cents=ledger.total_paid,
            total_remaining_cents=ledger.total_remaining,
            total_remaining_display=cents_to_display(ledger.total_remaining),
            fully_settled=ledger.is_fully_settled,
            balanced=ledger.is_balanced,
        )


class EventListResponse(BaseModel):
    items: list[EventSummary]


class PaymentResponse(BaseModel):
    payment_id: str
    entry_id: str
    payer_id: str
    amount_cents: int
    amount: str
    amount_display: str
    created_at: str | None
    entry: EntryResponse

    @classmethod
    def from_result(cls, payment: Payment, entry: LedgerEntry) -> "PaymentResponse":
        return cls(
            payment_id=payment.id,
            entry_id=payment.entry_id,
            payer_id=payment.payer_id,
            **_money("amount", payment.amount),
            created_at=isoformat_or_none(payment.created_at),
            entry=EntryResponse.from_domain(entry),
        )


class UserAggregateResponse(BaseModel):
    user_id: str
    owed_by_user_cents: int
    owed_by_user: str
    owed_by_user_display: str
    owed_to_user_cents: int
    owed_to_user: str
    owed_to_user_display: str
    net_cents: int
    net_display: str

    @classmethod
    def from_domain(cls, aggregate: UserAggregate) -> "UserAggregateResponse":
        return cls(
            user_id=aggregate.user_id,
            **_money("owed_by_user", aggregate.owed_by_user),
            **_money("owed_to_user", aggregate.owed_to_user),
            net_cents=aggregate.net,
            net_display=cents_to_display(aggregate.net),
        )
