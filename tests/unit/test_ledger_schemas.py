"""Tests for sl_ledger request/response schemas."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

from src.sl_common.errors import InvalidInputError
from src.sl_ledger.application.schemas import (
    CreateEventRequest,
    EditEntryRequest,
    EntryResponse,
    PaymentRequest,
    UserAggregateResponse,
)
from src.sl_ledger.domain.allocator import MAX_PARTICIPANTS
from src.sl_ledger.domain.models import LedgerEntry, UserAggregate


class TestRequests:
    def test_create_event_total_cents(self) -> None:
        req = CreateEventRequest(title="Dinner", total="100.00", participant_ids=["a", "b"])
        assert req.total_cents() == 10000

    def test_create_event_sub_cent_total(self) -> None:
        req = CreateEventRequest(title="Dinner", total="1.005", participant_ids=["a"])
        with pytest.raises(InvalidInputError):
            req.total_cents()

    def test_create_event_out_of_range_total(self) -> None:
        for total in ("1e999999", "1e20"):
            req = CreateEventRequest(title="Dinner", total=total, participant_ids=["a"])
            with pytest.raises(InvalidInputError, match="out of range"):
                req.total_cents()

    def test_create_event_too_many_participants(self) -> None:
        with pytest.raises(ValidationError):
            CreateEventRequest(
                title="Dinner",
                total="1.00",
                participant_ids=[str(i) for i in range(MAX_PARTICIPANTS + 1)],
            )

    def test_create_event_empty_title(self) -> None:
        with pytest.raises(ValidationError):
            CreateEventRequest(title="", total="1.00", participant_ids=["a"])

    def test_payment_request_optional_version(self) -> None:
        req = PaymentRequest(entry_id="ent_1", amount=Decimal("12.50"))
        assert req.amount_cents() == 1250
        assert req.expected_version is None

    def test_payment_request_negative_version(self) -> None:
        with pytest.raises(ValidationError):
            PaymentRequest(entry_id="ent_1", amount="1", expected_version=-1)

    def test_edit_entry_obligation_optional(self) -> None:
        req = EditEntryRequest(expected_version=2, included=False)
        assert req.obligation_cents() is None
        assert EditEntryRequest(expected_version=2, obligation="7.25").obligation_cents() == 725

    def test_edit_entry_out_of_range_obligation(self) -> None:
        req = EditEntryRequest(expected_version=0, obligation="1e30")
        with pytest.raises(InvalidInputError):
            req.obligation_cents()


class TestResponses:
    def test_entry_response_amounts(self) -> None:
        settled_at = datetime(2026, 3, 1, tzinfo=UTC)
        entry = LedgerEntry(
            id="ent_1", event_id="evt_1", participant_id="alice", obligation=3334,
            paid=3334, settled=True, settled_at=settled_at, version=2,
        )
        resp = EntryResponse.from_domain(entry)
        assert resp.obligation == "33.34"
        assert resp.paid_display == "$33.34"
        assert resp.remaining_cents == 0
        assert resp.remaining == "0.00"
        assert resp.settled_at == settled_at.isoformat()

    def test_aggregate_response_net(self) -> None:
        resp = UserAggregateResponse.from_domain(
            UserAggregate(user_id="alice", owed_by_user=2500, owed_to_user=5666)
        )
        assert resp.net_cents == 3166
        assert resp.net_display == "$31.66"
        assert resp.owed_to_user == "56.66"
