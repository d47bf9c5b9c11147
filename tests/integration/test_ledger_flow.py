"""End-to-end ledger flow against PostgreSQL (requires running PG).

Pre-condition: alembic upgrade head

Uses the session-scoped fixtures from tests/integration/conftest.py.
"""

import asyncio

import pytest
from httpx import AsyncClient

from src.sl_gateway.auth.jwt_handler import create_access_token

pytestmark = pytest.mark.asyncio(loop_scope="session")


def auth_headers(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


async def _create_event(client: AsyncClient, user_ids: list[str]) -> dict:
    creator, *others = user_ids
    resp = await client.post(
        "/api/v1/events",
        json={"title": "Cabin weekend", "total": "100.00", "participant_ids": [creator, *others[:2]]},
        headers=auth_headers(creator),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def test_create_pay_and_aggregate(client: AsyncClient, user_ids: list[str]) -> None:
    event = await _create_event(client, user_ids)
    assert [e["obligation_cents"] for e in event["entries"]] == [3334, 3333, 3333]

    payer = user_ids[1]
    entry = event["entries"][1]
    resp = await client.post(
        "/api/v1/payments",
        json={"entry_id": entry["id"], "amount": "33.33", "expected_version": entry["version"]},
        headers=auth_headers(payer),
    )
    assert resp.status_code == 201, resp.text
    assert resp.json()["data"]["entry"]["settled"] is True

    resp = await client.get(
        f"/api/v1/events/{event['id']}", headers=auth_headers(user_ids[0])
    )
    detail = resp.json()["data"]
    assert detail["total_paid_cents"] == 3333
    assert detail["balanced"] is True


async def test_racing_payments_one_conflict(client: AsyncClient, user_ids: list[str]) -> None:
    event = await _create_event(client, user_ids)
    entry = event["entries"][2]
    body = {"entry_id": entry["id"], "amount": "20.00", "expected_version": 0}

    responses = await asyncio.gather(
        client.post("/api/v1/payments", json=body, headers=auth_headers(user_ids[2])),
        client.post("/api/v1/payments", json=body, headers=auth_headers(user_ids[3])),
    )

    assert sorted(r.status_code for r in responses) == [201, 409]
    resp = await client.get(f"/api/v1/entries/{entry['id']}", headers=auth_headers(user_ids[0]))
    stored = resp.json()["data"]
    assert stored["paid_cents"] == 2000
    assert stored["version"] == 1


async def test_delete_event_with_payment_refused(
    client: AsyncClient, user_ids: list[str]
) -> None:
    event = await _create_event(client, user_ids)
    entry = event["entries"][1]
    await client.post(
        "/api/v1/payments",
        json={"entry_id": entry["id"], "amount": "1.00"},
        headers=auth_headers(user_ids[1]),
    )

    resp = await client.delete(f"/api/v1/events/{event['id']}", headers=auth_headers(user_ids[0]))

    assert resp.status_code == 409
    assert resp.json()["code"] == 3004
