"""HTTP surface: payload validation, status mapping and response bodies."""

from __future__ import annotations

import asyncio
from collections import Counter

import httpx
import pytest

from app.core.exceptions import StoreFailure
from app.services.coupons import coupon_store

pytestmark = pytest.mark.integration


async def _create(client: httpx.AsyncClient, name: str, amount: int) -> httpx.Response:
    return await client.post("/api/coupons", json={"name": name, "amount": amount})


async def _claim(client: httpx.AsyncClient, coupon_name: str, user_id: str) -> httpx.Response:
    return await client.post(
        "/api/coupons/claim", json={"user_id": user_id, "coupon_name": coupon_name}
    )


@pytest.mark.asyncio
async def test_health_check(client: httpx.AsyncClient):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_create_claim_and_details(client: httpx.AsyncClient):
    created = await _create(client, "PROMO_SUPER", 2)
    assert created.status_code == 201
    assert created.content == b""

    claimed = await _claim(client, "PROMO_SUPER", "alice")
    assert claimed.status_code == 201
    assert claimed.content == b""

    response = await client.get("/api/coupons/PROMO_SUPER")
    assert response.status_code == 200
    assert response.json() == {
        "name": "PROMO_SUPER",
        "amount": 2,
        "remaining_amount": 1,
        "claimed_by": ["alice"],
    }


@pytest.mark.asyncio
async def test_details_without_claims_has_empty_list(client: httpx.AsyncClient):
    await _create(client, "FRESH", 3)

    response = await client.get("/api/coupons/FRESH")

    assert response.json()["claimed_by"] == []
    assert response.json()["remaining_amount"] == 3


@pytest.mark.asyncio
async def test_duplicate_create_is_bad_request(client: httpx.AsyncClient):
    await _create(client, "X", 10)

    response = await _create(client, "X", 20)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "coupon already exists: X"
    assert body["error_code"] == "COUPON_ALREADY_EXISTS"


@pytest.mark.asyncio
async def test_unknown_coupon_is_bad_request(client: httpx.AsyncClient):
    claimed = await _claim(client, "NOPE", "alice")
    assert claimed.status_code == 400
    assert claimed.json()["message"] == "coupon not found: NOPE"

    fetched = await client.get("/api/coupons/NOPE")
    assert fetched.status_code == 400
    assert fetched.json()["message"] == "coupon not found: NOPE"


@pytest.mark.asyncio
async def test_already_claimed_and_out_of_stock_are_conflicts(client: httpx.AsyncClient):
    await _create(client, "ONE", 1)
    assert (await _claim(client, "ONE", "alice")).status_code == 201

    again = await _claim(client, "ONE", "alice")
    assert again.status_code == 409
    assert again.json()["error_code"] == "COUPON_ALREADY_CLAIMED"

    late = await _claim(client, "ONE", "bob")
    assert late.status_code == 409
    assert late.json()["error_code"] == "COUPON_OUT_OF_STOCK"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "path, body",
    [
        ("/api/coupons", {"name": "X", "amount": 1, "unexpected": True}),
        ("/api/coupons", {"name": "X", "amount": "1"}),
        ("/api/coupons", {"name": "X", "amount": -1}),
        ("/api/coupons", {"name": "", "amount": 1}),
        ("/api/coupons", {"amount": 1}),
        ("/api/coupons/claim", {"user_id": "u", "coupon_name": "X", "amount": 1}),
        ("/api/coupons/claim", {"user_id": "", "coupon_name": "X"}),
        ("/api/coupons/claim", {"coupon_name": "X"}),
    ],
)
async def test_bad_payloads_are_rejected(client: httpx.AsyncClient, path: str, body: dict):
    response = await client.post(path, json=body)

    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_malformed_json_is_rejected(client: httpx.AsyncClient):
    response = await client.post(
        "/api/coupons",
        content=b'{"name": "X", "amount": ',
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_missing_path_parameter_is_bad_request(client: httpx.AsyncClient):
    response = await client.get("/api/coupons/")

    assert response.status_code == 400
    assert response.json()["message"] == "coupon name required"


@pytest.mark.asyncio
async def test_store_failure_is_opaque_server_error(
    client: httpx.AsyncClient, monkeypatch: pytest.MonkeyPatch
):
    async def broken_claim(db, coupon_name, user_id, **kwargs):
        raise StoreFailure("claim_coupon failed: connection reset by peer")

    monkeypatch.setattr(coupon_store, "claim_coupon", broken_claim)

    response = await _claim(client, "X", "alice")

    assert response.status_code == 500
    assert "connection reset" not in response.text
    assert response.json()["error_code"] == "COUPON_STORE_FAILURE"


@pytest.mark.asyncio
async def test_unexpected_error_is_generic_server_error(
    client: httpx.AsyncClient, monkeypatch: pytest.MonkeyPatch
):
    async def exploding_details(db, name, **kwargs):
        raise RuntimeError("secret stack detail")

    monkeypatch.setattr(coupon_store, "get_coupon_details", exploding_details)

    response = await client.get("/api/coupons/X")

    assert response.status_code == 500
    assert "secret" not in response.text


@pytest.mark.asyncio
async def test_flash_sale_over_http(client: httpx.AsyncClient):
    assert (await _create(client, "PROMO_SUPER", 5)).status_code == 201

    responses = await asyncio.gather(
        *(_claim(client, "PROMO_SUPER", f"user_{i}") for i in range(50))
    )

    statuses = Counter(r.status_code for r in responses)
    assert statuses == Counter({201: 5, 409: 45})
    assert all(
        r.json()["error_code"] == "COUPON_OUT_OF_STOCK" for r in responses if r.status_code == 409
    )

    body = (await client.get("/api/coupons/PROMO_SUPER")).json()
    assert body["remaining_amount"] == 0
    assert len(body["claimed_by"]) == 5


@pytest.mark.asyncio
async def test_double_dip_over_http(client: httpx.AsyncClient):
    assert (await _create(client, "PROMO_SUPER", 10)).status_code == 201

    responses = await asyncio.gather(
        *(_claim(client, "PROMO_SUPER", "user_12345") for _ in range(10))
    )

    statuses = Counter(r.status_code for r in responses)
    assert statuses == Counter({201: 1, 409: 9})

    body = (await client.get("/api/coupons/PROMO_SUPER")).json()
    assert body["remaining_amount"] == 9
    assert body["claimed_by"] == ["user_12345"]
