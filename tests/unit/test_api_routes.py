"""HTTP-level tests: routing, auth, envelopes, error mapping.

The ledger and trade machine are real, wired to in-memory fakes through
FastAPI dependency overrides; no database is touched.
"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime

import pytest
from httpx import AsyncClient

from src.bw_barter.api.router import get_machine
from src.bw_barter.application.service import TradeCommitmentMachine
from src.bw_barter.domain.models import TradeOffer
from src.bw_common import redis_client
from src.bw_common.database import get_db_session
from src.bw_escrow.api.router import get_ledger
from src.bw_escrow.application.service import EscrowLedger
from src.bw_escrow.domain.models import Listing, Party
from src.bw_gateway.auth.jwt_handler import create_access_token
from src.main import app
from tests.fakes import (
    FakeEscrowRepository,
    FakeRedis,
    FakeSession,
    FakeTradeOfferRepository,
    FixedClock,
    FixedCodes,
    RecordingArbitrationQueue,
    RecordingMailer,
    RecordingNotifier,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _headers(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
def escrow_repo() -> FakeEscrowRepository:
    repo = FakeEscrowRepository()
    repo.users["buyer-1"] = Party("buyer-1", display_name="Tunde")
    repo.users["seller-1"] = Party("seller-1", display_name="Ada")
    repo.listings["lst_1"] = Listing(
        id="lst_1",
        seller_id="seller-1",
        title="Used iPhone",
        price_cents=150_000,
        currency_code="NGN",
        is_distress_sale=True,
        status="active",
    )
    return repo


@pytest.fixture
def offer_repo() -> FakeTradeOfferRepository:
    repo = FakeTradeOfferRepository()
    repo.offers["off_1"] = TradeOffer(
        id="off_1",
        buyer_id="buyer-1",
        seller_id="seller-1",
        listing_id="lst_2",
        status="accepted",
    )
    return repo


@pytest.fixture(autouse=True)
def _wire(
    escrow_repo: FakeEscrowRepository,
    offer_repo: FakeTradeOfferRepository,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    # Rate limiter sees an in-memory Redis instead of opening a real pool
    monkeypatch.setattr(redis_client, "_redis_pool", FakeRedis())
    ledger = EscrowLedger(
        repo=escrow_repo,
        notifier=RecordingNotifier(),
        mailer=RecordingMailer(),
        code_generator=FixedCodes("123456"),
        clock=FixedClock(NOW),
    )
    machine = TradeCommitmentMachine(
        repo=offer_repo,
        notifier=RecordingNotifier(),
        arbitration=RecordingArbitrationQueue(),
        code_generator=FixedCodes("482913"),
        clock=FixedClock(NOW),
    )

    async def fake_session() -> AsyncGenerator[FakeSession, None]:
        yield FakeSession()

    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_machine] = lambda: machine
    app.dependency_overrides[get_db_session] = fake_session


class TestHealth:
    async def test_health(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    async def test_request_id_header(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.headers["X-Request-ID"].startswith("req_")


class TestAuth:
    async def test_missing_token(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/escrow/initiate", json={"listing_id": "lst_1"})
        assert resp.status_code == 401
        assert resp.headers["WWW-Authenticate"] == "Bearer"

    async def test_garbage_token(self, client: AsyncClient) -> None:
        resp = await client.get(
            "/api/v1/barter/offers/off_1", headers={"Authorization": "Bearer nope"}
        )
        assert resp.status_code == 401


class TestEscrowRoutes:
    async def test_preview_is_public(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/escrow/preview/150000")
        assert resp.status_code == 200
        body = resp.json()
        assert body["code"] == 0
        data = body["data"]
        assert data["item_price_cents"] == 150_000
        assert data["total_to_pay_cents"] == 150_000 + data["protection_fee_cents"]
        assert data["seller_receives_cents"] == 150_000 - data["commission_cents"]

    async def test_preview_rejects_zero_price(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/escrow/preview/0")
        assert resp.status_code == 422
        body = resp.json()
        assert body["code"] == 3005
        assert body["data"] is None
        assert body["request_id"] == resp.headers["X-Request-ID"]

    async def test_initiate_and_view(
        self, client: AsyncClient, escrow_repo: FakeEscrowRepository
    ) -> None:
        resp = await client.post(
            "/api/v1/escrow/initiate", json={"listing_id": "lst_1"}, headers=_headers("buyer-1")
        )
        assert resp.status_code == 200
        escrow = resp.json()["data"]["escrow"]
        assert escrow["status"] == "held"
        assert escrow["confirmation_code"] == "123456"

        order_id = escrow["order_id"]
        seller_view = await client.get(
            f"/api/v1/escrow/order/{order_id}", headers=_headers("seller-1")
        )
        assert seller_view.status_code == 200
        assert seller_view.json()["data"]["confirmation_code"] is None

        outsider = await client.get(
            f"/api/v1/escrow/order/{order_id}", headers=_headers("stranger")
        )
        assert outsider.status_code == 403
        assert outsider.json()["code"] == 3008

    async def test_self_purchase_forbidden(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/escrow/initiate", json={"listing_id": "lst_1"}, headers=_headers("seller-1")
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == 2003

    async def test_confirm_requires_six_digits(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/escrow/confirm",
            json={"order_id": "ord_1", "confirmation_code": "12345"},
            headers=_headers("buyer-1"),
        )
        assert resp.status_code == 422

    async def test_confirm_releases(self, client: AsyncClient) -> None:
        init = await client.post(
            "/api/v1/escrow/initiate", json={"listing_id": "lst_1"}, headers=_headers("buyer-1")
        )
        order_id = init.json()["data"]["escrow"]["order_id"]

        resp = await client.post(
            "/api/v1/escrow/confirm",
            json={"order_id": order_id, "confirmation_code": "123456"},
            headers=_headers("buyer-1"),
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["success"] is True

        again = await client.post(
            "/api/v1/escrow/confirm",
            json={"order_id": order_id, "confirmation_code": "123456"},
            headers=_headers("buyer-1"),
        )
        assert again.status_code == 422
        assert again.json()["code"] == 3003

    async def test_webhook_wrong_secret(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/escrow/webhook/payment-success",
            json={"escrow_id": "esc_1", "payment_reference": "ref_1"},
            headers={"X-Webhook-Secret": "wrong"},
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == 3007

    async def test_webhook_missing_secret(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/escrow/webhook/payment-success",
            json={"escrow_id": "esc_1", "payment_reference": "ref_1"},
        )
        assert resp.status_code == 403

    async def test_webhook_unknown_escrow(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/escrow/webhook/payment-success",
            json={"escrow_id": "esc_missing", "payment_reference": "ref_1"},
            headers={"X-Webhook-Secret": "whsec_test"},
        )
        assert resp.status_code == 404
        assert resp.json()["code"] == 3001


class TestBarterRoutes:
    async def test_lock_both_then_pin(
        self, client: AsyncClient, offer_repo: FakeTradeOfferRepository
    ) -> None:
        first = await client.post("/api/v1/barter/offers/off_1/lock", headers=_headers("buyer-1"))
        assert first.status_code == 200
        assert first.json()["data"]["transitioned"] is False

        second = await client.post(
            "/api/v1/barter/offers/off_1/lock", headers=_headers("seller-1")
        )
        assert second.json()["data"]["offer"]["status"] == "awaiting_fulfillment"
        assert second.json()["data"]["offer"]["pickup_pin"] is None

        buyer_view = await client.get("/api/v1/barter/offers/off_1", headers=_headers("buyer-1"))
        assert buyer_view.json()["data"]["pickup_pin"] == "482913"

        verify = await client.post(
            "/api/v1/barter/offers/off_1/verify-pickup",
            json={"pin": "482913"},
            headers=_headers("seller-1"),
        )
        assert verify.status_code == 200
        assert verify.json()["data"]["just_completed"] is True
        assert offer_repo.offers["off_1"].status == "completed"

    async def test_manual_verify_without_body(
        self, client: AsyncClient, offer_repo: FakeTradeOfferRepository
    ) -> None:
        for user in ("buyer-1", "seller-1"):
            await client.post("/api/v1/barter/offers/off_1/lock", headers=_headers(user))

        resp = await client.post(
            "/api/v1/barter/offers/off_1/verify-pickup", headers=_headers("buyer-1")
        )
        assert resp.status_code == 200
        assert offer_repo.offers["off_1"].is_buyer_fulfilled is True
        assert offer_repo.offers["off_1"].status == "awaiting_fulfillment"

    async def test_malformed_pin_rejected(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/barter/offers/off_1/verify-pickup",
            json={"pin": "48291"},
            headers=_headers("seller-1"),
        )
        assert resp.status_code == 422

    async def test_dispute_before_lock_in(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/barter/offers/off_1/dispute",
            json={"reason": "no-show"},
            headers=_headers("buyer-1"),
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == 4003

    async def test_unknown_offer(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/barter/offers/off_nope", headers=_headers("buyer-1"))
        assert resp.status_code == 404
        assert resp.json()["code"] == 4001

    async def test_outsider(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/barter/offers/off_1/lock", headers=_headers("stranger")
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == 4002


class TestRequestId:
    async def test_inbound_id_is_reused(self, client: AsyncClient) -> None:
        resp = await client.get(
            "/api/v1/escrow/preview/0", headers={"X-Request-ID": "edge-1234abcd"}
        )
        assert resp.headers["X-Request-ID"] == "edge-1234abcd"
        assert resp.json()["request_id"] == "edge-1234abcd"

    async def test_malformed_inbound_id_is_replaced(self, client: AsyncClient) -> None:
        resp = await client.get("/health", headers={"X-Request-ID": "bad id!"})
        assert resp.headers["X-Request-ID"].startswith("req_")
