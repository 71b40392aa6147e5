"""Unit tests for the raw-SQL repositories using MagicMock AsyncSession."""

from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from src.bw_barter.domain.models import TradeOffer
from src.bw_barter.infrastructure.persistence import TradeOfferRepository
from src.bw_escrow.domain.models import Order
from src.bw_escrow.infrastructure.persistence import EscrowRepository

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _db_returning(row: Any = None, rows: list[Any] | None = None) -> AsyncMock:
    db = AsyncMock()
    result_mock = MagicMock()
    result_mock.fetchone.return_value = row
    result_mock.fetchall.return_value = rows or []
    db.execute.return_value = result_mock
    return db


def _escrow_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.id = kwargs.get("id", "esc_1")
    row.order_id = kwargs.get("order_id", "ord_1")
    row.item_price_cents = kwargs.get("item_price_cents", 150_000)
    row.protection_fee_cents = kwargs.get("protection_fee_cents", 1_500)
    row.commission_cents = kwargs.get("commission_cents", 3_000)
    row.total_paid_cents = kwargs.get("total_paid_cents", 151_500)
    row.seller_receives_cents = kwargs.get("seller_receives_cents", 147_000)
    row.currency_code = kwargs.get("currency_code", "NGN")
    row.status = kwargs.get("status", "held")
    row.payment_status = kwargs.get("payment_status", "success")
    row.confirmation_code = kwargs.get("confirmation_code", "123456")
    row.payment_provider = kwargs.get("payment_provider", "mock")
    row.payment_reference = kwargs.get("payment_reference", "MOCK_1")
    row.expires_at = kwargs.get("expires_at", NOW + timedelta(hours=24))
    row.paid_at = kwargs.get("paid_at", NOW)
    row.confirmed_at = kwargs.get("confirmed_at")
    row.released_at = kwargs.get("released_at")
    row.refunded_at = kwargs.get("refunded_at")
    row.created_at = kwargs.get("created_at", NOW)
    return row


def _offer_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.id = kwargs.get("id", "off_1")
    row.buyer_id = kwargs.get("buyer_id", "buyer-1")
    row.seller_id = kwargs.get("seller_id", "seller-1")
    row.listing_id = kwargs.get("listing_id", "lst_1")
    row.status = kwargs.get("status", "accepted")
    row.is_buyer_locked = kwargs.get("is_buyer_locked", False)
    row.is_seller_locked = kwargs.get("is_seller_locked", False)
    row.is_buyer_fulfilled = kwargs.get("is_buyer_fulfilled", False)
    row.is_seller_fulfilled = kwargs.get("is_seller_fulfilled", False)
    row.pickup_pin = kwargs.get("pickup_pin")
    row.dispute_reason = kwargs.get("dispute_reason")
    row.disputed_by = kwargs.get("disputed_by")
    row.locked_at = kwargs.get("locked_at")
    row.completed_at = kwargs.get("completed_at")
    row.disputed_at = kwargs.get("disputed_at")
    row.created_at = kwargs.get("created_at", NOW)
    row.updated_at = kwargs.get("updated_at", NOW)
    row.version = kwargs.get("version", 0)
    return row


def _sql(db: AsyncMock, call: int = 0) -> str:
    return str(db.execute.await_args_list[call].args[0])


def _params(db: AsyncMock, call: int = 0) -> dict[str, Any]:
    return db.execute.await_args_list[call].args[1]


class TestEscrowRepository:
    async def test_mark_held_guards_on_pending(self) -> None:
        db = _db_returning(_escrow_row())
        escrow = await EscrowRepository().mark_held(db, "esc_1", "ref_9", NOW)

        assert escrow is not None
        assert escrow.status == "held"
        assert "status = 'pending'" in _sql(db)
        assert "RETURNING" in _sql(db)
        assert _params(db) == {"id": "esc_1", "payment_reference": "ref_9", "paid_at": NOW}

    async def test_mark_released_no_row_returns_none(self) -> None:
        db = _db_returning(None)
        assert await EscrowRepository().mark_released(db, "esc_1", NOW) is None
        assert "status = 'held'" in _sql(db)

    async def test_mark_expired_requires_overdue(self) -> None:
        db = _db_returning(_escrow_row(status="expired", refunded_at=NOW))
        escrow = await EscrowRepository().mark_expired(db, "esc_1", NOW)

        assert escrow is not None
        assert escrow.refunded_at == NOW
        assert "expires_at < :now" in _sql(db)

    async def test_create_order_writes_order_and_item(self) -> None:
        db = AsyncMock()
        order = Order(
            id="ord_1",
            buyer_id="buyer-1",
            seller_id="seller-1",
            listing_id="lst_1",
            total_price_cents=150_000,
            currency_code="NGN",
            status="pending",
            payment_status="pending",
        )
        await EscrowRepository().create_order(db, order)

        assert db.execute.await_count == 2
        assert _params(db, 1) == {
            "order_id": "ord_1",
            "listing_id": "lst_1",
            "price_cents": 150_000,
        }
        db.commit.assert_not_awaited()

    async def test_update_order_status_keeps_payment_status_when_none(self) -> None:
        db = AsyncMock()
        await EscrowRepository().update_order_status(db, "ord_1", "fulfilled")
        assert _params(db)["payment_status"] is None
        assert "COALESCE" in _sql(db)

    async def test_list_overdue(self) -> None:
        rows = [MagicMock(id="esc_1"), MagicMock(id="esc_2")]
        db = _db_returning(rows=rows)
        ids = await EscrowRepository().list_overdue_escrow_ids(db, NOW, 50)

        assert ids == ["esc_1", "esc_2"]
        assert _params(db) == {"now": NOW, "limit": 50}

    async def test_get_escrow_missing(self) -> None:
        db = _db_returning(None)
        assert await EscrowRepository().get_escrow_by_order_id(db, "ord_x") is None


class TestTradeOfferRepository:
    async def test_get_offer_maps_row(self) -> None:
        db = _db_returning(_offer_row(is_buyer_locked=True, version=3))
        offer = await TradeOfferRepository().get_offer(db, "off_1")

        assert offer is not None
        assert offer.is_buyer_locked is True
        assert offer.version == 3

    async def test_save_is_version_guarded(self) -> None:
        db = _db_returning(_offer_row(is_seller_locked=True, version=4))
        offer = TradeOffer(
            id="off_1",
            buyer_id="buyer-1",
            seller_id="seller-1",
            listing_id="lst_1",
            status="accepted",
            is_seller_locked=True,
            version=3,
        )

        saved = await TradeOfferRepository().save(db, offer, expected_version=3)

        assert saved is not None
        assert saved.version == 4
        assert "version = :expected_version" in _sql(db)
        assert "version = version + 1" in _sql(db)
        assert _params(db)["expected_version"] == 3

    async def test_save_stale_version_returns_none(self) -> None:
        db = _db_returning(None)
        offer = TradeOffer(
            id="off_1",
            buyer_id="buyer-1",
            seller_id="seller-1",
            listing_id="lst_1",
            status="accepted",
        )
        assert await TradeOfferRepository().save(db, offer, expected_version=0) is None
