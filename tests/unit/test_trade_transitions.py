"""Tests for bw_barter.domain.transitions — pure state moves."""

from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

import pytest

from src.bw_barter.domain import transitions
from src.bw_barter.domain.models import BUYER, SELLER, TradeOffer
from src.bw_common.errors import (
    EmptyDisputeReasonError,
    InvalidPickupPinError,
    OfferStateError,
    PinNotAllowedError,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _make_offer(**kwargs: Any) -> TradeOffer:
    defaults: dict[str, Any] = {
        "id": "off_1",
        "buyer_id": "buyer-1",
        "seller_id": "seller-1",
        "listing_id": "lst_1",
        "status": "accepted",
    }
    defaults.update(kwargs)
    return TradeOffer(**defaults)


def _awaiting(**kwargs: Any) -> TradeOffer:
    return _make_offer(
        status="awaiting_fulfillment",
        is_buyer_locked=True,
        is_seller_locked=True,
        pickup_pin="482913",
        **kwargs,
    )


class TestRoles:
    def test_role_of(self) -> None:
        offer = _make_offer()
        assert offer.role_of("buyer-1") == BUYER
        assert offer.role_of("seller-1") == SELLER
        assert offer.role_of("someone") is None

    def test_counterparty(self) -> None:
        offer = _make_offer()
        assert offer.counterparty_of("buyer-1") == "seller-1"
        assert offer.counterparty_of("seller-1") == "buyer-1"


class TestLock:
    def test_first_lock_sets_only_own_flag(self) -> None:
        nxt = transitions.lock(_make_offer(), BUYER, lambda: "000001", NOW)
        assert nxt is not None
        assert nxt.is_buyer_locked and not nxt.is_seller_locked
        assert nxt.status == "accepted"
        assert nxt.pickup_pin is None

    def test_second_lock_moves_to_awaiting_and_mints_pin(self) -> None:
        offer = _make_offer(is_buyer_locked=True)
        nxt = transitions.lock(offer, SELLER, lambda: "004217", NOW)
        assert nxt is not None
        assert nxt.status == "awaiting_fulfillment"
        assert nxt.pickup_pin == "004217"
        assert nxt.locked_at == NOW

    def test_relock_is_no_op(self) -> None:
        offer = _make_offer(is_seller_locked=True)
        assert transitions.lock(offer, SELLER, lambda: "000001", NOW) is None

    def test_relock_after_lock_in_is_no_op(self) -> None:
        assert transitions.lock(_awaiting(), SELLER, lambda: "000001", NOW) is None

    @pytest.mark.parametrize("status", ["completed", "disputed"])
    def test_relock_after_settlement_is_invalid_state(self, status: str) -> None:
        offer = _awaiting()
        offer.status = status
        with pytest.raises(OfferStateError):
            transitions.lock(offer, BUYER, lambda: "000001", NOW)

    def test_input_not_mutated(self) -> None:
        offer = _make_offer()
        transitions.lock(offer, BUYER, lambda: "000001", NOW)
        assert offer.is_buyer_locked is False

    @pytest.mark.parametrize("status", ["awaiting_fulfillment", "completed", "disputed"])
    def test_only_from_accepted(self, status: str) -> None:
        with pytest.raises(OfferStateError):
            transitions.lock(_make_offer(status=status), BUYER, lambda: "000001", NOW)


class TestVerify:
    def test_manual_sets_one_flag(self) -> None:
        nxt = transitions.verify(_awaiting(), BUYER, None, NOW)
        assert nxt is not None
        assert nxt.is_buyer_fulfilled and not nxt.is_seller_fulfilled
        assert nxt.status == "awaiting_fulfillment"

    def test_manual_second_party_completes(self) -> None:
        nxt = transitions.verify(_awaiting(is_buyer_fulfilled=True), SELLER, None, NOW)
        assert nxt is not None
        assert nxt.status == "completed"
        assert nxt.completed_at == NOW

    def test_manual_repeat_is_no_op(self) -> None:
        assert transitions.verify(_awaiting(is_seller_fulfilled=True), SELLER, None, NOW) is None

    def test_pin_completes_in_one_step(self) -> None:
        nxt = transitions.verify(_awaiting(), SELLER, "482913", NOW)
        assert nxt is not None
        assert nxt.is_buyer_fulfilled and nxt.is_seller_fulfilled
        assert nxt.status == "completed"

    def test_pin_from_buyer_forbidden(self) -> None:
        with pytest.raises(PinNotAllowedError):
            transitions.verify(_awaiting(), BUYER, "482913", NOW)

    def test_wrong_pin(self) -> None:
        with pytest.raises(InvalidPickupPinError):
            transitions.verify(_awaiting(), SELLER, "000000", NOW)

    def test_pin_without_minted_pin(self) -> None:
        offer = replace(_awaiting(), pickup_pin=None)
        with pytest.raises(InvalidPickupPinError):
            transitions.verify(offer, SELLER, "482913", NOW)

    @pytest.mark.parametrize("status", ["accepted", "completed", "disputed"])
    def test_only_while_awaiting(self, status: str) -> None:
        offer = replace(_awaiting(), status=status)
        with pytest.raises(OfferStateError):
            transitions.verify(offer, BUYER, None, NOW)


class TestDispute:
    def test_records_reason_and_actor(self) -> None:
        nxt = transitions.dispute(_awaiting(), "buyer-1", "  Item was not as described ", NOW)
        assert nxt.status == "disputed"
        assert nxt.dispute_reason == "Item was not as described"
        assert nxt.disputed_by == "buyer-1"
        assert nxt.disputed_at == NOW

    @pytest.mark.parametrize("reason", ["", "   ", "\n"])
    def test_blank_reason(self, reason: str) -> None:
        with pytest.raises(EmptyDisputeReasonError):
            transitions.dispute(_awaiting(), "buyer-1", reason, NOW)

    @pytest.mark.parametrize("status", ["accepted", "completed", "disputed"])
    def test_only_while_awaiting(self, status: str) -> None:
        offer = replace(_awaiting(), status=status)
        with pytest.raises(OfferStateError):
            transitions.dispute(offer, "seller-1", "no show", NOW)
