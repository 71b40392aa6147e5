"""Barter trade transitions — pure functions over TradeOffer.

    accepted --[both lock]--> awaiting_fulfillment --[both fulfilled]--> completed
                              awaiting_fulfillment --[either disputes]--> disputed

Each function validates the move for a caller whose role is already known
and returns the next TradeOffer, or None when the call changes nothing
(a party repeating an action it already took). Persisting the result is
the service's job.
"""

from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from src.bw_barter.domain.models import SELLER, TradeOffer
from src.bw_common.codes import codes_match
from src.bw_common.enums import TradeStatus
from src.bw_common.errors import (
    EmptyDisputeReasonError,
    InvalidPickupPinError,
    OfferStateError,
    PinNotAllowedError,
)


def lock(
    offer: TradeOffer, role: str, mint_pin: Callable[[], str], now: datetime
) -> TradeOffer | None:
    # A repeat lock is a no-op until the trade leaves the lock-in phase
    if offer.has_locked(role) and offer.status in (
        TradeStatus.ACCEPTED,
        TradeStatus.AWAITING_FULFILLMENT,
    ):
        return None
    if offer.status != TradeStatus.ACCEPTED:
        raise OfferStateError("lock deal", offer.status)

    nxt = replace(offer, **{f"is_{role}_locked": True})
    if nxt.both_locked:
        nxt.status = TradeStatus.AWAITING_FULFILLMENT.value
        nxt.pickup_pin = mint_pin()
        nxt.locked_at = now
    return nxt


def verify(
    offer: TradeOffer, role: str, pin: str | None, now: datetime
) -> TradeOffer | None:
    if offer.status != TradeStatus.AWAITING_FULFILLMENT:
        raise OfferStateError("verify pickup", offer.status)

    if pin is not None:
        # PIN mode: the seller proves the buyer showed up
        if role != SELLER:
            raise PinNotAllowedError()
        if offer.pickup_pin is None or not codes_match(pin, offer.pickup_pin):
            raise InvalidPickupPinError()
        nxt = replace(offer, is_buyer_fulfilled=True, is_seller_fulfilled=True)
    else:
        if offer.has_fulfilled(role):
            return None
        nxt = replace(offer, **{f"is_{role}_fulfilled": True})

    if nxt.both_fulfilled:
        nxt.status = TradeStatus.COMPLETED.value
        nxt.completed_at = now
    return nxt


def dispute(offer: TradeOffer, actor_id: str, reason: str, now: datetime) -> TradeOffer:
    if offer.status != TradeStatus.AWAITING_FULFILLMENT:
        raise OfferStateError("raise dispute", offer.status)
    if not reason or not reason.strip():
        raise EmptyDisputeReasonError()
    return replace(
        offer,
        status=TradeStatus.DISPUTED.value,
        dispute_reason=reason.strip(),
        disputed_by=actor_id,
        disputed_at=now,
    )
