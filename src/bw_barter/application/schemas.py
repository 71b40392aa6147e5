"""Pydantic schemas for bw_barter API."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.bw_barter.domain.models import TradeOffer

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class VerifyPickupRequest(BaseModel):
    # Omit for manual approval; seller supplies the buyer's PIN otherwise
    pin: str | None = Field(None, pattern=r"^\d{6}$")


class DisputeRequest(BaseModel):
    reason: str = Field(..., max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class TradeOfferView(BaseModel):
    id: str
    buyer_id: str
    seller_id: str
    listing_id: str
    status: str
    is_buyer_locked: bool
    is_seller_locked: bool
    is_buyer_fulfilled: bool
    is_seller_fulfilled: bool
    # Only populated for the buyer
    pickup_pin: str | None
    dispute_reason: str | None
    disputed_by: str | None
    locked_at: datetime | None
    completed_at: datetime | None
    disputed_at: datetime | None

    @classmethod
    def from_offer(cls, offer: TradeOffer, viewer_id: str | None) -> "TradeOfferView":
        return cls(
            id=offer.id,
            buyer_id=offer.buyer_id,
            seller_id=offer.seller_id,
            listing_id=offer.listing_id,
            status=offer.status,
            is_buyer_locked=offer.is_buyer_locked,
            is_seller_locked=offer.is_seller_locked,
            is_buyer_fulfilled=offer.is_buyer_fulfilled,
            is_seller_fulfilled=offer.is_seller_fulfilled,
            pickup_pin=offer.pickup_pin if viewer_id == offer.buyer_id else None,
            dispute_reason=offer.dispute_reason,
            disputed_by=offer.disputed_by,
            locked_at=offer.locked_at,
            completed_at=offer.completed_at,
            disputed_at=offer.disputed_at,
        )


class TradeActionResult(BaseModel):
    offer: TradeOfferView
    transitioned: bool = False     # status changed in this call
    just_completed: bool = False   # this call moved the trade into completed
