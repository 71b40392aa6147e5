"""Domain models for bw_barter — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

BUYER = "buyer"
SELLER = "seller"


@dataclass
class TradeOffer:
    id: str
    buyer_id: str
    seller_id: str
    listing_id: str
    status: str  # TradeStatus value
    # Commitment phase
    is_buyer_locked: bool = False
    is_seller_locked: bool = False
    # Fulfillment phase
    is_buyer_fulfilled: bool = False
    is_seller_fulfilled: bool = False
    pickup_pin: str | None = None
    # Dispute
    dispute_reason: str | None = None
    disputed_by: str | None = None
    # Timestamps
    locked_at: datetime | None = None
    completed_at: datetime | None = None
    disputed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    # Optimistic concurrency token, bumped by every write
    version: int = 0

    def role_of(self, user_id: str) -> str | None:
        """'buyer', 'seller', or None for an outsider."""
        if user_id == self.buyer_id:
            return BUYER
        if user_id == self.seller_id:
            return SELLER
        return None

    def counterparty_of(self, user_id: str) -> str:
        return self.seller_id if user_id == self.buyer_id else self.buyer_id

    def has_locked(self, role: str) -> bool:
        return self.is_buyer_locked if role == BUYER else self.is_seller_locked

    def has_fulfilled(self, role: str) -> bool:
        return self.is_buyer_fulfilled if role == BUYER else self.is_seller_fulfilled

    @property
    def both_locked(self) -> bool:
        return self.is_buyer_locked and self.is_seller_locked

    @property
    def both_fulfilled(self) -> bool:
        return self.is_buyer_fulfilled and self.is_seller_fulfilled
