"""Domain models for bw_escrow — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Listing:
    """Consumed view of a catalog listing. Only the fields escrow needs."""

    id: str
    seller_id: str
    title: str
    price_cents: int | None
    currency_code: str
    is_distress_sale: bool
    status: str  # ListingStatus value


@dataclass
class Order:
    """External order aggregate, single item line."""

    id: str
    buyer_id: str
    seller_id: str
    listing_id: str
    total_price_cents: int
    currency_code: str
    status: str          # OrderStatus value
    payment_status: str  # OrderPaymentStatus value
    shipping_method: str = "meet_in_person"
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class EscrowTransaction:
    id: str
    order_id: str
    # Money, locked at creation
    item_price_cents: int
    protection_fee_cents: int
    commission_cents: int
    total_paid_cents: int
    seller_receives_cents: int
    currency_code: str
    # Lifecycle
    status: str          # EscrowStatus value
    payment_status: str  # EscrowPaymentStatus value
    confirmation_code: str
    payment_provider: str
    expires_at: datetime
    payment_reference: str | None = None
    paid_at: datetime | None = None
    confirmed_at: datetime | None = None
    released_at: datetime | None = None
    refunded_at: datetime | None = None
    created_at: datetime | None = None

    def is_overdue(self, now: datetime) -> bool:
        return self.status == "held" and self.expires_at < now


@dataclass
class Party:
    id: str
    email: str | None = None
    display_name: str | None = None

    @property
    def name(self) -> str:
        return self.display_name or self.email or self.id


@dataclass
class EscrowView:
    """Read projection: escrow joined with its order, parties and listing."""

    escrow: EscrowTransaction
    order: Order
    buyer: Party
    seller: Party
    listing_title: str | None = None
    listing_image_url: str | None = None
