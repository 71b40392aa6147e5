"""Pydantic schemas for bw_escrow API."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.bw_common.cents import cents_to_display
from src.bw_common.enums import PaymentProvider
from src.bw_escrow.domain.fees import FeeBreakdown
from src.bw_escrow.domain.models import EscrowView, Party

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class InitiateEscrowRequest(BaseModel):
    listing_id: str = Field(..., min_length=1, max_length=64)
    payment_provider: PaymentProvider = PaymentProvider.MOCK
    shipping_method: str = Field("meet_in_person", min_length=1, max_length=50)


class ConfirmEscrowRequest(BaseModel):
    order_id: str = Field(..., min_length=1, max_length=64)
    confirmation_code: str = Field(
        ...,
        pattern=r"^\d{6}$",
        description="Confirmation code must be exactly 6 digits",
    )


class PaymentSuccessWebhook(BaseModel):
    escrow_id: str = Field(..., min_length=1, max_length=64)
    payment_reference: str = Field(..., min_length=1, max_length=128)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class FeeBreakdownResponse(BaseModel):
    item_price_cents: int
    item_price_display: str
    protection_fee_cents: int
    protection_fee_display: str
    protection_fee_percent: float
    commission_cents: int
    commission_display: str
    commission_percent: float
    total_to_pay_cents: int
    total_to_pay_display: str
    seller_receives_cents: int
    seller_receives_display: str

    @classmethod
    def from_breakdown(
        cls, fees: FeeBreakdown, currency_code: str = "NGN"
    ) -> "FeeBreakdownResponse":
        return cls(
            item_price_cents=fees.item_price_cents,
            item_price_display=cents_to_display(fees.item_price_cents, currency_code),
            protection_fee_cents=fees.protection_fee_cents,
            protection_fee_display=cents_to_display(fees.protection_fee_cents, currency_code),
            protection_fee_percent=fees.protection_fee_percent,
            commission_cents=fees.commission_cents,
            commission_display=cents_to_display(fees.commission_cents, currency_code),
            commission_percent=fees.commission_percent,
            total_to_pay_cents=fees.total_paid_cents,
            total_to_pay_display=cents_to_display(fees.total_paid_cents, currency_code),
            seller_receives_cents=fees.seller_receives_cents,
            seller_receives_display=cents_to_display(fees.seller_receives_cents, currency_code),
        )


class PartyResponse(BaseModel):
    id: str
    display_name: str

    @classmethod
    def from_party(cls, party: Party) -> "PartyResponse":
        return cls(id=party.id, display_name=party.display_name or "")


class EscrowOrderResponse(BaseModel):
    id: str
    status: str
    payment_status: str
    shipping_method: str
    listing_id: str
    listing_title: str | None
    listing_image_url: str | None
    buyer: PartyResponse
    seller: PartyResponse


class EscrowResponse(BaseModel):
    id: str
    order_id: str
    status: str
    payment_status: str
    # Only populated for the buyer
    confirmation_code: str | None
    currency_code: str
    item_price_cents: int
    protection_fee_cents: int
    commission_cents: int
    total_paid_cents: int
    total_paid_display: str
    seller_receives_cents: int
    seller_receives_display: str
    payment_provider: str
    payment_reference: str | None
    expires_at: datetime
    paid_at: datetime | None
    confirmed_at: datetime | None
    released_at: datetime | None
    refunded_at: datetime | None
    order: EscrowOrderResponse

    @classmethod
    def from_view(cls, view: EscrowView, viewer_id: str | None) -> "EscrowResponse":
        e, o = view.escrow, view.order
        return cls(
            id=e.id,
            order_id=e.order_id,
            status=e.status,
            payment_status=e.payment_status,
            confirmation_code=e.confirmation_code if viewer_id == o.buyer_id else None,
            currency_code=e.currency_code,
            item_price_cents=e.item_price_cents,
            protection_fee_cents=e.protection_fee_cents,
            commission_cents=e.commission_cents,
            total_paid_cents=e.total_paid_cents,
            total_paid_display=cents_to_display(e.total_paid_cents, e.currency_code),
            seller_receives_cents=e.seller_receives_cents,
            seller_receives_display=cents_to_display(e.seller_receives_cents, e.currency_code),
            payment_provider=e.payment_provider,
            payment_reference=e.payment_reference,
            expires_at=e.expires_at,
            paid_at=e.paid_at,
            confirmed_at=e.confirmed_at,
            released_at=e.released_at,
            refunded_at=e.refunded_at,
            order=EscrowOrderResponse(
                id=o.id,
                status=o.status,
                payment_status=o.payment_status,
                shipping_method=o.shipping_method,
                listing_id=o.listing_id,
                listing_title=view.listing_title,
                listing_image_url=view.listing_image_url,
                buyer=PartyResponse.from_party(view.buyer),
                seller=PartyResponse.from_party(view.seller),
            ),
        )


class InitiateEscrowResponse(BaseModel):
    escrow: EscrowResponse
    fees: FeeBreakdownResponse


class ConfirmReceiptResponse(BaseModel):
    success: bool = True
    message: str = "Funds released to seller"
    seller_receives_cents: int
    seller_receives_display: str
