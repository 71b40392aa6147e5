"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class EscrowStatus(str, Enum):
    PENDING = "pending"
    HELD = "held"
    RELEASED = "released"
    EXPIRED = "expired"


class EscrowPaymentStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FULFILLED = "fulfilled"
    CANCELLED = "cancelled"


class OrderPaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class ListingStatus(str, Enum):
    ACTIVE = "active"
    SOLD = "sold"


class PaymentProvider(str, Enum):
    MOCK = "mock"
    PAYSTACK = "paystack"
    FLUTTERWAVE = "flutterwave"


class TradeStatus(str, Enum):
    ACCEPTED = "accepted"
    AWAITING_FULFILLMENT = "awaiting_fulfillment"
    COMPLETED = "completed"
    DISPUTED = "disputed"


class NotificationKind(str, Enum):
    ESCROW_HELD = "ESCROW_HELD"
    ESCROW_CODE = "ESCROW_CODE"
    ESCROW_RELEASED = "ESCROW_RELEASED"
    ESCROW_COMPLETE = "ESCROW_COMPLETE"
    ESCROW_EXPIRED = "ESCROW_EXPIRED"
    TRADE_LOCKED = "TRADE_LOCKED"
    TRADE_COMPLETED = "TRADE_COMPLETED"
    TRADE_DISPUTED = "TRADE_DISPUTED"
