"""Tiered fee schedule for distress-sale escrow purchases.

Amounts are integer cents; rates are integer basis points so that no
float ever touches money. The breakdown is computed once at purchase time
and stored on the escrow row; later schedule changes never recompute it.

| Tier | Item price (cents)       | Protection fee       | Commission |
|------|--------------------------|----------------------|------------|
| 1    | < 10,000,000             | 1.5%, min 50,000     | 5%         |
| 2    | 10,000,000 - 49,999,999  | 1.0%, min 50,000     | 5%         |
| 3    | >= 50,000,000            | flat 500,000         | 4%         |
"""

from dataclasses import dataclass

from src.bw_common.cents import apply_bps
from src.bw_common.errors import InvalidItemPriceError

TIER_2_FLOOR_CENTS = 10_000_000       # ₦100,000
TIER_3_FLOOR_CENTS = 50_000_000       # ₦500,000
MIN_PROTECTION_FEE_CENTS = 50_000     # ₦500
FLAT_PROTECTION_FEE_CENTS = 500_000   # ₦5,000


@dataclass(frozen=True)
class FeeTier:
    protection_fee_bps: int | None  # None = flat fee tier
    commission_bps: int


TIER_1 = FeeTier(protection_fee_bps=150, commission_bps=500)
TIER_2 = FeeTier(protection_fee_bps=100, commission_bps=500)
TIER_3 = FeeTier(protection_fee_bps=None, commission_bps=400)


@dataclass(frozen=True)
class FeeBreakdown:
    item_price_cents: int
    protection_fee_cents: int
    commission_cents: int
    total_paid_cents: int
    seller_receives_cents: int
    protection_fee_percent: float  # display only
    commission_percent: float      # display only


def select_tier(item_price_cents: int) -> FeeTier:
    if item_price_cents < TIER_2_FLOOR_CENTS:
        return TIER_1
    if item_price_cents < TIER_3_FLOOR_CENTS:
        return TIER_2
    return TIER_3


def compute_fees(item_price_cents: int) -> FeeBreakdown:
    """Pure fee computation. Same input, same (equal) output, every time."""
    if item_price_cents < 1:
        raise InvalidItemPriceError(item_price_cents)

    tier = select_tier(item_price_cents)
    commission = apply_bps(item_price_cents, tier.commission_bps)

    if tier.protection_fee_bps is None:
        protection_fee = FLAT_PROTECTION_FEE_CENTS
        # Flat fee: the displayed rate is the effective one and varies by price
        protection_pct = protection_fee * 100 / item_price_cents
    else:
        protection_fee = max(
            apply_bps(item_price_cents, tier.protection_fee_bps),
            MIN_PROTECTION_FEE_CENTS,
        )
        protection_pct = tier.protection_fee_bps / 100

    return FeeBreakdown(
        item_price_cents=item_price_cents,
        protection_fee_cents=protection_fee,
        commission_cents=commission,
        total_paid_cents=item_price_cents + protection_fee,
        seller_receives_cents=item_price_cents - commission,
        protection_fee_percent=protection_pct,
        commission_percent=tier.commission_bps / 100,
    )
