"""TradeOfferRepository — raw SQL over barter_offers.

The only writer of commitment state. Every write bumps `version` and is
guarded by `WHERE id = :id AND version = :expected_version`, so two
concurrent actions on one offer can never both apply.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.bw_barter.domain.models import TradeOffer

_OFFER_COLUMNS = """
    id, buyer_id, seller_id, listing_id, status,
    is_buyer_locked, is_seller_locked, is_buyer_fulfilled, is_seller_fulfilled,
    pickup_pin, dispute_reason, disputed_by,
    locked_at, completed_at, disputed_at, created_at, updated_at, version
"""

_GET_OFFER_SQL = text(f"""
    SELECT {_OFFER_COLUMNS} FROM barter_offers WHERE id = :id
""")

_SAVE_OFFER_SQL = text(f"""
    UPDATE barter_offers
    SET status = :status,
        is_buyer_locked = :is_buyer_locked,
        is_seller_locked = :is_seller_locked,
        is_buyer_fulfilled = :is_buyer_fulfilled,
        is_seller_fulfilled = :is_seller_fulfilled,
        pickup_pin = :pickup_pin,
        dispute_reason = :dispute_reason,
        disputed_by = :disputed_by,
        locked_at = :locked_at,
        completed_at = :completed_at,
        disputed_at = :disputed_at,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :id AND version = :expected_version
    RETURNING {_OFFER_COLUMNS}
""")


def _row_to_offer(row: Any) -> TradeOffer:
    return TradeOffer(
        id=row.id,
        buyer_id=row.buyer_id,
        seller_id=row.seller_id,
        listing_id=row.listing_id,
        status=row.status,
        is_buyer_locked=row.is_buyer_locked,
        is_seller_locked=row.is_seller_locked,
        is_buyer_fulfilled=row.is_buyer_fulfilled,
        is_seller_fulfilled=row.is_seller_fulfilled,
        pickup_pin=row.pickup_pin,
        dispute_reason=row.dispute_reason,
        disputed_by=row.disputed_by,
        locked_at=row.locked_at,
        completed_at=row.completed_at,
        disputed_at=row.disputed_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
        version=row.version,
    )


class TradeOfferRepository:
    async def get_offer(self, db: AsyncSession, offer_id: str) -> TradeOffer | None:
        result = await db.execute(_GET_OFFER_SQL, {"id": offer_id})
        row = result.fetchone()
        return _row_to_offer(row) if row else None

    async def save(
        self, db: AsyncSession, offer: TradeOffer, expected_version: int
    ) -> TradeOffer | None:
        result = await db.execute(
            _SAVE_OFFER_SQL,
            {
                "id": offer.id,
                "expected_version": expected_version,
                "status": offer.status,
                "is_buyer_locked": offer.is_buyer_locked,
                "is_seller_locked": offer.is_seller_locked,
                "is_buyer_fulfilled": offer.is_buyer_fulfilled,
                "is_seller_fulfilled": offer.is_seller_fulfilled,
                "pickup_pin": offer.pickup_pin,
                "dispute_reason": offer.dispute_reason,
                "disputed_by": offer.disputed_by,
                "locked_at": offer.locked_at,
                "completed_at": offer.completed_at,
                "disputed_at": offer.disputed_at,
            },
        )
        row = result.fetchone()
        return _row_to_offer(row) if row else None
