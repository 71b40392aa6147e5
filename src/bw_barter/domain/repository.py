"""Repository Protocol for barter offers.

`save` is an optimistic compare-and-set on `version`: it writes the whole
commitment state only if the stored row still carries `expected_version`,
and returns None otherwise.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.bw_barter.domain.models import TradeOffer


class TradeOfferRepositoryProtocol(Protocol):
    async def get_offer(self, db: AsyncSession, offer_id: str) -> TradeOffer | None: ...

    async def save(
        self, db: AsyncSession, offer: TradeOffer, expected_version: int
    ) -> TradeOffer | None: ...
