# src/bw_escrow/domain/repository.py
"""Repository Protocol — dependency inversion for testability.

Unit tests inject an in-memory fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.

The three `mark_*` transitions are compare-and-set operations: each
applies only if the row is still in the expected source status and
returns None otherwise. They are the only writers of escrow status.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.bw_escrow.domain.models import EscrowTransaction, EscrowView, Listing, Order


class EscrowRepositoryProtocol(Protocol):
    async def get_listing(self, db: AsyncSession, listing_id: str) -> Listing | None: ...

    async def create_order(self, db: AsyncSession, order: Order) -> None: ...

    async def create_escrow(self, db: AsyncSession, escrow: EscrowTransaction) -> None: ...

    async def get_order(self, db: AsyncSession, order_id: str) -> Order | None: ...

    async def get_escrow_by_id(
        self, db: AsyncSession, escrow_id: str
    ) -> EscrowTransaction | None: ...

    async def get_escrow_by_order_id(
        self, db: AsyncSession, order_id: str
    ) -> EscrowTransaction | None: ...

    async def get_view_by_order_id(
        self, db: AsyncSession, order_id: str
    ) -> EscrowView | None: ...

    async def mark_held(
        self,
        db: AsyncSession,
        escrow_id: str,
        payment_reference: str,
        paid_at: datetime,
    ) -> EscrowTransaction | None: ...

    async def mark_released(
        self, db: AsyncSession, escrow_id: str, released_at: datetime
    ) -> EscrowTransaction | None: ...

    async def mark_expired(
        self, db: AsyncSession, escrow_id: str, now: datetime
    ) -> EscrowTransaction | None: ...

    async def update_order_status(
        self,
        db: AsyncSession,
        order_id: str,
        status: str,
        payment_status: str | None = None,
    ) -> None: ...

    async def mark_listing_sold(self, db: AsyncSession, listing_id: str) -> None: ...

    async def list_overdue_escrow_ids(
        self, db: AsyncSession, now: datetime, limit: int
    ) -> list[str]: ...
