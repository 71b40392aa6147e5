"""Arbitration queue — disputed barter trades awaiting an admin.

The queue row is written in the SAME transaction as the `disputed`
transition, so a trade can never be frozen without an admin ticket.
"""

from typing import Protocol

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

_INSERT_DISPUTE_SQL = text("""
    INSERT INTO dispute_queue (offer_id, reported_by, reason)
    VALUES (:offer_id, :reported_by, :reason)
""")


class ArbitrationQueue(Protocol):
    async def enqueue_dispute(
        self, db: AsyncSession, offer_id: str, actor_id: str, reason: str
    ) -> None: ...


class DatabaseArbitrationQueue:
    async def enqueue_dispute(
        self, db: AsyncSession, offer_id: str, actor_id: str, reason: str
    ) -> None:
        await db.execute(
            _INSERT_DISPUTE_SQL,
            {"offer_id": offer_id, "reported_by": actor_id, "reason": reason},
        )
