"""Notifier — fire-and-forget user notifications.

Services call `notify` only after the owning transition has committed.
`DatabaseNotifier` writes each notification in its own short session so a
failure here can never roll back an escrow or trade transition; delivery
to devices is the external relay's job (it polls the notifications table).
"""

import json
import logging
from collections.abc import Callable
from typing import Any, Protocol

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.bw_common.database import async_session_factory

logger = logging.getLogger(__name__)

_INSERT_NOTIFICATION_SQL = text("""
    INSERT INTO notifications (user_id, type, data)
    VALUES (:user_id, :type, CAST(:data AS JSONB))
""")


class Notifier(Protocol):
    async def notify(self, user_id: str, kind: str, payload: dict[str, Any]) -> None: ...


class DatabaseNotifier:
    def __init__(
        self, session_factory: Callable[[], AsyncSession] = async_session_factory
    ) -> None:
        self._session_factory = session_factory

    async def notify(self, user_id: str, kind: str, payload: dict[str, Any]) -> None:
        async with self._session_factory() as session:
            await session.execute(
                _INSERT_NOTIFICATION_SQL,
                {"user_id": user_id, "type": kind, "data": json.dumps(payload, default=str)},
            )
            await session.commit()
        logger.debug("Notification queued: user=%s kind=%s", user_id, kind)


async def dispatch(notifier: Notifier, user_id: str, kind: str, payload: dict[str, Any]) -> bool:
    """Best-effort notify. Returns False (and logs) instead of raising.

    The transition that produced the event is already durable; retrying
    delivery belongs to the relay, not to the caller.
    """
    try:
        await notifier.notify(user_id, kind, payload)
        return True
    except Exception:
        logger.exception("Notification failed: user=%s kind=%s", user_id, kind)
        return False
