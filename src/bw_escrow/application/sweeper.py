"""ExpirySweeper — periodic refund of held escrows past their deadline.

Scheduled with APScheduler (AsyncIOScheduler + IntervalTrigger, hourly by
default). One run:

  1. list up to `batch_size` ids with status='held' AND expires_at < now
  2. expire each id in its OWN session and transaction
  3. repeat until a listing comes back short of `batch_size`

No lock or transaction spans the batch, so a slow or failing row never
blocks the rest or starves concurrent confirm_receipt calls. A row that was
released between step 1 and 2 fails the status guard and is counted as
skipped. A failed row stays held and is not retried within the run; a
listing made up only of such rows ends the run early.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.bw_common.clock import utc_now
from src.bw_common.database import async_session_factory
from src.bw_escrow.application.service import EscrowLedger

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    scanned: int = 0
    expired: int = 0
    skipped: int = 0
    failed: int = 0
    failed_ids: list[str] = field(default_factory=list)


class ExpirySweeper:
    JOB_ID = "escrow-expiry-sweep"

    def __init__(
        self,
        ledger: EscrowLedger,
        session_factory: Callable[[], AsyncSession] = async_session_factory,
        batch_size: int = settings.ESCROW_SWEEP_BATCH_SIZE,
        interval_minutes: int = settings.ESCROW_SWEEP_INTERVAL_MINUTES,
    ) -> None:
        self._ledger = ledger
        self._session_factory = session_factory
        self._batch_size = batch_size
        self._interval_minutes = interval_minutes
        self._scheduler: AsyncIOScheduler | None = None

    async def run_once(self) -> SweepResult:
        logger.info("Checking for expired escrows...")
        result = SweepResult()
        seen: set[str] = set()
        while True:
            async with self._session_factory() as session:
                listed = await self._ledger.list_overdue(session, self._batch_size)
            escrow_ids = [escrow_id for escrow_id in listed if escrow_id not in seen]
            if not escrow_ids:
                if listed:
                    logger.warning(
                        "Expiry sweep stalled on %d failing rows; rest waits for next run",
                        len(listed),
                    )
                break

            result.scanned += len(escrow_ids)
            seen.update(escrow_ids)
            for escrow_id in escrow_ids:
                try:
                    async with self._session_factory() as session:
                        applied = await self._ledger.expire(session, escrow_id)
                except Exception:
                    logger.exception("Failed to expire escrow %s", escrow_id)
                    result.failed += 1
                    result.failed_ids.append(escrow_id)
                    continue
                if applied:
                    result.expired += 1
                else:
                    result.skipped += 1

            if len(listed) < self._batch_size:
                break

        if result.scanned:
            logger.info(
                "Expiry sweep done: scanned=%d expired=%d skipped=%d failed=%d",
                result.scanned,
                result.expired,
                result.skipped,
                result.failed,
            )
        return result

    def start(self) -> None:
        """Register the job and start the scheduler. Call from a running event loop."""
        if self._scheduler is not None:
            return
        scheduler = AsyncIOScheduler(timezone="UTC")
        scheduler.add_job(
            self.run_once,
            IntervalTrigger(minutes=self._interval_minutes),
            id=self.JOB_ID,
            max_instances=1,  # never overlap two sweeps
            coalesce=True,
            replace_existing=True,
            next_run_time=utc_now(),
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info("Expiry sweeper started: every %d min", self._interval_minutes)

    def shutdown(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Expiry sweeper stopped")

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running
