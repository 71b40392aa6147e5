"""TradeCommitmentMachine — two-party lock-in and pickup for barter trades.

Each action reads the offer, computes the next state with the pure
functions in `domain.transitions`, then writes it back with a
version-guarded UPDATE. Losing a race raises OfferConflictError inside
the attempt; the action re-reads and runs once more, which turns a
duplicate action into a no-op and a now-invalid one into OfferStateError.

Notifications go out after commit. The arbitration ticket for a dispute is
written inside the same transaction as the `disputed` state.
"""

import logging
from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from src.bw_barter.application.schemas import TradeActionResult, TradeOfferView
from src.bw_barter.domain import transitions
from src.bw_barter.domain.models import TradeOffer
from src.bw_barter.domain.repository import TradeOfferRepositoryProtocol
from src.bw_barter.infrastructure.persistence import TradeOfferRepository
from src.bw_common.codes import CodeGenerator, SecureCodeGenerator
from src.bw_common.clock import Clock, utc_now
from src.bw_common.enums import NotificationKind, TradeStatus
from src.bw_common.errors import NotTradePartyError, OfferConflictError, OfferNotFoundError
from src.bw_notify.arbitration import ArbitrationQueue, DatabaseArbitrationQueue
from src.bw_notify.notifier import DatabaseNotifier, Notifier, dispatch

logger = logging.getLogger(__name__)

# (offer, role) -> next offer, or None for a no-op
Step = Callable[[TradeOffer, str], TradeOffer | None]
AfterWrite = Callable[[AsyncSession, TradeOffer], Awaitable[None]]


class TradeCommitmentMachine:
    def __init__(
        self,
        repo: TradeOfferRepositoryProtocol | None = None,
        notifier: Notifier | None = None,
        arbitration: ArbitrationQueue | None = None,
        code_generator: CodeGenerator | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._repo: TradeOfferRepositoryProtocol = repo or TradeOfferRepository()
        self._notifier: Notifier = notifier or DatabaseNotifier()
        self._arbitration: ArbitrationQueue = arbitration or DatabaseArbitrationQueue()
        self._codes: CodeGenerator = code_generator or SecureCodeGenerator()
        self._clock = clock

    async def get_offer(self, db: AsyncSession, offer_id: str, actor_id: str) -> TradeOfferView:
        offer, _role = await self._load_for_party(db, offer_id, actor_id)
        return TradeOfferView.from_offer(offer, actor_id)

    async def lock_deal(self, db: AsyncSession, offer_id: str, actor_id: str) -> TradeActionResult:
        logger.info("Lock deal: offer=%s actor=%s", offer_id, actor_id)
        result, offer = await self._run(
            db,
            offer_id,
            actor_id,
            lambda o, role: transitions.lock(o, role, self._codes.generate, self._clock()),
        )
        if result.transitioned:
            logger.info("Trade locked in: offer=%s", offer_id)
            await self._announce_locked(offer)
        return result

    async def verify_pickup(
        self, db: AsyncSession, offer_id: str, actor_id: str, pin: str | None = None
    ) -> TradeActionResult:
        logger.info(
            "Verify pickup: offer=%s actor=%s mode=%s",
            offer_id,
            actor_id,
            "pin" if pin is not None else "manual",
        )
        result, offer = await self._run(
            db,
            offer_id,
            actor_id,
            lambda o, role: transitions.verify(o, role, pin, self._clock()),
        )
        if result.just_completed:
            logger.info("Trade completed: offer=%s", offer_id)
            await self._announce_completed(offer)
        return result

    async def raise_dispute(
        self, db: AsyncSession, offer_id: str, actor_id: str, reason: str
    ) -> TradeActionResult:
        logger.info("Raise dispute: offer=%s actor=%s", offer_id, actor_id)

        async def enqueue(session: AsyncSession, disputed: TradeOffer) -> None:
            await self._arbitration.enqueue_dispute(
                session, disputed.id, actor_id, disputed.dispute_reason or ""
            )

        result, offer = await self._run(
            db,
            offer_id,
            actor_id,
            lambda o, _role: transitions.dispute(o, actor_id, reason, self._clock()),
            after_write=enqueue,
        )
        logger.warning("Trade disputed: offer=%s by=%s", offer_id, actor_id)
        await self._announce_disputed(offer, actor_id)
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _load_for_party(
        self, db: AsyncSession, offer_id: str, actor_id: str
    ) -> tuple[TradeOffer, str]:
        """The offer and the actor's role in it."""
        offer = await self._repo.get_offer(db, offer_id)
        if offer is None:
            raise OfferNotFoundError(offer_id)
        role = offer.role_of(actor_id)
        if role is None:
            raise NotTradePartyError()
        return offer, role

    async def _run(
        self,
        db: AsyncSession,
        offer_id: str,
        actor_id: str,
        step: Step,
        after_write: AfterWrite | None = None,
    ) -> tuple[TradeActionResult, TradeOffer]:
        try:
            offer, transitioned = await self._attempt(db, offer_id, actor_id, step, after_write)
        except OfferConflictError:
            logger.info("Offer conflict, retrying: offer=%s", offer_id)
            offer, transitioned = await self._attempt(db, offer_id, actor_id, step, after_write)

        result = TradeActionResult(
            offer=TradeOfferView.from_offer(offer, actor_id),
            transitioned=transitioned,
            just_completed=transitioned and offer.status == TradeStatus.COMPLETED,
        )
        return result, offer

    async def _attempt(
        self,
        db: AsyncSession,
        offer_id: str,
        actor_id: str,
        step: Step,
        after_write: AfterWrite | None,
    ) -> tuple[TradeOffer, bool]:
        current, role = await self._load_for_party(db, offer_id, actor_id)
        nxt = step(current, role)
        if nxt is None:
            return current, False

        try:
            saved = await self._repo.save(db, nxt, current.version)
            if saved is None:
                raise OfferConflictError(offer_id)
            if after_write is not None:
                await after_write(db, saved)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return saved, saved.status != current.status

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    async def _announce_locked(self, offer: TradeOffer) -> None:
        await dispatch(
            self._notifier,
            offer.buyer_id,
            NotificationKind.TRADE_LOCKED.value,
            {
                "message": (
                    f"Deal locked! Your pickup PIN is {offer.pickup_pin}. "
                    "Show it to the seller when you collect the item."
                ),
                "offer_id": offer.id,
                "pickup_pin": offer.pickup_pin,
            },
        )
        await dispatch(
            self._notifier,
            offer.seller_id,
            NotificationKind.TRADE_LOCKED.value,
            {
                "message": "Deal locked! Ask the buyer for their pickup PIN at handover.",
                "offer_id": offer.id,
            },
        )

    async def _announce_completed(self, offer: TradeOffer) -> None:
        for user_id in (offer.buyer_id, offer.seller_id):
            await dispatch(
                self._notifier,
                user_id,
                NotificationKind.TRADE_COMPLETED.value,
                {"message": "Trade complete! Thanks for trading.", "offer_id": offer.id},
            )

    async def _announce_disputed(self, offer: TradeOffer, actor_id: str) -> None:
        await dispatch(
            self._notifier,
            offer.counterparty_of(actor_id),
            NotificationKind.TRADE_DISPUTED.value,
            {
                "message": "A dispute was raised on your trade. An admin will review it.",
                "offer_id": offer.id,
                "reason": offer.dispute_reason,
            },
        )
