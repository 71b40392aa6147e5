"""EscrowLedger — the escrow transaction lifecycle.

    pending --[payment success]--> held --[buyer submits code]--> released
                                   held --[sweeper, past expires_at]--> expired

Each transition is one conditional UPDATE guarded on the source status,
committed together with its Order/Listing side effects. Notifications and
email go out only after the commit and never fail the transition.

Transaction handling: mutate, `db.commit()`, `db.rollback()` + re-raise on
any exception.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.bw_common.cents import cents_to_display
from src.bw_common.codes import CodeGenerator, SecureCodeGenerator, codes_match
from src.bw_common.clock import Clock, epoch_millis, utc_now
from src.bw_common.enums import (
    EscrowPaymentStatus,
    EscrowStatus,
    ListingStatus,
    NotificationKind,
    OrderPaymentStatus,
    OrderStatus,
    PaymentProvider,
)
from src.bw_common.errors import (
    EscrowConflictError,
    EscrowNotFoundError,
    EscrowNotHeldError,
    InternalError,
    InvalidConfirmationCodeError,
    InvalidListingPriceError,
    ListingNotAvailableError,
    ListingNotEligibleError,
    ListingNotFoundError,
    NotOrderBuyerError,
    NotOrderPartyError,
    SelfPurchaseError,
)
from src.bw_common.id_generator import generate_id
from src.bw_escrow.application.schemas import (
    ConfirmReceiptResponse,
    EscrowResponse,
    FeeBreakdownResponse,
    InitiateEscrowResponse,
)
from src.bw_escrow.domain.fees import compute_fees
from src.bw_escrow.domain.models import EscrowTransaction, EscrowView, Listing, Order
from src.bw_escrow.domain.repository import EscrowRepositoryProtocol
from src.bw_escrow.infrastructure.persistence import EscrowRepository
from src.bw_notify.mailer import LoggingMailer, Mailer
from src.bw_notify.notifier import DatabaseNotifier, Notifier, dispatch

logger = logging.getLogger(__name__)


def check_purchasable(
    listing: Listing | None, listing_id: str, buyer_id: str
) -> tuple[Listing, int]:
    """Escrow purchase preconditions, in order. First failure wins.

    Returns the listing together with its (positive) price in cents.
    """
    if listing is None:
        raise ListingNotFoundError(listing_id)
    if not listing.is_distress_sale:
        raise ListingNotEligibleError()
    if listing.seller_id == buyer_id:
        raise SelfPurchaseError()
    price_cents = listing.price_cents
    if not price_cents or price_cents <= 0:
        raise InvalidListingPriceError()
    if listing.status != ListingStatus.ACTIVE:
        raise ListingNotAvailableError()
    return listing, price_cents


class EscrowLedger:
    def __init__(
        self,
        repo: EscrowRepositoryProtocol | None = None,
        notifier: Notifier | None = None,
        mailer: Mailer | None = None,
        code_generator: CodeGenerator | None = None,
        clock: Clock = utc_now,
        window: timedelta = timedelta(hours=settings.ESCROW_WINDOW_HOURS),
    ) -> None:
        self._repo: EscrowRepositoryProtocol = repo or EscrowRepository()
        self._notifier: Notifier = notifier or DatabaseNotifier()
        self._mailer: Mailer = mailer or LoggingMailer()
        self._codes: CodeGenerator = code_generator or SecureCodeGenerator()
        self._clock = clock
        self._window = window

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def preview_fees(self, price_cents: int, currency_code: str = "NGN") -> FeeBreakdownResponse:
        return FeeBreakdownResponse.from_breakdown(compute_fees(price_cents), currency_code)

    async def get_by_order_id(self, db: AsyncSession, order_id: str) -> EscrowView:
        view = await self._repo.get_view_by_order_id(db, order_id)
        if view is None:
            raise EscrowNotFoundError(order_id)
        return view

    async def get_for_party(self, db: AsyncSession, order_id: str, user_id: str) -> EscrowResponse:
        """Escrow view for the buyer or seller; the code is shown to the buyer only."""
        view = await self.get_by_order_id(db, order_id)
        if user_id not in (view.order.buyer_id, view.order.seller_id):
            raise NotOrderPartyError()
        return EscrowResponse.from_view(view, user_id)

    async def list_overdue(self, db: AsyncSession, limit: int) -> list[str]:
        return await self._repo.list_overdue_escrow_ids(db, self._clock(), limit)

    # ------------------------------------------------------------------
    # initiate
    # ------------------------------------------------------------------

    async def initiate(
        self,
        db: AsyncSession,
        buyer_id: str,
        listing_id: str,
        payment_provider: PaymentProvider = PaymentProvider.MOCK,
        shipping_method: str = "meet_in_person",
    ) -> InitiateEscrowResponse:
        logger.info("Initiating escrow: buyer=%s listing=%s", buyer_id, listing_id)
        listing, price_cents = check_purchasable(
            await self._repo.get_listing(db, listing_id), listing_id, buyer_id
        )
        fees = compute_fees(price_cents)
        now = self._clock()

        order = Order(
            id=generate_id("ord"),
            buyer_id=buyer_id,
            seller_id=listing.seller_id,
            listing_id=listing.id,
            total_price_cents=fees.item_price_cents,
            currency_code=listing.currency_code,
            status=OrderStatus.PENDING.value,
            payment_status=OrderPaymentStatus.PENDING.value,
            shipping_method=shipping_method,
        )
        escrow = EscrowTransaction(
            id=generate_id("esc"),
            order_id=order.id,
            item_price_cents=fees.item_price_cents,
            protection_fee_cents=fees.protection_fee_cents,
            commission_cents=fees.commission_cents,
            total_paid_cents=fees.total_paid_cents,
            seller_receives_cents=fees.seller_receives_cents,
            currency_code=listing.currency_code,
            status=EscrowStatus.PENDING.value,
            payment_status=EscrowPaymentStatus.PENDING.value,
            confirmation_code=self._codes.generate(),
            payment_provider=PaymentProvider(payment_provider).value,
            expires_at=now + self._window,
            created_at=now,
        )

        held: EscrowTransaction | None = None
        try:
            await self._repo.create_order(db, order)
            await self._repo.create_escrow(db, escrow)
            if payment_provider == PaymentProvider.MOCK:
                # No live gateway: settle in the same transaction
                held = await self._apply_payment_success(
                    db, escrow.id, f"MOCK_{epoch_millis(now)}"
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        view = await self._repo.get_view_by_order_id(db, order.id)
        if view is None:
            raise InternalError(f"Escrow for order {order.id} missing after commit")
        if held is not None:
            await self._announce_held(view)
        return InitiateEscrowResponse(
            escrow=EscrowResponse.from_view(view, buyer_id),
            fees=FeeBreakdownResponse.from_breakdown(fees, listing.currency_code),
        )

    # ------------------------------------------------------------------
    # payment success (mock path or webhook, at-least-once)
    # ------------------------------------------------------------------

    async def handle_payment_success(
        self, db: AsyncSession, escrow_id: str, payment_reference: str
    ) -> EscrowTransaction:
        logger.info("Payment success: escrow=%s ref=%s", escrow_id, payment_reference)
        try:
            held = await self._apply_payment_success(db, escrow_id, payment_reference)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if held is None:
            existing = await self._repo.get_escrow_by_id(db, escrow_id)
            if existing is None:
                raise EscrowNotFoundError(escrow_id)
            logger.info(
                "Payment success ignored: escrow=%s already %s", escrow_id, existing.status
            )
            return existing

        view = await self._safe_view(db, held.order_id)
        if view is not None:
            await self._announce_held(view)
        return held

    async def _apply_payment_success(
        self, db: AsyncSession, escrow_id: str, payment_reference: str
    ) -> EscrowTransaction | None:
        held = await self._repo.mark_held(db, escrow_id, payment_reference, self._clock())
        if held is None:
            return None
        await self._repo.update_order_status(
            db, held.order_id, OrderStatus.PAID.value, OrderPaymentStatus.PAID.value
        )
        return held

    # ------------------------------------------------------------------
    # confirm receipt (buyer only, the single money-release action)
    # ------------------------------------------------------------------

    async def confirm_receipt(
        self, db: AsyncSession, buyer_id: str, order_id: str, confirmation_code: str
    ) -> ConfirmReceiptResponse:
        logger.info("Confirming receipt: buyer=%s order=%s", buyer_id, order_id)
        try:
            released = await self._confirm_once(db, buyer_id, order_id, confirmation_code)
        except EscrowConflictError:
            # Lost a race; the re-read below reports the winner's status
            logger.info("Confirm conflict, retrying: order=%s", order_id)
            released = await self._confirm_once(db, buyer_id, order_id, confirmation_code)

        view = await self._safe_view(db, order_id)
        if view is not None:
            await self._announce_released(view)
        return ConfirmReceiptResponse(
            seller_receives_cents=released.seller_receives_cents,
            seller_receives_display=cents_to_display(
                released.seller_receives_cents, released.currency_code
            ),
        )

    async def _confirm_once(
        self, db: AsyncSession, buyer_id: str, order_id: str, confirmation_code: str
    ) -> EscrowTransaction:
        escrow = await self._repo.get_escrow_by_order_id(db, order_id)
        if escrow is None:
            raise EscrowNotFoundError(order_id)
        order = await self._repo.get_order(db, order_id)
        if order is None:
            raise InternalError(f"Order {order_id} missing for escrow {escrow.id}")
        if order.buyer_id != buyer_id:
            raise NotOrderBuyerError()
        if escrow.status != EscrowStatus.HELD:
            raise EscrowNotHeldError(escrow.status)
        if not codes_match(confirmation_code, escrow.confirmation_code):
            logger.warning("Invalid confirmation code: order=%s buyer=%s", order_id, buyer_id)
            raise InvalidConfirmationCodeError()

        try:
            released = await self._repo.mark_released(db, escrow.id, self._clock())
            if released is None:
                raise EscrowConflictError(escrow.id)
            await self._repo.update_order_status(db, order.id, OrderStatus.FULFILLED.value)
            await self._repo.mark_listing_sold(db, order.listing_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Escrow released: escrow=%s order=%s", escrow.id, order_id)
        return released

    # ------------------------------------------------------------------
    # expiry (system only; driven by ExpirySweeper)
    # ------------------------------------------------------------------

    async def expire(self, db: AsyncSession, escrow_id: str) -> bool:
        """Refund one overdue held escrow. False if the guard no longer matches."""
        try:
            expired = await self._repo.mark_expired(db, escrow_id, self._clock())
            if expired is not None:
                await self._repo.update_order_status(
                    db,
                    expired.order_id,
                    OrderStatus.CANCELLED.value,
                    OrderPaymentStatus.REFUNDED.value,
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if expired is None:
            logger.info("Expiry skipped: escrow=%s is no longer held and overdue", escrow_id)
            return False
        logger.info("Refunded expired escrow: %s", escrow_id)
        view = await self._safe_view(db, expired.order_id)
        if view is not None:
            await self._announce_expired(view)
        return True

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    async def _safe_view(self, db: AsyncSession, order_id: str) -> EscrowView | None:
        try:
            return await self._repo.get_view_by_order_id(db, order_id)
        except Exception:
            logger.exception("Could not load escrow view for notifications: order=%s", order_id)
            return None

    async def _send_mail(self, send: Callable[..., Awaitable[bool]], *args: object) -> None:
        try:
            await send(*args)
        except Exception:
            logger.exception("Escrow email failed: %s", getattr(send, "__name__", send))

    async def _announce_held(self, view: EscrowView) -> None:
        e, order = view.escrow, view.order
        price = cents_to_display(e.item_price_cents, e.currency_code)
        await dispatch(
            self._notifier,
            order.seller_id,
            NotificationKind.ESCROW_HELD.value,
            {
                "message": f"Funds secured! {price} is held safely. You can now meet the buyer.",
                "order_id": order.id,
                "listing_title": view.listing_title,
                "item_price_cents": e.item_price_cents,
            },
        )
        await dispatch(
            self._notifier,
            order.buyer_id,
            NotificationKind.ESCROW_CODE.value,
            {
                "message": (
                    f"Payment received! Your confirmation code is: {e.confirmation_code}. "
                    "Share this with the seller ONLY after you receive the item."
                ),
                "order_id": order.id,
                "confirmation_code": e.confirmation_code,
            },
        )
        if view.seller.email:
            await self._send_mail(
                self._mailer.send_escrow_payment_received,
                view.seller.email,
                view.seller.display_name or "",
                view.buyer.name,
                view.listing_title or "Item",
                e.item_price_cents,
                e.currency_code,
            )

    async def _announce_released(self, view: EscrowView) -> None:
        e, order = view.escrow, view.order
        amount = cents_to_display(e.seller_receives_cents, e.currency_code)
        await dispatch(
            self._notifier,
            order.seller_id,
            NotificationKind.ESCROW_RELEASED.value,
            {
                "message": f"Payment released! {amount} has been sent to your account.",
                "order_id": order.id,
                "amount_cents": e.seller_receives_cents,
            },
        )
        await dispatch(
            self._notifier,
            order.buyer_id,
            NotificationKind.ESCROW_COMPLETE.value,
            {
                "message": "Transaction complete! Thank you for your purchase.",
                "order_id": order.id,
            },
        )
        if view.seller.email:
            await self._send_mail(
                self._mailer.send_escrow_released,
                view.seller.email,
                view.seller.display_name or "",
                view.listing_title or "Item",
                e.seller_receives_cents,
                e.currency_code,
            )

    async def _announce_expired(self, view: EscrowView) -> None:
        e, order = view.escrow, view.order
        refund = cents_to_display(e.item_price_cents, e.currency_code)
        await dispatch(
            self._notifier,
            order.buyer_id,
            NotificationKind.ESCROW_EXPIRED.value,
            {
                "message": f"Escrow expired. {refund} has been refunded. (Protection fee retained)",
                "order_id": order.id,
                "refund_cents": e.item_price_cents,
            },
        )
        await dispatch(
            self._notifier,
            order.seller_id,
            NotificationKind.ESCROW_EXPIRED.value,
            {
                "message": (
                    "Sale cancelled: Buyer did not confirm receipt within "
                    f"{int(self._window.total_seconds() // 3600)} hours."
                ),
                "order_id": order.id,
            },
        )
