"""EscrowRepository — concrete implementation of EscrowRepositoryProtocol.

Every status transition is a single conditional PostgreSQL
UPDATE ... WHERE status = <expected> ... RETURNING. Zero rows returned means
another transition won the race (or the row is not in the source state);
the caller decides what that means.

Transaction ownership: the CALLER (application service or sweeper) is
responsible for commit/rollback.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.bw_escrow.domain.models import EscrowTransaction, EscrowView, Listing, Order, Party

# ---------------------------------------------------------------------------
# SQL: listings / orders (consumed aggregates)
# ---------------------------------------------------------------------------

_GET_LISTING_SQL = text("""
    SELECT id, seller_id, title, price_cents, currency_code, is_distress_sale, status
    FROM listings
    WHERE id = :id
""")

_MARK_LISTING_SOLD_SQL = text("""
    UPDATE listings SET status = 'sold', updated_at = NOW()
    WHERE id = :id
""")

_INSERT_ORDER_SQL = text("""
    INSERT INTO orders (id, buyer_id, seller_id, total_price_cents, currency_code,
        status, payment_status, shipping_method)
    VALUES (:id, :buyer_id, :seller_id, :total_price_cents, :currency_code,
        :status, :payment_status, :shipping_method)
""")

_INSERT_ORDER_ITEM_SQL = text("""
    INSERT INTO order_items (order_id, listing_id, quantity, price_cents, deal_type)
    VALUES (:order_id, :listing_id, 1, :price_cents, 'cash')
""")

_GET_ORDER_SQL = text("""
    SELECT o.id, o.buyer_id, o.seller_id, oi.listing_id, o.total_price_cents,
           o.currency_code, o.status, o.payment_status, o.shipping_method,
           o.created_at, o.updated_at
    FROM orders o
    JOIN order_items oi ON oi.order_id = o.id
    WHERE o.id = :id
    ORDER BY oi.id
    LIMIT 1
""")

_UPDATE_ORDER_SQL = text("""
    UPDATE orders
    SET status = :status,
        payment_status = COALESCE(CAST(:payment_status AS VARCHAR), payment_status),
        updated_at = NOW()
    WHERE id = :id
""")

# ---------------------------------------------------------------------------
# SQL: escrow_transactions
# ---------------------------------------------------------------------------

_ESCROW_COLUMNS = """
    id, order_id, item_price_cents, protection_fee_cents, commission_cents,
    total_paid_cents, seller_receives_cents, currency_code, status, payment_status,
    confirmation_code, payment_provider, payment_reference, expires_at,
    paid_at, confirmed_at, released_at, refunded_at, created_at
"""

_INSERT_ESCROW_SQL = text("""
    INSERT INTO escrow_transactions (id, order_id, item_price_cents, protection_fee_cents,
        commission_cents, total_paid_cents, seller_receives_cents, currency_code,
        status, payment_status, confirmation_code, payment_provider, expires_at)
    VALUES (:id, :order_id, :item_price_cents, :protection_fee_cents,
        :commission_cents, :total_paid_cents, :seller_receives_cents, :currency_code,
        :status, :payment_status, :confirmation_code, :payment_provider, :expires_at)
""")

_GET_ESCROW_BY_ID_SQL = text(f"""
    SELECT {_ESCROW_COLUMNS} FROM escrow_transactions WHERE id = :id
""")

_GET_ESCROW_BY_ORDER_SQL = text(f"""
    SELECT {_ESCROW_COLUMNS} FROM escrow_transactions WHERE order_id = :order_id
""")

_MARK_HELD_SQL = text(f"""
    UPDATE escrow_transactions
    SET status = 'held', payment_status = 'success',
        payment_reference = :payment_reference, paid_at = :paid_at
    WHERE id = :id AND status = 'pending'
    RETURNING {_ESCROW_COLUMNS}
""")

_MARK_RELEASED_SQL = text(f"""
    UPDATE escrow_transactions
    SET status = 'released', confirmed_at = :released_at, released_at = :released_at
    WHERE id = :id AND status = 'held'
    RETURNING {_ESCROW_COLUMNS}
""")

_MARK_EXPIRED_SQL = text(f"""
    UPDATE escrow_transactions
    SET status = 'expired', refunded_at = :now
    WHERE id = :id AND status = 'held' AND expires_at < :now
    RETURNING {_ESCROW_COLUMNS}
""")

_LIST_OVERDUE_SQL = text("""
    SELECT id FROM escrow_transactions
    WHERE status = 'held' AND expires_at < :now
    ORDER BY expires_at
    LIMIT :limit
""")

_ESCROW_COLUMNS_E = ", ".join("e." + c.strip() for c in _ESCROW_COLUMNS.split(","))

_GET_VIEW_SQL = text(f"""
    SELECT {_ESCROW_COLUMNS_E},
           o.buyer_id, o.seller_id, o.total_price_cents,
           o.status AS order_status, o.payment_status AS order_payment_status,
           o.shipping_method, o.created_at AS order_created_at,
           o.updated_at AS order_updated_at,
           oi.listing_id, l.title AS listing_title,
           (SELECT li.url FROM listing_images li
             WHERE li.listing_id = oi.listing_id
             ORDER BY li.sort_order ASC LIMIT 1) AS listing_image_url,
           b.email AS buyer_email, b.display_name AS buyer_display_name,
           s.email AS seller_email, s.display_name AS seller_display_name
    FROM escrow_transactions e
    JOIN orders o ON o.id = e.order_id
    JOIN order_items oi ON oi.order_id = o.id
    LEFT JOIN listings l ON l.id = oi.listing_id
    LEFT JOIN users b ON b.id = o.buyer_id
    LEFT JOIN users s ON s.id = o.seller_id
    WHERE e.order_id = :order_id
    ORDER BY oi.id
    LIMIT 1
""")


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_listing(row: Any) -> Listing:
    return Listing(
        id=row.id,
        seller_id=row.seller_id,
        title=row.title,
        price_cents=row.price_cents,
        currency_code=row.currency_code,
        is_distress_sale=row.is_distress_sale,
        status=row.status,
    )


def _row_to_order(row: Any) -> Order:
    return Order(
        id=row.id,
        buyer_id=row.buyer_id,
        seller_id=row.seller_id,
        listing_id=row.listing_id,
        total_price_cents=row.total_price_cents,
        currency_code=row.currency_code,
        status=row.status,
        payment_status=row.payment_status,
        shipping_method=row.shipping_method,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_escrow(row: Any) -> EscrowTransaction:
    return EscrowTransaction(
        id=row.id,
        order_id=row.order_id,
        item_price_cents=row.item_price_cents,
        protection_fee_cents=row.protection_fee_cents,
        commission_cents=row.commission_cents,
        total_paid_cents=row.total_paid_cents,
        seller_receives_cents=row.seller_receives_cents,
        currency_code=row.currency_code,
        status=row.status,
        payment_status=row.payment_status,
        confirmation_code=row.confirmation_code,
        payment_provider=row.payment_provider,
        payment_reference=row.payment_reference,
        expires_at=row.expires_at,
        paid_at=row.paid_at,
        confirmed_at=row.confirmed_at,
        released_at=row.released_at,
        refunded_at=row.refunded_at,
        created_at=row.created_at,
    )


def _row_to_view(row: Any) -> EscrowView:
    order = Order(
        id=row.order_id,
        buyer_id=row.buyer_id,
        seller_id=row.seller_id,
        listing_id=row.listing_id,
        total_price_cents=row.total_price_cents,
        currency_code=row.currency_code,
        status=row.order_status,
        payment_status=row.order_payment_status,
        shipping_method=row.shipping_method,
        created_at=row.order_created_at,
        updated_at=row.order_updated_at,
    )
    return EscrowView(
        escrow=_row_to_escrow(row),
        order=order,
        buyer=Party(row.buyer_id, row.buyer_email, row.buyer_display_name),
        seller=Party(row.seller_id, row.seller_email, row.seller_display_name),
        listing_title=row.listing_title,
        listing_image_url=row.listing_image_url,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class EscrowRepository:
    """Concrete repository — transitions atomic at the SQL level."""

    async def get_listing(self, db: AsyncSession, listing_id: str) -> Listing | None:
        result = await db.execute(_GET_LISTING_SQL, {"id": listing_id})
        row = result.fetchone()
        return _row_to_listing(row) if row else None

    async def create_order(self, db: AsyncSession, order: Order) -> None:
        await db.execute(
            _INSERT_ORDER_SQL,
            {
                "id": order.id,
                "buyer_id": order.buyer_id,
                "seller_id": order.seller_id,
                "total_price_cents": order.total_price_cents,
                "currency_code": order.currency_code,
                "status": order.status,
                "payment_status": order.payment_status,
                "shipping_method": order.shipping_method,
            },
        )
        await db.execute(
            _INSERT_ORDER_ITEM_SQL,
            {
                "order_id": order.id,
                "listing_id": order.listing_id,
                "price_cents": order.total_price_cents,
            },
        )

    async def create_escrow(self, db: AsyncSession, escrow: EscrowTransaction) -> None:
        await db.execute(
            _INSERT_ESCROW_SQL,
            {
                "id": escrow.id,
                "order_id": escrow.order_id,
                "item_price_cents": escrow.item_price_cents,
                "protection_fee_cents": escrow.protection_fee_cents,
                "commission_cents": escrow.commission_cents,
                "total_paid_cents": escrow.total_paid_cents,
                "seller_receives_cents": escrow.seller_receives_cents,
                "currency_code": escrow.currency_code,
                "status": escrow.status,
                "payment_status": escrow.payment_status,
                "confirmation_code": escrow.confirmation_code,
                "payment_provider": escrow.payment_provider,
                "expires_at": escrow.expires_at,
            },
        )

    async def get_order(self, db: AsyncSession, order_id: str) -> Order | None:
        result = await db.execute(_GET_ORDER_SQL, {"id": order_id})
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def get_escrow_by_id(
        self, db: AsyncSession, escrow_id: str
    ) -> EscrowTransaction | None:
        result = await db.execute(_GET_ESCROW_BY_ID_SQL, {"id": escrow_id})
        row = result.fetchone()
        return _row_to_escrow(row) if row else None

    async def get_escrow_by_order_id(
        self, db: AsyncSession, order_id: str
    ) -> EscrowTransaction | None:
        result = await db.execute(_GET_ESCROW_BY_ORDER_SQL, {"order_id": order_id})
        row = result.fetchone()
        return _row_to_escrow(row) if row else None

    async def get_view_by_order_id(
        self, db: AsyncSession, order_id: str
    ) -> EscrowView | None:
        result = await db.execute(_GET_VIEW_SQL, {"order_id": order_id})
        row = result.fetchone()
        return _row_to_view(row) if row else None

    async def mark_held(
        self,
        db: AsyncSession,
        escrow_id: str,
        payment_reference: str,
        paid_at: datetime,
    ) -> EscrowTransaction | None:
        result = await db.execute(
            _MARK_HELD_SQL,
            {"id": escrow_id, "payment_reference": payment_reference, "paid_at": paid_at},
        )
        row = result.fetchone()
        return _row_to_escrow(row) if row else None

    async def mark_released(
        self, db: AsyncSession, escrow_id: str, released_at: datetime
    ) -> EscrowTransaction | None:
        result = await db.execute(
            _MARK_RELEASED_SQL, {"id": escrow_id, "released_at": released_at}
        )
        row = result.fetchone()
        return _row_to_escrow(row) if row else None

    async def mark_expired(
        self, db: AsyncSession, escrow_id: str, now: datetime
    ) -> EscrowTransaction | None:
        result = await db.execute(_MARK_EXPIRED_SQL, {"id": escrow_id, "now": now})
        row = result.fetchone()
        return _row_to_escrow(row) if row else None

    async def update_order_status(
        self,
        db: AsyncSession,
        order_id: str,
        status: str,
        payment_status: str | None = None,
    ) -> None:
        await db.execute(
            _UPDATE_ORDER_SQL,
            {"id": order_id, "status": status, "payment_status": payment_status},
        )

    async def mark_listing_sold(self, db: AsyncSession, listing_id: str) -> None:
        await db.execute(_MARK_LISTING_SOLD_SQL, {"id": listing_id})

    async def list_overdue_escrow_ids(
        self, db: AsyncSession, now: datetime, limit: int
    ) -> list[str]:
        result = await db.execute(_LIST_OVERDUE_SQL, {"now": now, "limit": limit})
        return [row.id for row in result.fetchall()]
