"""004: create orders and order_items tables

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE orders (
            id                  VARCHAR(64)     PRIMARY KEY,
            buyer_id            VARCHAR(64)     NOT NULL REFERENCES users (id),
            seller_id           VARCHAR(64)     NOT NULL REFERENCES users (id),
            total_price_cents   BIGINT          NOT NULL,
            currency_code       VARCHAR(3)      NOT NULL DEFAULT 'NGN',
            status              VARCHAR(20)     NOT NULL DEFAULT 'pending',
            payment_status      VARCHAR(20)     NOT NULL DEFAULT 'pending',
            shipping_method     VARCHAR(50)     NOT NULL DEFAULT 'meet_in_person',
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_orders_total_gt_0       CHECK (total_price_cents > 0),
            CONSTRAINT ck_orders_status           CHECK (
                status IN ('pending', 'paid', 'fulfilled', 'cancelled')
            ),
            CONSTRAINT ck_orders_payment_status   CHECK (
                payment_status IN ('pending', 'paid', 'refunded')
            ),
            CONSTRAINT ck_orders_not_self         CHECK (buyer_id <> seller_id)
        );
    """)
    op.execute("CREATE INDEX idx_orders_buyer ON orders (buyer_id, created_at DESC);")
    op.execute("CREATE INDEX idx_orders_seller ON orders (seller_id, created_at DESC);")
    op.execute("""
        CREATE TRIGGER trg_orders_updated_at
            BEFORE UPDATE ON orders
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)

    op.execute("""
        CREATE TABLE order_items (
            id              BIGSERIAL       PRIMARY KEY,
            order_id        VARCHAR(64)     NOT NULL REFERENCES orders (id) ON DELETE CASCADE,
            listing_id      VARCHAR(64)     NOT NULL REFERENCES listings (id),
            quantity        INT             NOT NULL DEFAULT 1,
            price_cents     BIGINT          NOT NULL,
            deal_type       VARCHAR(20)     NOT NULL DEFAULT 'cash',
            CONSTRAINT ck_order_items_quantity  CHECK (quantity > 0),
            CONSTRAINT ck_order_items_deal_type CHECK (deal_type IN ('cash', 'barter'))
        );
    """)
    op.execute("CREATE INDEX idx_order_items_order ON order_items (order_id);")
    op.execute("COMMENT ON TABLE orders IS 'Orders — escrow drives status/payment_status as a side effect';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS order_items CASCADE;")
    op.execute("DROP TABLE IF EXISTS orders CASCADE;")
