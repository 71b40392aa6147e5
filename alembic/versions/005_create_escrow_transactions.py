"""005: create escrow_transactions table

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE escrow_transactions (
            id                      VARCHAR(64)     PRIMARY KEY,
            order_id                VARCHAR(64)     NOT NULL REFERENCES orders (id),
            item_price_cents        BIGINT          NOT NULL,
            protection_fee_cents    BIGINT          NOT NULL,
            commission_cents        BIGINT          NOT NULL,
            total_paid_cents        BIGINT          NOT NULL,
            seller_receives_cents   BIGINT          NOT NULL,
            currency_code           VARCHAR(3)      NOT NULL DEFAULT 'NGN',
            status                  VARCHAR(20)     NOT NULL DEFAULT 'pending',
            payment_status          VARCHAR(20)     NOT NULL DEFAULT 'pending',
            confirmation_code       VARCHAR(6)      NOT NULL,
            payment_provider        VARCHAR(20)     NOT NULL DEFAULT 'mock',
            payment_reference       VARCHAR(128),
            expires_at              TIMESTAMPTZ     NOT NULL,
            paid_at                 TIMESTAMPTZ,
            confirmed_at            TIMESTAMPTZ,
            released_at             TIMESTAMPTZ,
            refunded_at             TIMESTAMPTZ,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_escrow_order                 UNIQUE (order_id),
            CONSTRAINT ck_escrow_item_price_gt_0       CHECK (item_price_cents > 0),
            CONSTRAINT ck_escrow_fees_gte_0            CHECK (
                protection_fee_cents >= 0 AND commission_cents >= 0
            ),
            CONSTRAINT ck_escrow_total_paid            CHECK (
                total_paid_cents = item_price_cents + protection_fee_cents
            ),
            CONSTRAINT ck_escrow_seller_receives       CHECK (
                seller_receives_cents = item_price_cents - commission_cents
            ),
            CONSTRAINT ck_escrow_status                CHECK (
                status IN ('pending', 'held', 'released', 'expired')
            ),
            CONSTRAINT ck_escrow_payment_status        CHECK (payment_status IN ('pending', 'success')),
            CONSTRAINT ck_escrow_payment_provider      CHECK (
                payment_provider IN ('mock', 'paystack', 'flutterwave')
            ),
            CONSTRAINT ck_escrow_code_6_digits         CHECK (confirmation_code ~ '^[0-9]{6}$'),
            CONSTRAINT ck_escrow_released_has_time     CHECK (status <> 'released' OR released_at IS NOT NULL),
            CONSTRAINT ck_escrow_expired_has_time      CHECK (status <> 'expired' OR refunded_at IS NOT NULL)
        );
    """)
    # Sweeper scan: held rows ordered by deadline
    op.execute("""
        CREATE INDEX idx_escrow_held_expires
        ON escrow_transactions (expires_at)
        WHERE status = 'held';
    """)
    op.execute("""
        CREATE TRIGGER trg_escrow_transactions_updated_at
            BEFORE UPDATE ON escrow_transactions
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("""
        CREATE TRIGGER trg_escrow_transactions_guard
            BEFORE UPDATE ON escrow_transactions
            FOR EACH ROW EXECUTE FUNCTION fn_escrow_guard();
    """)
    op.execute(
        "COMMENT ON TABLE escrow_transactions IS "
        "'Escrow ledger — fees locked at creation, status moved only by guarded updates';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS escrow_transactions CASCADE;")
