"""006: create barter_offers table

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE barter_offers (
            id                      VARCHAR(64)     PRIMARY KEY,
            buyer_id                VARCHAR(64)     NOT NULL REFERENCES users (id),
            seller_id               VARCHAR(64)     NOT NULL REFERENCES users (id),
            listing_id              VARCHAR(64)     NOT NULL REFERENCES listings (id),
            status                  VARCHAR(30)     NOT NULL DEFAULT 'accepted',
            is_buyer_locked         BOOLEAN         NOT NULL DEFAULT FALSE,
            is_seller_locked        BOOLEAN         NOT NULL DEFAULT FALSE,
            is_buyer_fulfilled      BOOLEAN         NOT NULL DEFAULT FALSE,
            is_seller_fulfilled     BOOLEAN         NOT NULL DEFAULT FALSE,
            pickup_pin              VARCHAR(6),
            dispute_reason          TEXT,
            disputed_by             VARCHAR(64),
            locked_at               TIMESTAMPTZ,
            completed_at            TIMESTAMPTZ,
            disputed_at             TIMESTAMPTZ,
            version                 BIGINT          NOT NULL DEFAULT 0,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_barter_status             CHECK (
                status IN ('accepted', 'awaiting_fulfillment', 'completed', 'disputed')
            ),
            CONSTRAINT ck_barter_not_self           CHECK (buyer_id <> seller_id),
            CONSTRAINT ck_barter_completed_iff_fulfilled CHECK (
                (status = 'completed') = (is_buyer_fulfilled AND is_seller_fulfilled)
            ),
            CONSTRAINT ck_barter_locked_before_fulfillment CHECK (
                status = 'accepted' OR (is_buyer_locked AND is_seller_locked)
            ),
            CONSTRAINT ck_barter_pin_after_lock     CHECK (
                status = 'accepted' OR pickup_pin ~ '^[0-9]{6}$'
            ),
            CONSTRAINT ck_barter_dispute_has_reason CHECK (
                status <> 'disputed' OR (dispute_reason IS NOT NULL AND disputed_by IS NOT NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_barter_offers_buyer ON barter_offers (buyer_id, status);")
    op.execute("CREATE INDEX idx_barter_offers_seller ON barter_offers (seller_id, status);")
    op.execute("""
        CREATE TRIGGER trg_barter_offers_updated_at
            BEFORE UPDATE ON barter_offers
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute(
        "COMMENT ON TABLE barter_offers IS "
        "'Accepted barter trades — commitment state, version-guarded writes';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS barter_offers CASCADE;")
