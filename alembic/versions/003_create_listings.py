"""003: create listings and listing_images tables

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE listings (
            id                  VARCHAR(64)     PRIMARY KEY,
            seller_id           VARCHAR(64)     NOT NULL REFERENCES users (id),
            title               VARCHAR(200)    NOT NULL,
            price_cents         BIGINT,
            currency_code       VARCHAR(3)      NOT NULL DEFAULT 'NGN',
            is_distress_sale    BOOLEAN         NOT NULL DEFAULT FALSE,
            status              VARCHAR(20)     NOT NULL DEFAULT 'active',
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_listings_price_gte_0 CHECK (price_cents IS NULL OR price_cents >= 0),
            CONSTRAINT ck_listings_status      CHECK (status IN ('active', 'sold'))
        );
    """)
    op.execute("CREATE INDEX idx_listings_seller ON listings (seller_id, status);")
    op.execute("""
        CREATE TRIGGER trg_listings_updated_at
            BEFORE UPDATE ON listings
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)

    op.execute("""
        CREATE TABLE listing_images (
            id              BIGSERIAL       PRIMARY KEY,
            listing_id      VARCHAR(64)     NOT NULL REFERENCES listings (id) ON DELETE CASCADE,
            url             TEXT            NOT NULL,
            sort_order      INT             NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_listing_images_listing ON listing_images (listing_id, sort_order);")
    op.execute("COMMENT ON TABLE listings IS 'Catalog listings (consumed: escrow reads price/flags, marks sold)';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS listing_images CASCADE;")
    op.execute("DROP TABLE IF EXISTS listings CASCADE;")
