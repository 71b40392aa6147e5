"""007: create notifications and dispute_queue tables

Revision ID: 007
Revises: 006
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Outbox polled by the notification relay
    op.execute("""
        CREATE TABLE notifications (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            type            VARCHAR(40)     NOT NULL,
            data            JSONB           NOT NULL DEFAULT '{}'::jsonb,
            is_read         BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_notifications_user ON notifications (user_id, created_at DESC);")

    op.execute("""
        CREATE TABLE dispute_queue (
            id              BIGSERIAL       PRIMARY KEY,
            offer_id        VARCHAR(64)     NOT NULL REFERENCES barter_offers (id),
            reported_by     VARCHAR(64)     NOT NULL,
            reason          TEXT            NOT NULL,
            status          VARCHAR(20)     NOT NULL DEFAULT 'open',
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_dispute_queue_status CHECK (status IN ('open', 'resolved'))
        );
    """)
    op.execute("CREATE INDEX idx_dispute_queue_open ON dispute_queue (created_at) WHERE status = 'open';")
    op.execute("""
        CREATE TRIGGER trg_dispute_queue_updated_at
            BEFORE UPDATE ON dispute_queue
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE dispute_queue IS 'Disputed barter trades awaiting admin arbitration';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS dispute_queue CASCADE;")
    op.execute("DROP TABLE IF EXISTS notifications CASCADE;")
