"""001: create trigger functions

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # BEFORE UPDATE on every table with an updated_at column
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)

    # Escrow rows: amounts and code are fixed at creation, and a row that
    # reached released/expired never moves again.
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_escrow_guard()
        RETURNS TRIGGER AS $$
        BEGIN
            IF NEW.item_price_cents      IS DISTINCT FROM OLD.item_price_cents
            OR NEW.protection_fee_cents  IS DISTINCT FROM OLD.protection_fee_cents
            OR NEW.commission_cents      IS DISTINCT FROM OLD.commission_cents
            OR NEW.total_paid_cents      IS DISTINCT FROM OLD.total_paid_cents
            OR NEW.seller_receives_cents IS DISTINCT FROM OLD.seller_receives_cents
            OR NEW.currency_code         IS DISTINCT FROM OLD.currency_code
            OR NEW.confirmation_code     IS DISTINCT FROM OLD.confirmation_code THEN
                RAISE EXCEPTION 'escrow % amounts are immutable', OLD.id;
            END IF;
            IF OLD.status IN ('released', 'expired') AND NEW.status <> OLD.status THEN
                RAISE EXCEPTION 'escrow % is already %', OLD.id, OLD.status;
            END IF;
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS fn_escrow_guard();")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")
