"""santim transactions table

Revision ID: 0001_santim_transactions
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from __future__ import annotations

from alembic import op


revision = "0001_santim_transactions"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("CREATE SCHEMA IF NOT EXISTS app;")
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.santim_transactions (
            transaction_id text NOT NULL,
            type text NOT NULL,
            amount numeric NOT NULL,
            status text NOT NULL DEFAULT 'INITIATED',
            third_party_id text,
            details jsonb NOT NULL DEFAULT '{}'::jsonb,
            webhook_log jsonb NOT NULL DEFAULT '[]'::jsonb,
            created_at timestamp with time zone DEFAULT now() NOT NULL,
            updated_at timestamp with time zone DEFAULT now() NOT NULL,
            CONSTRAINT santim_transactions_pkey PRIMARY KEY (transaction_id),
            CONSTRAINT santim_transactions_amount_positive CHECK (amount > 0),
            CONSTRAINT santim_transactions_type_check CHECK (type IN ('PAYMENT', 'PAYOUT')),
            CONSTRAINT santim_transactions_third_party_id_check
                CHECK ((type = 'PAYMENT') = (third_party_id IS NOT NULL)),
            CONSTRAINT santim_transactions_status_check
                CHECK (status IN ('INITIATED', 'PENDING', 'SUCCESS', 'FAILED', 'CANCELLED'))
        );
        """
    )
    op.execute(
        """
        CREATE INDEX IF NOT EXISTS santim_transactions_status_idx
        ON app.santim_transactions (status, updated_at DESC);
        """
    )
    # payments correlate on the processor id; payouts have none
    op.execute(
        """
        CREATE UNIQUE INDEX IF NOT EXISTS santim_transactions_third_party_id_key
        ON app.santim_transactions (third_party_id)
        WHERE type = 'PAYMENT';
        """
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS app.santim_transactions;")
