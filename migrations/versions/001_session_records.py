"""session_records table (clear identifier vault).

Revision ID: 001_session_records
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from alembic import op


revision = "001_session_records"
down_revision = None
branch_labels = None
depends_on = None


_UPGRADE_SQL = """
CREATE TABLE IF NOT EXISTS session_records (
    user_hash            TEXT        NOT NULL,
    session_hash         TEXT        NOT NULL,
    clear_user_id_enc    TEXT,
    clear_session_id_enc TEXT,
    started_at_ms        BIGINT,
    expires_at           TIMESTAMPTZ NOT NULL,
    created_at           TIMESTAMPTZ NOT NULL DEFAULT now(),
    PRIMARY KEY (user_hash, session_hash)
);

CREATE INDEX IF NOT EXISTS idx_session_records_expires_at
    ON session_records (expires_at);
"""


def upgrade() -> None:
    conn = op.get_bind()
    conn.exec_driver_sql(_UPGRADE_SQL)


def downgrade() -> None:
    conn = op.get_bind()
    conn.exec_driver_sql("DROP TABLE session_records;")
