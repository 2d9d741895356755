"""002: create listing_views table

One row per (listing, viewer, UTC day). The unique constraint is what
record_listing_view's ON CONFLICT relies on.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE listing_views (
            id              BIGSERIAL       PRIMARY KEY,
            listing_id      VARCHAR(64)     NOT NULL REFERENCES marketplace_listings(id),
            viewer_id       VARCHAR(64),
            viewer_ip       VARCHAR(64),
            viewer_key      VARCHAR(128)    NOT NULL,
            view_date       DATE            NOT NULL,
            viewed_at       TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_listing_views_daily UNIQUE (listing_id, viewer_key, view_date),
            CONSTRAINT ck_listing_views_identity CHECK (
                viewer_id IS NOT NULL OR viewer_ip IS NOT NULL
            )
        );
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS listing_views;")
