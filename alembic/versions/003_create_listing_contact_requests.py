"""003: create listing_contact_requests table

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
        CREATE TABLE listing_contact_requests (
            id                  VARCHAR(64)     PRIMARY KEY,
            listing_id          VARCHAR(64)     NOT NULL REFERENCES marketplace_listings(id),
            buyer_id            VARCHAR(64)     NOT NULL,
            message             TEXT,
            contact_method      VARCHAR(10)     NOT NULL DEFAULT 'app',
            phone_number        VARCHAR(32),
            email               VARCHAR(255),
            status              VARCHAR(10)     NOT NULL DEFAULT 'pending',
            response_message    TEXT,
            responded_at        TIMESTAMPTZ,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_contact_requests_listing_buyer UNIQUE (listing_id, buyer_id),
            CONSTRAINT ck_contact_requests_status CHECK (
                status IN ('pending', 'approved', 'denied')
            ),
            CONSTRAINT ck_contact_requests_method CHECK (
                contact_method IN ('app', 'phone', 'email')
            ),
            CONSTRAINT ck_contact_requests_responded CHECK (
                (status = 'pending') = (responded_at IS NULL)
            )
        );
    """)
    op.execute("""
        CREATE INDEX idx_contact_requests_buyer
        ON listing_contact_requests (buyer_id, created_at DESC);
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS listing_contact_requests;")
