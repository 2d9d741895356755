"""001: create marketplace_listings table

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
    op.execute("""
        CREATE TABLE marketplace_listings (
            id                  VARCHAR(64)     PRIMARY KEY,
            seller_id           VARCHAR(64)     NOT NULL,
            livestock_type      VARCHAR(16)     NOT NULL,
            species             VARCHAR(100)    NOT NULL,
            quantity            INT             NOT NULL,
            min_price           BIGINT          NOT NULL,
            max_price           BIGINT          NOT NULL,
            currency            VARCHAR(3)      NOT NULL DEFAULT 'NGN',
            latitude            DOUBLE PRECISION NOT NULL,
            longitude           DOUBLE PRECISION NOT NULL,
            public_latitude     DOUBLE PRECISION NOT NULL,
            public_longitude    DOUBLE PRECISION NOT NULL,
            country             VARCHAR(100)    NOT NULL,
            region              VARCHAR(100)    NOT NULL,
            locality            VARCHAR(100)    NOT NULL,
            formatted_address   VARCHAR(300)    NOT NULL,
            fuzzing_level       VARCHAR(10)     NOT NULL,
            description         TEXT,
            photo_urls          TEXT[]          NOT NULL DEFAULT '{}',
            contact_preference  VARCHAR(10)     NOT NULL DEFAULT 'app',
            batch_id            VARCHAR(64),
            status              VARCHAR(10)     NOT NULL DEFAULT 'active',
            expires_at          TIMESTAMPTZ     NOT NULL,
            view_count          BIGINT          NOT NULL DEFAULT 0,
            contact_count       BIGINT          NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            deleted_at          TIMESTAMPTZ,
            CONSTRAINT ck_listings_quantity_gt_0     CHECK (quantity > 0),
            CONSTRAINT ck_listings_min_price_gt_0    CHECK (min_price > 0),
            CONSTRAINT ck_listings_price_range       CHECK (max_price >= min_price),
            CONSTRAINT ck_listings_expiry_after_create CHECK (expires_at > created_at),
            CONSTRAINT ck_listings_view_count_gte_0  CHECK (view_count >= 0),
            CONSTRAINT ck_listings_contact_count_gte_0 CHECK (contact_count >= 0),
            CONSTRAINT ck_listings_photo_count       CHECK (cardinality(photo_urls) <= 5),
            CONSTRAINT ck_listings_status CHECK (
                status IN ('active', 'paused', 'sold', 'expired')
            ),
            CONSTRAINT ck_listings_livestock_type CHECK (
                livestock_type IN ('poultry', 'fish', 'cattle', 'goats', 'sheep', 'bees')
            ),
            CONSTRAINT ck_listings_fuzzing_level CHECK (
                fuzzing_level IN ('low', 'medium', 'high')
            ),
            CONSTRAINT ck_listings_contact_preference CHECK (
                contact_preference IN ('app', 'phone', 'both')
            ),
            CONSTRAINT ck_listings_public_coords CHECK (
                public_latitude BETWEEN -90 AND 90 AND public_longitude BETWEEN -180 AND 180
            )
        );
    """)
    op.execute("""
        CREATE INDEX idx_listings_status_expires
        ON marketplace_listings (status, expires_at)
        WHERE deleted_at IS NULL;
    """)
    op.execute("""
        CREATE INDEX idx_listings_seller
        ON marketplace_listings (seller_id, created_at DESC);
    """)
    op.execute("""
        CREATE INDEX idx_listings_newest
        ON marketplace_listings (created_at DESC, id DESC);
    """)
    op.execute("""
        CREATE INDEX idx_listings_public_coords
        ON marketplace_listings (public_latitude, public_longitude);
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS marketplace_listings;")
