"""Listing lifecycle: status graph, expiration arithmetic, invariant checks.

    active  ──► paused | sold | expired
    paused  ──► active | sold
    expired ──► active            (republish)
    sold    ──► (terminal)

Every function here is pure; callers pass `now` explicitly.
"""

from collections.abc import Mapping
from datetime import datetime, timedelta

from config.settings import settings
from src.lm_common.enums import ListingStatus
from src.lm_common.errors import ConstraintViolationError, InvalidTransitionError
from src.lm_common.money import price_band
from src.lm_listing.domain.models import BatchSnapshot, ListingDraft

INITIAL_STATUS = ListingStatus.ACTIVE

TRANSITIONS: Mapping[ListingStatus, frozenset[ListingStatus]] = {
    ListingStatus.ACTIVE: frozenset(
        {ListingStatus.PAUSED, ListingStatus.SOLD, ListingStatus.EXPIRED}
    ),
    ListingStatus.PAUSED: frozenset({ListingStatus.ACTIVE, ListingStatus.SOLD}),
    ListingStatus.EXPIRED: frozenset({ListingStatus.ACTIVE}),
    ListingStatus.SOLD: frozenset(),
}


def _as_status(value: str | ListingStatus) -> ListingStatus | None:
    try:
        return ListingStatus(value)
    except ValueError:
        return None


def validate_status_transition(
    from_status: str | ListingStatus, to_status: str | ListingStatus
) -> bool:
    """True iff (from, to) is an edge of the status graph. Unknown names are rejected."""
    src, dst = _as_status(from_status), _as_status(to_status)
    if src is None or dst is None:
        return False
    return dst in TRANSITIONS[src]


def ensure_transition(
    from_status: str | ListingStatus, to_status: str | ListingStatus
) -> ListingStatus:
    """Return the target status, or raise InvalidTransitionError. Never coerces."""
    if not validate_status_transition(from_status, to_status):
        raise InvalidTransitionError(_value(from_status), _value(to_status))
    return ListingStatus(to_status)


def _value(status: str | ListingStatus) -> str:
    return status.value if isinstance(status, ListingStatus) else status


# ---------------------------------------------------------------------------
# Expiration
# ---------------------------------------------------------------------------


def calculate_expiration_date(created_at: datetime, period_days: int) -> datetime:
    """created_at + period_days calendar days.

    Aware-datetime arithmetic keeps the wall-clock time, so a zone-local
    timestamp does not drift by an hour across a DST change.
    """
    if period_days <= 0:
        raise ConstraintViolationError([f"period_days must be > 0, got {period_days}"])
    return created_at + timedelta(days=period_days)


def is_listing_expired(expires_at: datetime, now: datetime) -> bool:
    """Strict: a listing expiring exactly at `now` is not yet expired."""
    return expires_at < now


def should_notify_expiration(
    expires_at: datetime, now: datetime, window_days: int | None = None
) -> bool:
    """True iff expires_at is in the half-open window (now, now + window_days]."""
    days = settings.EXPIRY_WARNING_DAYS if window_days is None else window_days
    return now < expires_at <= now + timedelta(days=days)


# ---------------------------------------------------------------------------
# Invariants
# ---------------------------------------------------------------------------


def listing_violations(
    quantity: int | None,
    min_price: int | None,
    max_price: int | None,
    created_at: datetime | None = None,
    expires_at: datetime | None = None,
) -> list[str]:
    """Human-readable list of broken listing invariants; empty when valid."""
    errors: list[str] = []
    if quantity is None:
        errors.append("quantity is required")
    elif quantity <= 0:
        errors.append(f"quantity must be > 0, got {quantity}")
    if min_price is None:
        errors.append("min_price is required")
    elif min_price <= 0:
        errors.append(f"min_price must be > 0, got {min_price}")
    if max_price is None:
        errors.append("max_price is required")
    elif min_price is not None and max_price < min_price:
        errors.append(f"max_price ({max_price}) must be >= min_price ({min_price})")
    if created_at is not None and expires_at is not None and expires_at <= created_at:
        errors.append("expires_at must be after created_at")
    return errors


def check_listing_invariants(
    quantity: int | None,
    min_price: int | None,
    max_price: int | None,
    created_at: datetime | None = None,
    expires_at: datetime | None = None,
) -> None:
    errors = listing_violations(quantity, min_price, max_price, created_at, expires_at)
    if errors:
        raise ConstraintViolationError(errors)


# ---------------------------------------------------------------------------
# Batch pre-fill
# ---------------------------------------------------------------------------


def generate_listing_from_batch(
    batch: BatchSnapshot, spread_bps: int | None = None
) -> ListingDraft:
    """Copy species/quantity/type from a batch and propose a price range.

    Never invents a location or privacy level.
    """
    draft = ListingDraft(
        livestock_type=batch.livestock_type,
        species=batch.species,
        quantity=batch.current_quantity,
        batch_id=batch.id,
    )
    if batch.market_price is not None and batch.market_price > 0:
        bps = settings.BATCH_PRICE_SPREAD_BPS if spread_bps is None else spread_bps
        draft.min_price, draft.max_price = price_band(batch.market_price, bps)
    return draft
