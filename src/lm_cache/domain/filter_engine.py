"""Filter engine: pure AND of the present ListingFilter predicates.

Works on anything shaped like a listing (domain Listing or PublicListing),
so the client cache and the server repository share one definition of
"matches". Never mutates its input.
"""

from collections.abc import Iterable
from typing import Protocol, TypeVar

from src.lm_listing.domain.models import ListingFilter


class FilterableListing(Protocol):
    livestock_type: str
    species: str
    min_price: int
    max_price: int
    country: str
    region: str
    locality: str
    formatted_address: str


T = TypeVar("T", bound=FilterableListing)


def _contains(haystack: str | None, needle: str) -> bool:
    return haystack is not None and needle.casefold() in haystack.casefold()


def matches(listing: FilterableListing, f: ListingFilter) -> bool:
    if f.livestock_type is not None and listing.livestock_type != f.livestock_type:
        return False
    if f.species is not None and not _contains(listing.species, f.species):
        return False
    # Floor filter on the listing's floor, ceiling filter on its ceiling
    if f.min_price is not None and listing.min_price < f.min_price:
        return False
    if f.max_price is not None and listing.max_price > f.max_price:
        return False
    if f.region is not None and not _contains(listing.region, f.region):
        return False
    if f.location is not None and not any(
        _contains(field, f.location)
        for field in (
            listing.country, listing.region, listing.locality, listing.formatted_address,
        )
    ):
        return False
    return True


def apply_filters(listings: Iterable[T], f: ListingFilter) -> list[T]:
    """New list of the matching items, in input order."""
    if f.is_empty:
        return list(listings)
    return [m for m in listings if matches(m, f)]


