"""Tests for lm_common.enums — values must match the migrations' CHECK constraints."""

from src.lm_common.enums import (
    ContactMethod,
    ContactPreference,
    ContactRequestStatus,
    FuzzingLevel,
    ListingSort,
    ListingStatus,
    LivestockType,
)


class TestAllEnumsAreStr:
    def test_listing_status_is_str(self) -> None:
        assert isinstance(ListingStatus.ACTIVE, str)
        assert ListingStatus.ACTIVE == "active"

    def test_fuzzing_level_is_str(self) -> None:
        assert FuzzingLevel("high") is FuzzingLevel.HIGH


class TestValues:
    def test_listing_status(self) -> None:
        assert {s.value for s in ListingStatus} == {"active", "paused", "sold", "expired"}

    def test_livestock_type(self) -> None:
        assert {t.value for t in LivestockType} == {
            "poultry", "fish", "cattle", "goats", "sheep", "bees",
        }

    def test_contact_enums(self) -> None:
        assert {p.value for p in ContactPreference} == {"app", "phone", "both"}
        assert {m.value for m in ContactMethod} == {"app", "phone", "email"}
        assert {s.value for s in ContactRequestStatus} == {"pending", "approved", "denied"}

    def test_sort(self) -> None:
        assert {s.value for s in ListingSort} == {"newest", "price_asc", "price_desc"}
