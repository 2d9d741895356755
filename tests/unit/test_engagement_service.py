"""Unit tests for EngagementService: view/contact dedup, responses, analytics."""

import pytest

from src.lm_common.errors import (
    ContactOwnListingError,
    ContactRequestNotFoundError,
    ListingNotFoundError,
    NotListingOwnerError,
    RequestAlreadyRespondedError,
)
from src.lm_engagement.application.schemas import ContactRequestCreate
from src.lm_engagement.application.service import (
    EngagementService,
    conversion_rate,
    viewer_key,
)
from src.lm_listing.application.schemas import CreateListingRequest
from src.lm_listing.application.service import ListingApplicationService


def _create_req(**overrides) -> CreateListingRequest:
    body = {
        "livestock_type": "poultry",
        "species": "Broiler",
        "quantity": 100,
        "min_price": 10,
        "max_price": 15,
        "location": {"latitude": 7.3775, "longitude": 3.9470},
    }
    body.update(overrides)
    return CreateListingRequest(**body)


@pytest.fixture
def listings(listing_repo, engagement_repo, notifier, clock, rng) -> ListingApplicationService:
    return ListingApplicationService(
        repo=listing_repo, engagement_repo=engagement_repo,
        notifier=notifier, clock=clock, rng=rng,
    )


@pytest.fixture
def svc(engagement_repo, listing_repo, notifier, clock) -> EngagementService:
    return EngagementService(
        repo=engagement_repo, listing_repo=listing_repo, notifier=notifier, clock=clock
    )


@pytest.fixture
async def listing_id(listings, db) -> str:
    out = await listings.create_listing(db, "seller-1", _create_req())
    return out.id


class TestHelpers:
    def test_viewer_key_prefers_user(self) -> None:
        assert viewer_key("buyer-1", "10.0.0.1") == "buyer-1"

    def test_viewer_key_falls_back_to_ip(self) -> None:
        assert viewer_key(None, "10.0.0.1") == "ip:10.0.0.1"

    def test_viewer_key_anonymous(self) -> None:
        assert viewer_key(None, None) is None

    def test_conversion_rate(self) -> None:
        assert conversion_rate(0, 0) == 0.0
        assert conversion_rate(3, 1) == 33.33
        assert conversion_rate(4, 4) == 100.0


class TestRecordView:
    async def test_same_viewer_same_day_counted_once(
        self, svc, db, listing_id, marketplace
    ) -> None:
        first = await svc.record_view(db, listing_id, "buyer-1", None)
        second = await svc.record_view(db, listing_id, "buyer-1", None)

        assert (first, second) == (True, False)
        assert marketplace.listings[listing_id].view_count == 1

    async def test_next_utc_day_counts_again(
        self, svc, db, listing_id, marketplace, clock
    ) -> None:
        await svc.record_view(db, listing_id, "buyer-1", None)
        clock.advance(days=1)

        assert await svc.record_view(db, listing_id, "buyer-1", None) is True
        assert marketplace.listings[listing_id].view_count == 2

    async def test_anonymous_deduped_by_ip(self, svc, db, listing_id, marketplace) -> None:
        assert await svc.record_view(db, listing_id, None, "10.0.0.1") is True
        assert await svc.record_view(db, listing_id, None, "10.0.0.1") is False
        assert await svc.record_view(db, listing_id, None, "10.0.0.2") is True
        assert marketplace.listings[listing_id].view_count == 2

    async def test_user_and_ip_keys_are_distinct(self, svc, db, listing_id, marketplace) -> None:
        await svc.record_view(db, listing_id, None, "10.0.0.1")
        await svc.record_view(db, listing_id, "buyer-1", "10.0.0.1")

        assert marketplace.listings[listing_id].view_count == 2

    async def test_no_identity_not_counted(self, svc, db, listing_id, marketplace) -> None:
        assert await svc.record_view(db, listing_id, None, None) is False
        assert marketplace.listings[listing_id].view_count == 0

    async def test_missing_listing_not_counted(self, svc, db) -> None:
        assert await svc.record_view(db, "nope", "buyer-1", None) is False


class TestRequestContact:
    async def test_first_request_created_and_notified(
        self, svc, db, listing_id, notifier, marketplace
    ) -> None:
        out = await svc.request_contact(
            db, listing_id, "buyer-1", ContactRequestCreate(message="Still available?")
        )

        assert out.created is True
        assert marketplace.listings[listing_id].contact_count == 1
        assert notifier.sent == [("contact_requested", "seller-1", listing_id, out.request_id)]

    async def test_repeat_returns_same_id_without_second_notice(
        self, svc, db, listing_id, notifier, marketplace
    ) -> None:
        first = await svc.request_contact(db, listing_id, "buyer-1", ContactRequestCreate())
        second = await svc.request_contact(
            db, listing_id, "buyer-1", ContactRequestCreate(message="Hello again")
        )

        assert second.request_id == first.request_id
        assert second.created is False
        assert marketplace.listings[listing_id].contact_count == 1
        assert len(notifier.sent) == 1

    async def test_cannot_contact_own_listing(self, svc, db, listing_id) -> None:
        with pytest.raises(ContactOwnListingError):
            await svc.request_contact(db, listing_id, "seller-1", ContactRequestCreate())

    async def test_expired_listing(self, svc, db, listing_id, clock) -> None:
        clock.advance(days=31)

        with pytest.raises(ListingNotFoundError):
            await svc.request_contact(db, listing_id, "buyer-1", ContactRequestCreate())

    async def test_missing_listing(self, svc, db) -> None:
        with pytest.raises(ListingNotFoundError):
            await svc.request_contact(db, "nope", "buyer-1", ContactRequestCreate())

    async def test_contact_details_stored(self, svc, db, listing_id) -> None:
        await svc.request_contact(
            db, listing_id, "buyer-1",
            ContactRequestCreate(contact_method="email", email="ada@example.com"),
        )

        status = await svc.has_contacted(db, listing_id, "buyer-1")

        assert status.has_contacted is True
        assert status.request is not None
        assert status.request.contact_method == "email"
        assert status.request.email == "ada@example.com"
        assert status.request.listing_species == "Broiler"

    async def test_has_not_contacted(self, svc, db, listing_id) -> None:
        status = await svc.has_contacted(db, listing_id, "buyer-9")

        assert status.has_contacted is False
        assert status.request is None


class TestRespondToRequest:
    async def _request(self, svc, db, listing_id, buyer="buyer-1") -> str:
        out = await svc.request_contact(db, listing_id, buyer, ContactRequestCreate())
        return out.request_id

    async def test_approve(self, svc, db, listing_id, notifier, clock) -> None:
        request_id = await self._request(svc, db, listing_id)

        out = await svc.respond_to_request(db, request_id, "seller-1", True, "Call me")

        assert out.status == "approved"
        assert out.response_message == "Call me"
        assert out.responded_at == clock.now
        assert notifier.sent[-1] == ("request_answered", "buyer-1", request_id, "approved")

    async def test_deny(self, svc, db, listing_id) -> None:
        request_id = await self._request(svc, db, listing_id)

        out = await svc.respond_to_request(db, request_id, "seller-1", False, None)

        assert out.status == "denied"

    async def test_only_once(self, svc, db, listing_id) -> None:
        request_id = await self._request(svc, db, listing_id)
        await svc.respond_to_request(db, request_id, "seller-1", True, None)

        with pytest.raises(RequestAlreadyRespondedError):
            await svc.respond_to_request(db, request_id, "seller-1", False, None)

    async def test_only_listing_owner(self, svc, db, listing_id) -> None:
        request_id = await self._request(svc, db, listing_id)

        with pytest.raises(NotListingOwnerError):
            await svc.respond_to_request(db, request_id, "buyer-1", True, None)

    async def test_unknown_request(self, svc, db) -> None:
        with pytest.raises(ContactRequestNotFoundError):
            await svc.respond_to_request(db, "CR-missing", "seller-1", True, None)


class TestListings:
    async def test_seller_inbox_and_buyer_outbox(self, svc, db, listing_id) -> None:
        a = await svc.request_contact(db, listing_id, "buyer-1", ContactRequestCreate())
        b = await svc.request_contact(db, listing_id, "buyer-2", ContactRequestCreate())
        await svc.respond_to_request(db, a.request_id, "seller-1", True, None)

        pending = await svc.list_requests_for_seller(db, "seller-1", "pending")
        everything = await svc.list_requests_for_seller(db, "seller-1", "all")
        sent = await svc.list_requests_for_buyer(db, "buyer-2")

        assert [r.id for r in pending] == [b.request_id]
        assert {r.id for r in everything} == {a.request_id, b.request_id}
        assert [r.id for r in sent] == [b.request_id]


class TestAnalytics:
    async def test_counts_and_rate(self, svc, db, listing_id) -> None:
        for buyer in ("buyer-1", "buyer-2", "buyer-3"):
            await svc.record_view(db, listing_id, buyer, None)
        await svc.request_contact(db, listing_id, "buyer-1", ContactRequestCreate())

        out = await svc.get_analytics(db, listing_id, "seller-1")

        assert out.view_count == 3
        assert out.contact_count == 1
        assert out.conversion_rate == 33.33

    async def test_owner_only(self, svc, db, listing_id) -> None:
        with pytest.raises(NotListingOwnerError):
            await svc.get_analytics(db, listing_id, "buyer-1")


class TestMarketplaceScenario:
    async def test_create_view_contact(
        self, listings, svc, db, marketplace, engagement_repo
    ) -> None:
        created = await listings.create_listing(db, "seller-1", _create_req())
        assert created.status == "active"
        assert created.quantity == 100
        assert (created.min_price, created.max_price) == (10, 15)

        await svc.record_view(db, created.id, "viewer-A", None)
        await svc.record_view(db, created.id, "viewer-A", None)
        assert marketplace.listings[created.id].view_count == 1

        await svc.record_view(db, created.id, "viewer-B", None)
        assert marketplace.listings[created.id].view_count == 2

        first = await svc.request_contact(db, created.id, "buyer-1", ContactRequestCreate())
        second = await svc.request_contact(db, created.id, "buyer-1", ContactRequestCreate())
        assert first.request_id == second.request_id
        assert len(marketplace.contacts) == 1
        assert marketplace.listings[created.id].contact_count == 1

        assert await engagement_repo.find_counter_mismatches(db) == []
