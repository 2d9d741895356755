"""HTTP page fetcher for ListingCache.refresh.

    async with ListingsApiClient("https://api.example.org", token) as client:
        await cache.refresh(client.fetch_page)
"""

from types import TracebackType
from typing import Any

import httpx

from src.lm_listing.application.schemas import ListingPageResponse
from src.lm_listing.domain.models import ListingFilter


class ListingsApiError(Exception):
    """The API answered with a non-zero envelope code."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")


def _filter_params(filters: ListingFilter | None) -> dict[str, Any]:
    if filters is None:
        return {}
    params = {
        "livestock_type": filters.livestock_type,
        "species": filters.species,
        "min_price": filters.min_price,
        "max_price": filters.max_price,
        "region": filters.region,
        "location": filters.location,
    }
    return {k: v for k, v in params.items() if v is not None}


class ListingsApiClient:
    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            transport=transport,
            timeout=timeout,
        )

    async def fetch_page(
        self, page: int, page_size: int, filters: ListingFilter | None = None
    ) -> ListingPageResponse:
        """GET /api/v1/listings.

        Raises:
            httpx.HTTPStatusError: non-2xx response.
            ListingsApiError: 2xx response carrying an error envelope.
        """
        resp = await self._client.get(
            "/api/v1/listings",
            params={"page": page, "page_size": page_size, **_filter_params(filters)},
        )
        resp.raise_for_status()
        body = resp.json()
        if body.get("code", 0) != 0:
            raise ListingsApiError(body["code"], body.get("message", ""))
        return ListingPageResponse.model_validate(body["data"])

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ListingsApiClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
