"""
Shared HTTP client for the Harvest and Forecast APIs.

1. requests.Session with the bearer token and account header set once
2. Every call returns a FetchResult instead of raising, so callers decide
   between fallback and failure
3. Page-numbered pagination with an explicit page cap; hitting the cap
   with pages left is flagged as truncated
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from timething.errors import FetchError

logger = logging.getLogger(__name__)


# ============================================================================
# RESULT TYPE
# ============================================================================


@dataclass
class FetchResult:
    data: Any = None
    error: Optional[FetchError] = None
    truncated: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error: FetchError) -> "FetchResult":
        return cls(data=None, error=error)


# ============================================================================
# BASE CLIENT
# ============================================================================


class ApiClient:
    """Bearer-token JSON client bound to one base URL."""

    service = "api"

    def __init__(
        self,
        base_url: str,
        access_token: str,
        headers: Optional[Dict[str, str]] = None,
        user_agent: str = "timething",
        timeout: float = 30,
        max_pages: int = 100,
        per_page: int = 100,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = timeout
        self.max_pages = max_pages
        self.per_page = per_page

        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {access_token}",
                "User-Agent": user_agent,
                "Accept": "application/json",
            }
        )
        if headers:
            self.session.headers.update(headers)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        self.session.close()

    def url(self, endpoint: str) -> str:
        return f"{self.base_url}{endpoint.lstrip('/')}"

    # ------------------------------------------------------------------
    # Core HTTP
    # ------------------------------------------------------------------

    def get(self, endpoint: str, params: Optional[Dict] = None) -> FetchResult:
        """GET a JSON document. Never raises for transport/HTTP/JSON problems."""
        url = self.url(endpoint)
        logger.debug(f"GET {url} params={params}")

        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            return FetchResult.failure(FetchError(FetchError.TRANSPORT, str(e), url=url))

        if not 200 <= resp.status_code < 300:
            return FetchResult.failure(
                FetchError(
                    FetchError.HTTP,
                    f"{self.service} error {resp.status_code}: {resp.text[:200]}",
                    url=url,
                    status=resp.status_code,
                )
            )

        try:
            data = resp.json()
        except ValueError as e:
            return FetchResult.failure(FetchError(FetchError.DECODE, str(e), url=url))

        return FetchResult(data=data)

    def get_field(
        self, endpoint: str, field: str, params: Optional[Dict] = None
    ) -> FetchResult:
        """GET and pull one top-level field out of the document."""
        result = self.get(endpoint, params)
        if not result.ok:
            return result
        if not isinstance(result.data, dict) or field not in result.data:
            return FetchResult.failure(
                FetchError(
                    FetchError.SHAPE,
                    f"response has no '{field}' field",
                    url=self.url(endpoint),
                )
            )
        return FetchResult(data=result.data[field])

    def get_paginated(
        self, endpoint: str, field: str, params: Optional[Dict] = None
    ) -> FetchResult:
        """
        Walk page=1..total_pages collecting `field` from every page.

        - next page is response["page"] + 1 when the service echoes it
        - a response without total_pages is a single flat page
        - stops at max_pages; pages left over → truncated=True
        """
        items: List[Dict] = []
        page = 1
        pages = 1

        while page <= pages:
            if page > self.max_pages:
                logger.warning(
                    f"⚠️ {self.service} {endpoint}: stopped at the {self.max_pages}-page cap "
                    f"with {pages - self.max_pages} page(s) unread, results are truncated"
                )
                return FetchResult(data=items, truncated=True)

            query = dict(params or {})
            query.update({"page": page, "per_page": self.per_page})

            result = self.get(endpoint, query)
            if not result.ok:
                return result

            data = result.data
            if not isinstance(data, dict) or not isinstance(data.get(field), list):
                return FetchResult.failure(
                    FetchError(
                        FetchError.SHAPE,
                        f"page {page} has no '{field}' list",
                        url=self.url(endpoint),
                    )
                )

            items.extend(data[field])

            total_pages = data.get("total_pages")
            if total_pages is None:
                break
            pages = int(total_pages)
            current = data.get("page")
            # never step backwards, a stuck "page" echo would loop forever
            page = max(int(current) + 1, page + 1) if current is not None else page + 1

        return FetchResult(data=items)
