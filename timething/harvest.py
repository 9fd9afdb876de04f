import logging
from typing import Optional

import requests

from timething.api_client import ApiClient, FetchResult
from timething.config import Settings

logger = logging.getLogger(__name__)


class HarvestClient(ApiClient):
    """Harvest (time tracking) API v2: identity, time entries, project assignments."""

    service = "Harvest"

    @classmethod
    def from_settings(
        cls, settings: Settings, session: Optional[requests.Session] = None
    ) -> "HarvestClient":
        return cls(
            base_url=settings.harvest_base_url,
            access_token=settings.harvest_access_token,
            headers={"Harvest-Account-ID": settings.harvest_account_id},
            user_agent=settings.user_agent,
            timeout=settings.timeout,
            max_pages=settings.max_pages,
            per_page=settings.per_page,
            session=session,
        )

    def me(self) -> FetchResult:
        return self.get("users/me")

    def time_entries(self, user_id, start: str, end: str) -> FetchResult:
        return self.get_paginated(
            "time_entries",
            "time_entries",
            params={"user_id": user_id, "from": start, "to": end},
        )

    def project_assignments(self) -> FetchResult:
        """Projects the current user is assigned to, with client and task details."""
        return self.get_paginated("users/me/project_assignments", "project_assignments")


def harvest_id(client: HarvestClient) -> Optional[int]:
    """Numeric Harvest user id of the token owner, or None."""
    result = client.me()
    if not result.ok:
        logger.error(f"❌ Harvest identity lookup failed: {result.error}")
        return None
    user = result.data if isinstance(result.data, dict) else {}
    return user.get("id") or None
