import logging
from typing import Optional

import requests

from timething.api_client import ApiClient, FetchResult
from timething.config import Settings

logger = logging.getLogger(__name__)


class ForecastClient(ApiClient):
    """Forecast (scheduling) API: identity, projects, assignments."""

    service = "Forecast"

    @classmethod
    def from_settings(
        cls, settings: Settings, session: Optional[requests.Session] = None
    ) -> "ForecastClient":
        return cls(
            base_url=settings.forecast_base_url,
            access_token=settings.harvest_access_token,
            headers={"Forecast-Account-ID": settings.forecast_account_id},
            user_agent=settings.user_agent,
            timeout=settings.timeout,
            max_pages=settings.max_pages,
            per_page=settings.per_page,
            session=session,
        )

    # =================================================
    # IDENTITY
    # =================================================
    def whoami(self) -> FetchResult:
        return self.get_field("whoami", "current_user")

    # =================================================
    # PROJECTS
    # =================================================
    def projects(self) -> FetchResult:
        return self.get_field("projects", "projects")

    # =================================================
    # ASSIGNMENTS
    # =================================================
    def assignments(self, person_id, start: str, end: str) -> FetchResult:
        """
        Assignments of one person overlapping [start, end].
        Forecast normally answers with a flat list; total_pages is honoured
        when present.
        """
        return self.get_paginated(
            "assignments",
            "assignments",
            params={"person_id": person_id, "start_date": start, "end_date": end},
        )


def forecast_id(client: ForecastClient) -> Optional[int]:
    """Numeric Forecast person id of the token owner, or None."""
    result = client.whoami()
    if not result.ok:
        logger.error(f"❌ Forecast identity lookup failed: {result.error}")
        return None
    user = result.data if isinstance(result.data, dict) else {}
    return user.get("id") or None
