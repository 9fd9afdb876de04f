"""
Forecast project list: on-disk cache and the Forecast ↔ Harvest id index.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from timething.forecast import ForecastClient

logger = logging.getLogger(__name__)

KEYED_BY_FORECAST = "forecast"
KEYED_BY_HARVEST = "harvest"


@dataclass(frozen=True)
class ProjectSummary:
    id: int
    name: Optional[str]
    code: Optional[str]
    harvest_id: int
    start_date: Optional[str] = None
    end_date: Optional[str] = None


# -----------------------------------------------------------------------------
# Cache
# -----------------------------------------------------------------------------
def read_cache(cache_path: Path) -> Optional[List[Dict]]:
    """Cached project list, or None when the file is missing or unreadable."""
    if not cache_path.exists():
        return None
    try:
        with open(cache_path, encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"⚠️ Ignoring unreadable project cache {cache_path}: {e}")
        return None

    projects = payload.get("projects") if isinstance(payload, dict) else None
    if not isinstance(projects, list):
        logger.warning(f"⚠️ Ignoring project cache {cache_path}: no 'projects' list")
        return None
    return projects


def write_cache(cache_path: Path, projects: List[Dict]):
    # permission errors propagate, nothing can proceed without the cache dir
    cache_path.parent.mkdir(parents=True, exist_ok=True)
    with open(cache_path, "w", encoding="utf-8") as f:
        json.dump({"projects": projects}, f)


def load_projects(
    client: ForecastClient, cache_path: Path, force: bool = False
) -> List[Dict]:
    """
    Raw Forecast projects.

    1. cache file, unless force
    2. live fetch, which overwrites the cache
    3. fetch failed → stale cache if any (even when forced), else []
    """
    if not force:
        cached = read_cache(cache_path)
        if cached is not None:
            logger.debug(f"Loaded {len(cached)} projects from {cache_path}")
            return cached

    logger.info("🔄 Fetching Forecast projects")
    result = client.projects()
    if result.ok and isinstance(result.data, list):
        write_cache(cache_path, result.data)
        logger.info(f"✅ Cached {len(result.data)} Forecast projects")
        return result.data

    logger.error(f"❌ Could not fetch Forecast projects: {result.error}")
    stale = read_cache(cache_path)
    if stale is not None:
        logger.warning("⚠️ Using previously cached project list")
        return stale
    return []


# -----------------------------------------------------------------------------
# Index
# -----------------------------------------------------------------------------
def build_index(
    raw_projects: List[Dict], keyed_by: str = KEYED_BY_FORECAST
) -> Dict[int, ProjectSummary]:
    """
    Active Forecast projects that are linked to Harvest.

    keyed_by="forecast" → keys are Forecast project ids (what assignments use)
    keyed_by="harvest"  → keys are Harvest project ids (what time entries use)
    """
    if keyed_by not in (KEYED_BY_FORECAST, KEYED_BY_HARVEST):
        raise ValueError(f"keyed_by must be 'forecast' or 'harvest', got {keyed_by!r}")

    index: Dict[int, ProjectSummary] = {}
    for project in raw_projects or []:
        if not project.get("harvest_id") or project.get("archived"):
            continue

        summary = ProjectSummary(
            id=project.get("id"),
            name=project.get("name"),
            code=project.get("code"),
            harvest_id=project["harvest_id"],
            start_date=project.get("start_date"),
            end_date=project.get("end_date"),
        )
        key = summary.id if keyed_by == KEYED_BY_FORECAST else summary.harvest_id
        index[key] = summary

    return index
