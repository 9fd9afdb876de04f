import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional

from dotenv import dotenv_values

from timething.errors import ConfigurationError

logger = logging.getLogger(__name__)


# =========================
# LOCATIONS
# =========================
def config_home() -> Path:
    """~/.timething unless TIMETHING_HOME points elsewhere."""
    override = os.getenv("TIMETHING_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".timething"


def config_file(home: Optional[Path] = None) -> Path:
    return (home or config_home()) / "config"


# =========================
# SERVICE DEFAULTS
# =========================
FORECAST_BASE_URL = "https://api.forecastapp.com/"
HARVEST_BASE_URL = "https://api.harvestapp.com/v2/"
USER_AGENT = "timething (Harvest/Forecast utilization report)"

DEFAULT_MAX_PAGES = 100
DEFAULT_PER_PAGE = 100
DEFAULT_TIMEOUT_SECONDS = 30.0

REQUIRED_KEYS = (
    "HARVEST_ACCESS_TOKEN",
    "HARVEST_ACCOUNT_ID",
    "FORECAST_ACCOUNT_ID",
)


@dataclass(frozen=True)
class Settings:
    harvest_access_token: str
    harvest_account_id: str
    forecast_account_id: str
    forecast_base_url: str = FORECAST_BASE_URL
    harvest_base_url: str = HARVEST_BASE_URL
    user_agent: str = USER_AGENT
    max_pages: int = DEFAULT_MAX_PAGES
    per_page: int = DEFAULT_PER_PAGE
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    cache_file: Path = Path.home() / ".timething" / "projects.json"
    log_level: str = "INFO"


def _read_values(path: Path) -> Dict[str, Optional[str]]:
    """
    Merge the config file with the process environment.
    Real environment variables win over the file.
    """
    values: Dict[str, Optional[str]] = {}
    if path.exists():
        values.update(dotenv_values(path))
    for key, value in os.environ.items():
        if key in REQUIRED_KEYS or key.startswith(("TIMETHING_", "FORECAST_", "HARVEST_")):
            values[key] = value
    return values


def _int_setting(values: Dict, key: str, default: int) -> int:
    raw = values.get(key)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}")
    if value < 1:
        raise ConfigurationError(f"{key} must be at least 1, got {value}")
    return value


def _float_setting(values: Dict, key: str, default: float) -> float:
    raw = values.get(key)
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}")


def load_settings(home: Optional[Path] = None) -> Settings:
    """
    Build the Settings object once at startup.
    Raises ConfigurationError when a required key is missing (FAIL FAST).
    """
    home = home or config_home()
    values = _read_values(config_file(home))

    missing = [key for key in REQUIRED_KEYS if not values.get(key)]
    if missing:
        raise ConfigurationError(
            f"Missing required configuration values: {', '.join(missing)}"
        )

    cache_file = values.get("TIMETHING_CACHE_FILE")

    return Settings(
        harvest_access_token=values["HARVEST_ACCESS_TOKEN"],
        harvest_account_id=values["HARVEST_ACCOUNT_ID"],
        forecast_account_id=values["FORECAST_ACCOUNT_ID"],
        forecast_base_url=values.get("FORECAST_BASE_URL") or FORECAST_BASE_URL,
        harvest_base_url=values.get("HARVEST_BASE_URL") or HARVEST_BASE_URL,
        max_pages=_int_setting(values, "TIMETHING_MAX_PAGES", DEFAULT_MAX_PAGES),
        per_page=_int_setting(values, "TIMETHING_PER_PAGE", DEFAULT_PER_PAGE),
        timeout=_float_setting(values, "TIMETHING_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
        cache_file=Path(cache_file).expanduser() if cache_file else home / "projects.json",
        log_level=values.get("TIMETHING_LOG_LEVEL") or "INFO",
    )


# =========================
# INTERACTIVE SETUP
# =========================
def write_config(
    path: Path,
    harvest_access_token: str,
    harvest_account_id: str,
    forecast_account_id: str,
) -> Path:
    """Overwrite the config file with the three credentials."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        f"HARVEST_ACCESS_TOKEN={harvest_access_token}\n"
        f"HARVEST_ACCOUNT_ID={harvest_account_id}\n"
        f"FORECAST_ACCOUNT_ID={forecast_account_id}\n",
        encoding="utf-8",
    )
    logger.info(f"💾 Configuration written to {path}")
    return path


def run_config_wizard(
    path: Optional[Path] = None,
    prompt: Optional[Callable[[str], str]] = None,
) -> Path:
    """Ask for each value on its own line, then overwrite the config file."""
    path = path or config_file()
    prompt = prompt or input

    print("Please enter your Harvest account ID:")
    harvest_account_id = prompt("").strip()

    print("Please enter your Forecast account ID:")
    forecast_account_id = prompt("").strip()

    print("Please enter your Harvest access token:")
    harvest_access_token = prompt("").strip()

    return write_config(
        path,
        harvest_access_token=harvest_access_token,
        harvest_account_id=harvest_account_id,
        forecast_account_id=forecast_account_id,
    )
