"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Union

from .errors import ConfigError

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"
LOGS_DIR = PROJECT_ROOT / "logs"
DEFAULT_DB_PATH = DATA_DIR / "ratebot.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


@dataclass(frozen=True)
class Settings:
    """Runtime settings read from the environment."""

    api_token: str
    api_url: str
    admin_id: int | None = None
    poll_limit: int = 5
    poll_interval_ms: int = 1000
    poll_timeout: int = 0
    announce_delay: float = 5.0
    max_branches: int = 10
    enrich_branches: bool = True
    http_timeout: float = 10.0
    database_url: str | None = None
    api_host: str = "localhost"
    api_port: int = 8000


def _number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


def _flag(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ConfigError(f"{name} must be true or false, got {raw!r}")


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """
    Build Settings from environment variables.

    Args:
        env: Mapping to read from. Defaults to os.environ.

    Raises:
        ConfigError: TELEGRAM_API_TOKEN or TELEGRAM_API_URL is missing,
                     or a numeric variable cannot be parsed.
    """
    if env is None:
        env = os.environ

    api_token = env.get("TELEGRAM_API_TOKEN")
    if not api_token:
        raise ConfigError("TELEGRAM_API_TOKEN environment variable required.")

    api_url = env.get("TELEGRAM_API_URL")
    if not api_url:
        raise ConfigError("TELEGRAM_API_URL environment variable required.")

    return Settings(
        api_token=api_token,
        api_url=api_url.rstrip("/"),
        admin_id=_number(env, "ADMIN_ID", None, int),
        poll_limit=_number(env, "POLL_LIMIT", 5, int),
        poll_interval_ms=_number(env, "POLL_INTERVAL_MS", 1000, int),
        poll_timeout=_number(env, "POLL_TIMEOUT", 0, int),
        announce_delay=_number(env, "ANNOUNCE_DELAY_SECONDS", 5.0, float),
        max_branches=_number(env, "MAX_BRANCHES", 10, int),
        enrich_branches=_flag(env, "ENRICH_BRANCHES", True),
        http_timeout=_number(env, "HTTP_TIMEOUT", 10.0, float),
        database_url=env.get("DATABASE_URL") or None,
        api_host=env.get("API_HOST", "localhost"),
        api_port=_number(env, "API_PORT", 8000, int),
    )
