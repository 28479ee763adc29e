"""Simplified configuration management."""

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from . import __version__


_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _load_env_file() -> None:
    """Load .env from root directory if present."""
    env_path = _PROJECT_ROOT / ".env"
    if not env_path.is_file():
        return
    try:
        lines = env_path.read_text(encoding="utf-8").splitlines()
    except OSError:
        return
    for line in lines:
        stripped = line.strip()
        if stripped and not stripped.startswith("#") and "=" in stripped:
            key, value = stripped.split("=", 1)
            key, value = key.strip(), value.strip().strip("'\"")
            if key and value and key not in os.environ:
                os.environ[key] = value


_load_env_file()


DEFAULT_APP_NAME = "Cronhooks"
DEFAULT_DB_PATH = _PROJECT_ROOT / "data" / "cronhooks.db"


def _env_int(name: str, fallback: int) -> int:
    try:
        return int(os.getenv(name, str(fallback)))
    except (TypeError, ValueError):
        return fallback


def _env_float(name: str, fallback: float) -> float:
    try:
        return float(os.getenv(name, str(fallback)))
    except (TypeError, ValueError):
        return fallback


def _env_flag(name: str, fallback: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return fallback
    return raw.strip().lower() not in {"0", "false", "no", "off", ""}


def _get_port() -> int:
    """Get server port, checking the platform's PORT first, then CRONHOOKS_PORT."""
    port = os.getenv("PORT") or os.getenv("CRONHOOKS_PORT")
    if port:
        try:
            return int(port)
        except ValueError:
            pass
    return 8000


class Settings(BaseModel):
    """Application settings with lightweight env fallbacks."""

    # App metadata
    app_name: str = Field(default=DEFAULT_APP_NAME)
    app_version: str = Field(default=__version__)

    # Server runtime
    server_host: str = Field(default_factory=lambda: os.getenv("CRONHOOKS_HOST", "0.0.0.0"))
    server_port: int = Field(default_factory=_get_port)

    # Persistence
    database_path: Path = Field(
        default_factory=lambda: Path(os.getenv("CRONHOOKS_DB_PATH", str(DEFAULT_DB_PATH)))
    )

    # Dispatch loop
    scheduler_enabled: bool = Field(
        default_factory=lambda: _env_flag("CRONHOOKS_SCHEDULER_ENABLED", True)
    )
    tick_interval_seconds: float = Field(
        default_factory=lambda: _env_float("CRONHOOKS_TICK_INTERVAL", 60.0)
    )
    tick_tolerance_seconds: float = Field(
        default_factory=lambda: _env_float("CRONHOOKS_TICK_TOLERANCE", 5.0)
    )
    dispatch_timeout_seconds: float = Field(
        default_factory=lambda: _env_float("CRONHOOKS_DISPATCH_TIMEOUT", 10.0)
    )
    max_concurrent_dispatches: int = Field(
        default_factory=lambda: _env_int("CRONHOOKS_MAX_CONCURRENT_DISPATCHES", 16)
    )

    # Credentials
    api_token: Optional[str] = Field(default_factory=lambda: os.getenv("CRONHOOKS_API_TOKEN") or None)

    # HTTP behaviour
    cors_allow_origins_raw: str = Field(
        default_factory=lambda: os.getenv("CRONHOOKS_CORS_ALLOW_ORIGINS", "*")
    )
    enable_docs: bool = Field(default_factory=lambda: _env_flag("CRONHOOKS_ENABLE_DOCS", True))
    docs_url: Optional[str] = Field(default_factory=lambda: os.getenv("CRONHOOKS_DOCS_URL", "/docs"))

    log_level: str = Field(default_factory=lambda: os.getenv("CRONHOOKS_LOG_LEVEL", "INFO"))

    @property
    def cors_allow_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if self.cors_allow_origins_raw.strip() in {"", "*"}:
            return ["*"]
        return [origin.strip() for origin in self.cors_allow_origins_raw.split(",") if origin.strip()]

    @property
    def resolved_docs_url(self) -> Optional[str]:
        """Return documentation URL when docs are enabled."""
        return (self.docs_url or "/docs") if self.enable_docs else None

    @property
    def auth_enabled(self) -> bool:
        return bool(self.api_token)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
