"""Application configuration helpers.

This module encapsulates environment-driven configuration for Skyscore so
settings can be loaded via a structured `AppConfig` dataclass and injected into
the pipeline, the Flask app and the CLI.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv

from skyscore.services.http import HttpSettings

BLUESKY_NAMESPACE = "app.bsky"
DEFAULT_HANDLE_DOMAIN = "bsky.social"
BLUESKY_PDS_MARKER = "bsky.network"
NETWORK_REFERENCE_DATE = "2022-11-17T00:35:16.391Z"

_DEFAULT_WINDOWS = (30, 90)


def _getenv_bool(name: str, default: bool = False) -> bool:
    """Return a boolean flag from environment variables."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


def _load_dotenv(base_dir: Path) -> None:
    env_path = base_dir / ".env"
    if env_path.exists():
        load_dotenv(env_path)


def _parse_windows(raw: str | None) -> Tuple[int, ...]:
    if not raw:
        return _DEFAULT_WINDOWS
    days = []
    for token in raw.split(","):
        token = token.strip()
        if not token:
            continue
        try:
            value = int(token)
        except ValueError:
            continue
        if value > 0 and value not in days:
            days.append(value)
    return tuple(days) or _DEFAULT_WINDOWS


@dataclass(frozen=True)
class AppConfig:
    """Strongly typed application configuration container."""

    base_dir: Path
    public_api_base: str
    plc_directory: str
    scoring_url: str
    scoring_timeout: float
    windows: Tuple[int, ...]
    records_page_size: int
    feed_page_size: int
    blobs_page_size: int
    max_pages: int
    http_timeout: float
    http_connect_timeout: float
    http_retries: int
    http_backoff_factor: float
    log_level: str
    log_json: bool
    sentry_dsn: str
    sentry_environment: str
    logs_dir: Path = field(init=False)
    log_file_path: Path = field(init=False)

    def __post_init__(self) -> None:
        logs_dir = self.base_dir / "logs"
        object.__setattr__(self, "logs_dir", logs_dir)
        object.__setattr__(self, "log_file_path", logs_dir / "skyscore.log")

    @classmethod
    def load(cls, base_dir: Optional[Path] = None) -> "AppConfig":
        base_dir = base_dir or Path(os.getenv("SKYSCORE_HOME", str(Path.cwd())))
        _load_dotenv(base_dir)

        return cls(
            base_dir=base_dir,
            public_api_base=os.getenv("SKYSCORE_PUBLIC_API", "https://public.api.bsky.app").rstrip("/"),
            plc_directory=os.getenv("SKYSCORE_PLC_DIRECTORY", "https://plc.directory").rstrip("/"),
            scoring_url=(os.getenv("SKYSCORE_SCORING_URL") or "").strip(),
            scoring_timeout=float(os.getenv("SKYSCORE_SCORING_TIMEOUT", "30") or 30),
            windows=_parse_windows(os.getenv("SKYSCORE_WINDOWS")),
            records_page_size=max(1, int(os.getenv("SKYSCORE_RECORDS_PAGE_SIZE", "100") or 100)),
            feed_page_size=max(1, int(os.getenv("SKYSCORE_FEED_PAGE_SIZE", "100") or 100)),
            blobs_page_size=max(1, int(os.getenv("SKYSCORE_BLOBS_PAGE_SIZE", "1000") or 1000)),
            max_pages=max(1, int(os.getenv("SKYSCORE_MAX_PAGES", "50") or 50)),
            http_timeout=float(os.getenv("SKYSCORE_HTTP_TIMEOUT", "30") or 30),
            http_connect_timeout=float(os.getenv("SKYSCORE_HTTP_CONNECT_TIMEOUT", "10") or 10),
            http_retries=int(os.getenv("SKYSCORE_HTTP_RETRIES", "3") or 3),
            http_backoff_factor=float(os.getenv("SKYSCORE_HTTP_BACKOFF", "0.5") or 0.5),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_json=_getenv_bool("SKYSCORE_LOG_JSON", False),
            sentry_dsn=os.getenv("SENTRY_DSN", ""),
            sentry_environment=os.getenv("SENTRY_ENVIRONMENT", "local"),
        )

    def http_settings(self) -> HttpSettings:
        return HttpSettings(
            timeout=self.http_timeout,
            connect_timeout=self.http_connect_timeout,
            retries=self.http_retries,
            backoff_factor=self.http_backoff_factor,
        )

    def to_flask_config(self) -> Dict[str, object]:
        """Return a dict with settings that should live inside `Flask.config`."""
        return {
            "JSON_AS_ASCII": False,
            "SKYSCORE_WINDOWS": list(self.windows),
            "SKYSCORE_MAX_PAGES": self.max_pages,
            "SKYSCORE_SCORING_ENABLED": bool(self.scoring_url),
            "HTTP_DEFAULT_TIMEOUT": self.http_timeout,
            "HTTP_CONNECT_TIMEOUT": self.http_connect_timeout,
            "HTTP_RETRIES": self.http_retries,
            "HTTP_BACKOFF_FACTOR": self.http_backoff_factor,
            "LOG_LEVEL": self.log_level,
            "SENTRY_DSN": self.sentry_dsn,
            "SENTRY_ENVIRONMENT": self.sentry_environment,
        }


def load_app_config(base_dir: Optional[Path] = None) -> AppConfig:
    """Convenience shortcut mirroring legacy callers."""
    return AppConfig.load(base_dir=base_dir)
