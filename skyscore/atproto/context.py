"""Per-invocation run state.

Nothing here lives at module scope: every resolution builds its own
``RunContext`` and threads it through identity lookup, pagination and
aggregation, so concurrent runs never see each other's DID, endpoint or cache.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional
from urllib.parse import urlencode

from requests import Session

from skyscore.caching import RunCache
from skyscore.config import BLUESKY_PDS_MARKER, AppConfig
from skyscore.services.http import get_json

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass(frozen=True, slots=True)
class Identity:
    handle: str
    did: str
    service_endpoint: str

    @property
    def did_method(self) -> str:
        parts = self.did.split(":", 2)
        return parts[1] if len(parts) > 2 else ""

    @property
    def pds_type(self) -> str:
        return "Bluesky" if BLUESKY_PDS_MARKER in self.service_endpoint else "Third-party"


@dataclass(frozen=True, slots=True)
class PeriodWindow:
    """Analysis window; ``cutoff_time`` is fixed once at construction."""

    days: int
    cutoff_time: datetime

    @classmethod
    def ending_at(cls, now: datetime, days: int) -> "PeriodWindow":
        return cls(days=days, cutoff_time=now - timedelta(days=days))

    @property
    def week_count(self) -> int:
        return max(1, -(-self.days // 7))

    def week_index(self, timestamp: datetime) -> int:
        """Week bucket of *timestamp* counted from the cutoff, clamped to the window."""
        elapsed = (timestamp - self.cutoff_time).total_seconds()
        index = int(elapsed // (7 * 86400))
        return min(max(index, 0), self.week_count - 1)


@dataclass
class RunContext:
    config: AppConfig
    session: Optional[Session] = None
    cache: RunCache = field(default_factory=RunCache)
    clock: Clock = utc_now
    identity: Optional[Identity] = None

    def now(self) -> datetime:
        return self.clock()

    def with_identity(self, identity: Identity) -> "RunContext":
        """Return a copy bound to *identity*; the cache object is shared."""
        return dataclasses.replace(self, identity=identity)

    def require_identity(self) -> Identity:
        if self.identity is None:
            raise RuntimeError("RunContext has no resolved identity")
        return self.identity

    def get_json(self, url: str) -> Any:
        """Memoized GET for the lifetime of this run."""
        return self.cache.get_or_set(url, lambda: get_json(url, session=self.session))

    def public_url(self, method: str, **params: Any) -> str:
        return xrpc_url(self.config.public_api_base, method, params)

    def pds_url(self, method: str, **params: Any) -> str:
        return xrpc_url(self.require_identity().service_endpoint, method, params)


def xrpc_url(base: str, method: str, params: dict[str, Any]) -> str:
    query = urlencode([(key, value) for key, value in params.items() if value is not None])
    url = f"{base.rstrip('/')}/xrpc/{method}"
    return f"{url}?{query}" if query else url
