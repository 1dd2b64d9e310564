"""Shared pytest fixtures for Skyscore tests.

Provides a fake ``requests.Session`` that answers canned JSON by URL, a
test configuration and a fixed clock so that test modules never touch the
network and always see the same "now".
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Tuple
from urllib.parse import parse_qsl, urlsplit

import pytest
import requests

from skyscore.atproto import RunContext, xrpc_url
from skyscore.atproto.context import Identity
from skyscore.config import AppConfig

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
PUBLIC_API = "https://public.api.test"
PLC = "https://plc.test"
PDS = "https://pds.bsky.network"
DID = "did:plc:alice123"
HANDLE = "alice.bsky.social"


# ---------------------------------------------------------------------------
# Fake HTTP layer
# ---------------------------------------------------------------------------


class FakeResponse:
    """Minimal mock that quacks like a ``requests.Response``."""

    def __init__(self, payload: Any = None, status_code: int = 200, text: str | None = None):
        self.status_code = status_code
        self._payload = payload
        self._text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self._text if self._text is not None else json.dumps(self._payload)

    def json(self) -> Any:
        if self._text is not None:
            return json.loads(self._text)
        return self._payload


def _route_key(url: str) -> Tuple[str, Tuple[Tuple[str, str], ...]]:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}{parts.path}", tuple(sorted(parse_qsl(parts.query)))


class FakeSession:
    """Serves canned responses keyed by URL; query order does not matter.

    A route value may be a JSON payload, a :class:`FakeResponse`, an exception
    instance to raise, or a callable receiving the request kwargs.
    """

    def __init__(self, routes: Dict[str, Any] | None = None) -> None:
        self.routes: Dict[Tuple[str, Tuple[Tuple[str, str], ...]], Any] = {}
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []
        for url, value in (routes or {}).items():
            self.add(url, value)

    def add(self, url: str, value: Any) -> None:
        self.routes[_route_key(url)] = value

    def request(self, method: str, url: str, timeout: Any = None, **kwargs: Any) -> FakeResponse:
        self.calls.append((method, url, kwargs))
        value = self.routes.get(_route_key(url))
        if value is None:
            return FakeResponse({"error": "NotFound"}, status_code=404)
        if isinstance(value, Exception):
            raise value
        if callable(value):
            value = value(**kwargs)
        if isinstance(value, FakeResponse):
            return value
        return FakeResponse(value)

    def urls(self, method: str = "GET") -> List[str]:
        return [url for verb, url, _ in self.calls if verb == method]


# ---------------------------------------------------------------------------
# URL builders mirroring the client's requests
# ---------------------------------------------------------------------------


def public(method: str, **params: Any) -> str:
    return xrpc_url(PUBLIC_API, method, params)


def pds(method: str, **params: Any) -> str:
    return xrpc_url(PDS, method, params)


def records_url(collection: str, cursor: str | None = None, did: str = DID, limit: int = 100) -> str:
    return pds("com.atproto.repo.listRecords", repo=did, collection=collection, limit=limit, cursor=cursor)


def feed_url(cursor: str | None = None, did: str = DID, limit: int = 100) -> str:
    return public("app.bsky.feed.getAuthorFeed", actor=did, limit=limit, cursor=cursor)


def blobs_url(cursor: str | None = None, did: str = DID, limit: int = 1000) -> str:
    return pds("com.atproto.sync.listBlobs", did=did, limit=limit, cursor=cursor)


def stamp(days_ago: float) -> str:
    return (NOW - timedelta(days=days_ago)).isoformat().replace("+00:00", "Z")


def make_config(tmp_path: Path | None = None, **overrides: Any) -> AppConfig:
    values: Dict[str, Any] = dict(
        base_dir=tmp_path or Path("."),
        public_api_base=PUBLIC_API,
        plc_directory=PLC,
        scoring_url="",
        scoring_timeout=5.0,
        windows=(30, 90),
        records_page_size=100,
        feed_page_size=100,
        blobs_page_size=1000,
        max_pages=50,
        http_timeout=5.0,
        http_connect_timeout=1.0,
        http_retries=0,
        http_backoff_factor=0.0,
        log_level="DEBUG",
        log_json=False,
        sentry_dsn="",
        sentry_environment="test",
    )
    values.update(overrides)
    return AppConfig(**values)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def config(tmp_path: Path) -> AppConfig:
    return make_config(tmp_path)


@pytest.fixture()
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture()
def clock() -> Callable[[], datetime]:
    return lambda: NOW


@pytest.fixture()
def ctx(config: AppConfig, session: FakeSession, clock) -> RunContext:
    """Run context already bound to the test identity."""
    base = RunContext(config=config, session=session, clock=clock)
    return base.with_identity(Identity(handle=HANDLE, did=DID, service_endpoint=PDS))


@pytest.fixture()
def network_error() -> requests.ConnectionError:
    return requests.ConnectionError("connection refused")
