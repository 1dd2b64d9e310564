"""Shared requests session for XRPC reads, DID lookups and scoring calls.

Every upstream read in a run is a GET, so those are retried on transport
errors and on 429/5xx answers. The scoring POST is sent once: retrying it
could score the same draft twice.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Tuple

import requests
from requests import Response, Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from skyscore.errors import HttpError

_LOGGER = logging.getLogger("skyscore.http")

USER_AGENT = "skyscore/0.1 (+https://bsky.app)"
RETRY_METHODS = frozenset({"GET", "HEAD"})


@dataclass(frozen=True)
class HttpSettings:
    """Timeouts and retry policy of the shared session."""

    timeout: float = 30.0  # read timeout, seconds
    connect_timeout: float = 10.0
    retries: int = 3
    backoff_factor: float = 0.5
    status_forcelist: Tuple[int, ...] = (429, 500, 502, 503, 504)

    @property
    def timeouts(self) -> tuple[float, float]:
        connect = max(0.1, float(self.connect_timeout))
        return connect, max(connect + 1.0, float(self.timeout))


_SETTINGS = HttpSettings()
_SESSION: Session | None = None


def build_retry(settings: HttpSettings) -> Retry:
    retries = max(0, settings.retries)
    return Retry(
        total=retries,
        connect=retries,
        read=retries,
        backoff_factor=max(0.0, settings.backoff_factor),
        status_forcelist=tuple(settings.status_forcelist),
        allowed_methods=RETRY_METHODS,
        respect_retry_after_header=True,
        raise_on_status=False,
    )


def build_session(settings: HttpSettings) -> Session:
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=build_retry(settings))
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers["Accept"] = "application/json"
    session.headers["User-Agent"] = USER_AGENT
    return session


def configure_http(settings: HttpSettings) -> None:
    """Install *settings* and replace the shared session."""
    global _SETTINGS, _SESSION
    _SETTINGS = settings
    _SESSION = build_session(settings)
    _LOGGER.info(
        "HTTP session ready: read timeout %ss, connect %ss, %s retries on %s",
        settings.timeout,
        settings.connect_timeout,
        settings.retries,
        ",".join(sorted(RETRY_METHODS)),
    )


def get_http_session() -> Session:
    global _SESSION
    if _SESSION is None:
        _SESSION = build_session(_SETTINGS)
    return _SESSION


def _send(
    method: str,
    url: str,
    *,
    session: Optional[Session],
    timeout: Any | None = None,
    **kwargs: Any,
) -> Response:
    sess = session or get_http_session()
    started = time.perf_counter()
    try:
        response = sess.request(method, url, timeout=timeout or _SETTINGS.timeouts, **kwargs)
    except requests.RequestException as exc:
        _LOGGER.warning("%s %s failed: %s", method, url, exc)
        raise
    _LOGGER.debug(
        "%s %s -> %s in %.0fms", method, url, response.status_code, (time.perf_counter() - started) * 1000
    )
    if not response.ok:
        raise HttpError(response.status_code, url)
    return response


def get_json(url: str, *, session: Session | None = None) -> Any:
    """GET ``url`` and decode the JSON body.

    Any non-2xx status raises :class:`HttpError`; a body that is not valid JSON
    propagates the decoder's ``ValueError`` unchanged.
    """
    return _send("GET", url, session=session).json()


def post_json(
    url: str,
    payload: Any,
    *,
    session: Session | None = None,
    timeout: Any | None = None,
) -> Any:
    return _send("POST", url, session=session, timeout=timeout, json=payload).json()
