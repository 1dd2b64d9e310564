from unittest.mock import patch

import pytest
import requests

from conftest import FakeResponse, FakeSession
from skyscore.caching import RunCache
from skyscore.errors import HttpError
from skyscore.services import http as http_module
from skyscore.services.http import (
    HttpSettings,
    build_retry,
    configure_http,
    get_http_session,
    get_json,
    post_json,
)


def test_get_json_returns_decoded_body():
    session = FakeSession({"https://api.test/ok": {"value": 1}})
    assert get_json("https://api.test/ok", session=session) == {"value": 1}


def test_get_json_non_2xx_raises_http_error_with_status():
    session = FakeSession({"https://api.test/busy": FakeResponse({}, status_code=503)})
    with pytest.raises(HttpError) as excinfo:
        get_json("https://api.test/busy", session=session)
    assert excinfo.value.status == 503
    assert excinfo.value.url == "https://api.test/busy"


def test_get_json_parse_failure_propagates():
    session = FakeSession({"https://api.test/html": FakeResponse(text="<html>")})
    with pytest.raises(ValueError):
        get_json("https://api.test/html", session=session)


def test_request_exception_is_reraised():
    session = FakeSession({"https://api.test/down": requests.ConnectionError("refused")})
    with pytest.raises(requests.ConnectionError):
        get_json("https://api.test/down", session=session)


def test_post_json_sends_payload():
    seen = {}

    def handler(**kwargs):
        seen.update(kwargs)
        return {"echo": kwargs["json"]}

    session = FakeSession({"https://score.test/": handler})
    assert post_json("https://score.test/", {"a": 1}, session=session, timeout=3) == {"echo": {"a": 1}}
    assert seen["json"] == {"a": 1}


def test_configure_http_rebuilds_shared_session():
    settings = HttpSettings(timeout=7, connect_timeout=2, retries=1, backoff_factor=0.1)
    with patch.object(http_module, "_SESSION", None), patch.object(http_module, "_SETTINGS", settings):
        configure_http(settings)
        first = get_http_session()
        assert http_module._SETTINGS is settings
        assert first.headers["Accept"] == "application/json"
        assert first.get_adapter("https://plc.directory/").max_retries.total == 1
        configure_http(settings)
        assert get_http_session() is not first


def test_run_cache_memoizes_per_url():
    cache = RunCache()
    calls = []

    def factory():
        calls.append(1)
        return {"n": len(calls)}

    assert cache.get_or_set("u1", factory) == {"n": 1}
    assert cache.get_or_set("u1", factory) == {"n": 1}
    assert cache.get_or_set("u2", factory) == {"n": 2}
    assert cache.stats() == {"items": 2, "hits": 1, "misses": 2}


def test_run_cache_does_not_store_failures():
    cache = RunCache()

    def failing():
        raise HttpError(500, "u")

    with pytest.raises(HttpError):
        cache.get_or_set("u", failing)
    assert "u" not in cache
    assert cache.get_or_set("u", lambda: 1) == 1


def test_context_cache_avoids_refetching(ctx, session):
    session.add("https://api.test/page", {"records": []})
    ctx.get_json("https://api.test/page")
    ctx.get_json("https://api.test/page")
    assert session.urls() == ["https://api.test/page"]


def test_reads_are_retried_but_scoring_posts_are_not():
    retry = build_retry(HttpSettings(retries=3))
    assert retry.is_retry("GET", 503)
    assert retry.is_retry("GET", 429)
    assert not retry.is_retry("POST", 503)
    assert not retry.is_retry("GET", 404)


def test_default_timeouts_keep_read_above_connect():
    assert HttpSettings(timeout=1, connect_timeout=5).timeouts == (5, 6)
    assert HttpSettings().timeouts == (10.0, 30.0)


def test_non_2xx_post_raises_http_error():
    session = FakeSession({"https://score.test/": FakeResponse({}, status_code=502)})
    with pytest.raises(HttpError) as excinfo:
        post_json("https://score.test/", {}, session=session)
    assert excinfo.value.status == 502
