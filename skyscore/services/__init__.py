"""Service layer helpers for Skyscore."""

from .logging import configure_console_logging, configure_logging
from .http import HttpSettings, configure_http, get_http_session, get_json, post_json

__all__ = [
    "configure_logging",
    "configure_console_logging",
    "configure_http",
    "get_http_session",
    "get_json",
    "post_json",
    "HttpSettings",
]
