"""Exception taxonomy and error response helpers.

Every failure raised by the pipeline derives from :class:`SkyscoreError` so the
outer surfaces (library entry point, Flask blueprint, CLI) can turn it into a
structured error envelope without catching unrelated bugs.
"""

from __future__ import annotations

from flask import jsonify


class SkyscoreError(Exception):
    """Base class for all pipeline failures."""


class ResolutionError(SkyscoreError):
    """Handle could not be resolved to a DID."""


class EndpointNotFoundError(SkyscoreError):
    """No usable PDS service entry in the DID document."""


class HttpError(SkyscoreError):
    """Non-2xx response from an upstream service."""

    def __init__(self, status: int, url: str, message: str | None = None) -> None:
        self.status = int(status)
        self.url = url
        super().__init__(message or f"HTTP {self.status} error for {url}")


class PaginationAbort(SkyscoreError):
    """Internal signal that stops a pagination loop with partial results."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class ScoringServiceError(SkyscoreError):
    """Scoring service unreachable, non-2xx or returned a malformed body."""

    def __init__(self, message: str, status: int | None = None) -> None:
        self.status = status
        super().__init__(message)


def error_status(exc: BaseException) -> int:
    """Map a failure to the HTTP status reported by the API layer."""
    if isinstance(exc, (ResolutionError, EndpointNotFoundError)):
        return 404
    return 502


def json_error(message: str, status: int = 400):
    """Return a JSON error tuple suitable as a Flask view return value."""
    return jsonify({"error": str(message)}), int(status)
