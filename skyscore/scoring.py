"""Client for the external scoring service."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import requests
from requests import Session

from skyscore.errors import HttpError, ScoringServiceError
from skyscore.services.http import post_json

_LOGGER = logging.getLogger("skyscore.scoring")

SCORING_SCORED = "scored"
SCORING_FAILED = "failed"
SCORING_SKIPPED = "skipped"


class ScoringClient:
    """POST ``{"draftDocument": ...}`` and read back ``scoredDocument``."""

    def __init__(self, url: str, timeout: float = 30.0, session: Optional[Session] = None) -> None:
        self.url = (url or "").strip()
        self.timeout = timeout
        self.session = session

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def score(self, draft: Mapping[str, Any]) -> dict:
        try:
            body = post_json(
                self.url,
                {"draftDocument": draft},
                session=self.session,
                timeout=self.timeout,
            )
        except HttpError as exc:
            raise ScoringServiceError(str(exc), status=exc.status) from exc
        except requests.RequestException as exc:
            raise ScoringServiceError(f"Scoring service unreachable: {exc}") from exc
        except ValueError as exc:
            raise ScoringServiceError(f"Scoring service returned invalid JSON: {exc}") from exc

        scored = body.get("scoredDocument") if isinstance(body, Mapping) else None
        if not isinstance(scored, Mapping):
            raise ScoringServiceError("Scoring service response has no scoredDocument object.")
        return dict(scored)


def apply_scoring(client: Optional[ScoringClient], draft: dict, *, label: str = "") -> dict:
    """Replace *draft* with its scored version, or keep it and say why.

    A failing scoring call never drops the window: the unscored draft comes
    back with ``scoring.status == "failed"`` and the error message.
    """
    if client is None or not client.enabled:
        return {**draft, "scoring": {"status": SCORING_SKIPPED}}
    try:
        scored = client.score(draft)
    except ScoringServiceError as exc:
        _LOGGER.warning("Scoring failed for %s: %s", label or "window", exc, extra={"window": label or None})
        return {**draft, "scoring": {"status": SCORING_FAILED, "error": str(exc)}}
    return {**scored, "scoring": {"status": SCORING_SCORED}}
