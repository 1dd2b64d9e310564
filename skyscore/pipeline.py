"""High level pipeline: identity, windowed aggregation, narrative and scoring."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests
from requests import Session

from skyscore.analysis import (
    aggregate_engagement,
    build_narrative,
    calculate_age,
    compute_post_stats,
    round_numbers,
)
from skyscore.atproto import (
    CollectionRecord,
    PeriodWindow,
    RunContext,
    count_blobs,
    fetch_author_feed,
    fetch_identity_metrics,
    fetch_profile,
    fetch_repo_description,
    list_collections,
    list_records,
    resolve_identity,
)
from skyscore.atproto.context import Clock, utc_now
from skyscore.atproto.records import POST_COLLECTION, REPOST_COLLECTION
from skyscore.config import AppConfig
from skyscore.document import AccountSnapshot, CollectionTally, build_window_document
from skyscore.errors import HttpError, SkyscoreError, error_status
from skyscore.scoring import ScoringClient, apply_scoring

LOGGER = logging.getLogger("skyscore.pipeline")


@dataclass
class PipelineResult:
    ok: bool
    payload: Dict[str, Any]
    error: str | None = None
    status: int = 200


def window_key(days: int) -> str:
    return f"window{days}"


class AggregationPipeline:
    """One ``run`` per handle; every run gets a fresh :class:`RunContext`."""

    def __init__(
        self,
        config: AppConfig,
        session: Optional[Session] = None,
        scorer: Optional[ScoringClient] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.config = config
        self.session = session
        self.scorer = scorer or ScoringClient(config.scoring_url, config.scoring_timeout, session)
        self.clock = clock or utc_now

    def _context(self) -> RunContext:
        return RunContext(config=self.config, session=self.session, clock=self.clock)

    def run(self, handle: str, windows: Optional[List[int]] = None) -> PipelineResult:
        started = time.perf_counter()
        ctx = self._context()
        try:
            ctx, account = self._load_account(ctx, handle)
        except (SkyscoreError, requests.RequestException, ValueError) as exc:
            LOGGER.warning("Resolution of %r failed: %s", handle, exc, extra={"handle": handle})
            return PipelineResult(ok=False, payload={}, error=str(exc), status=error_status(exc))

        payload: Dict[str, Any] = {}
        for days in windows or self.config.windows:
            window = PeriodWindow.ending_at(ctx.now(), days)
            payload[window_key(days)] = self._window_document(ctx, account, window)

        LOGGER.info(
            "Resolved %s in %.2fs (cache %s)",
            account.identity.handle,
            time.perf_counter() - started,
            ctx.cache.stats(),
            extra={"handle": account.identity.handle, "did": account.identity.did},
        )
        return PipelineResult(ok=True, payload=payload)

    def _load_account(self, ctx: RunContext, handle: str) -> tuple[RunContext, AccountSnapshot]:
        """Identity phase; any failure here ends the run."""
        identity = resolve_identity(ctx, handle)
        ctx = ctx.with_identity(identity)
        profile = fetch_profile(ctx)
        metrics = fetch_identity_metrics(ctx)
        blobs = count_blobs(ctx)
        account = AccountSnapshot(
            identity=identity,
            profile=profile,
            metrics=metrics,
            collections=self._collections(ctx),
            blobs_count=blobs,
            age=calculate_age(profile.get("createdAt"), ctx.now()),
        )
        return ctx, account

    def _collections(self, ctx: RunContext) -> List[str]:
        try:
            description = fetch_repo_description(ctx)
        except (HttpError, requests.RequestException, ValueError) as exc:
            did = ctx.require_identity().did
            LOGGER.warning("describeRepo failed for %s: %s", did, exc, extra={"did": did})
            return []
        return list_collections(description)

    def tally_collections(self, ctx: RunContext, account: AccountSnapshot, window: PeriodWindow) -> CollectionTally:
        tally = CollectionTally(window=window)
        for collection in account.collections:
            tally.ensure(collection)
            for record in list_records(ctx, collection, cutoff=window.cutoff_time).items:
                tally.add(record)
        return tally

    def fetch_posts_and_reposts(self, ctx: RunContext, window: PeriodWindow) -> List[CollectionRecord]:
        posts = list_records(ctx, POST_COLLECTION, cutoff=window.cutoff_time)
        reposts = list_records(ctx, REPOST_COLLECTION, cutoff=window.cutoff_time)
        return posts.items + reposts.items

    def _window_document(self, ctx: RunContext, account: AccountSnapshot, window: PeriodWindow) -> dict:
        did = account.identity.did
        tally = self.tally_collections(ctx, account, window)
        stats = compute_post_stats(self.fetch_posts_and_reposts(ctx, window), did, window.days)
        feed = fetch_author_feed(ctx, cutoff=window.cutoff_time)
        engagement = aggregate_engagement(feed.items, did, cutoff=window.cutoff_time)

        draft = build_window_document(account, window, tally, stats, engagement, generated_at=ctx.now())
        draft["narrative"] = build_narrative(draft)
        label = window_key(window.days)
        document = apply_scoring(self.scorer, round_numbers(draft), label=label)
        return round_numbers(document)


def resolve(
    handle: str,
    *,
    config: Optional[AppConfig] = None,
    session: Optional[Session] = None,
    scorer: Optional[ScoringClient] = None,
    clock: Optional[Callable[[], Any]] = None,
) -> dict:
    """Resolve *handle* into ``{"window30": ..., "window90": ...}`` or ``{"error": ...}``."""
    pipeline = AggregationPipeline(config or AppConfig.load(), session=session, scorer=scorer, clock=clock)
    result = pipeline.run(handle)
    if not result.ok:
        return {"error": result.error}
    return result.payload
