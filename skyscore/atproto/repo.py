"""Repository, feed and blob endpoints built on the shared paginator."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional

from .context import RunContext
from .pagination import PaginationResult, paginate
from .records import BlobEntry, CollectionRecord, FeedItem, Page


def _envelope(data: Any, url_hint: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"unexpected payload for {url_hint}: {type(data).__name__}")
    return data


def _cursor(data: Mapping[str, Any]) -> Optional[str]:
    cursor = data.get("cursor")
    return str(cursor) if cursor else None


def fetch_profile(ctx: RunContext) -> dict:
    identity = ctx.require_identity()
    data = ctx.get_json(ctx.public_url("app.bsky.actor.getProfile", actor=identity.did))
    return dict(_envelope(data, "getProfile"))


def fetch_repo_description(ctx: RunContext) -> dict:
    identity = ctx.require_identity()
    data = ctx.get_json(ctx.pds_url("com.atproto.repo.describeRepo", repo=identity.did))
    return dict(_envelope(data, "describeRepo"))


def list_collections(description: Mapping[str, Any]) -> List[str]:
    """Collection names from a ``describeRepo`` answer, de-duplicated in order."""
    seen: dict[str, None] = {}
    for name in description.get("collections") or []:
        if isinstance(name, str) and name:
            seen.setdefault(name, None)
    return list(seen)


def list_records(
    ctx: RunContext,
    collection: str,
    *,
    cutoff: Optional[datetime] = None,
) -> PaginationResult[CollectionRecord]:
    identity = ctx.require_identity()
    limit = ctx.config.records_page_size

    def fetch_page(cursor: Optional[str]) -> Page[CollectionRecord]:
        url = ctx.pds_url(
            "com.atproto.repo.listRecords",
            repo=identity.did,
            collection=collection,
            limit=limit,
            cursor=cursor,
        )
        data = _envelope(ctx.get_json(url), "listRecords")
        records = [
            CollectionRecord.from_payload(collection, item)
            for item in data.get("records") or []
            if isinstance(item, Mapping)
        ]
        return Page(records=records, cursor=_cursor(data))

    return paginate(
        fetch_page,
        timestamp_of=lambda record: record.created_at,
        cutoff=cutoff,
        max_pages=ctx.config.max_pages,
        label=collection,
    )


def fetch_author_feed(
    ctx: RunContext,
    *,
    cutoff: Optional[datetime] = None,
) -> PaginationResult[FeedItem]:
    identity = ctx.require_identity()
    limit = ctx.config.feed_page_size

    def fetch_page(cursor: Optional[str]) -> Page[FeedItem]:
        url = ctx.public_url(
            "app.bsky.feed.getAuthorFeed",
            actor=identity.did,
            limit=limit,
            cursor=cursor,
        )
        data = _envelope(ctx.get_json(url), "getAuthorFeed")
        items = [FeedItem.from_payload(item) for item in data.get("feed") or [] if isinstance(item, Mapping)]
        return Page(records=items, cursor=_cursor(data))

    return paginate(
        fetch_page,
        timestamp_of=lambda item: item.created_at,
        cutoff=cutoff,
        max_pages=ctx.config.max_pages,
        label="author feed",
    )


def count_blobs(ctx: RunContext, *, cutoff: Optional[datetime] = None) -> int:
    """Number of blobs in the repository; unbounded when *cutoff* is ``None``."""
    identity = ctx.require_identity()
    limit = ctx.config.blobs_page_size

    def fetch_page(cursor: Optional[str]) -> Page[BlobEntry]:
        url = ctx.pds_url("com.atproto.sync.listBlobs", did=identity.did, limit=limit, cursor=cursor)
        data = _envelope(ctx.get_json(url), "listBlobs")
        return Page(records=[BlobEntry.from_payload(cid) for cid in data.get("cids") or []], cursor=_cursor(data))

    result = paginate(
        fetch_page,
        timestamp_of=lambda blob: blob.created_at,
        cutoff=cutoff,
        max_pages=ctx.config.max_pages,
        label="blobs",
    )
    return result.count
