"""Typed views over raw repository payloads.

Known record kinds read their timestamp from an explicit field; only
collections we do not recognise fall back to a bounded scan of the payload.
The namespace tag (``is_bluesky``) is computed once here and carried on the
record instead of being re-derived from the collection name downstream.
"""

from __future__ import annotations

import re
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, List, Mapping, Optional, TypeVar

from skyscore.config import BLUESKY_NAMESPACE

T = TypeVar("T")

_FRACTION_RE = re.compile(r"\.(\d+)")
_GENERIC_SCAN_DEPTH = 3
_GENERIC_SCAN_NODES = 64

REASON_REPOST = "app.bsky.feed.defs#reasonRepost"


class RecordKind(str, Enum):
    POST = "post"
    REPOST = "repost"
    LIKE = "like"
    FOLLOW = "follow"
    BLOB = "blob"
    GENERIC = "generic"


KNOWN_COLLECTIONS: Mapping[str, RecordKind] = {
    "app.bsky.feed.post": RecordKind.POST,
    "app.bsky.feed.repost": RecordKind.REPOST,
    "app.bsky.feed.like": RecordKind.LIKE,
    "app.bsky.graph.follow": RecordKind.FOLLOW,
}

POST_COLLECTION = "app.bsky.feed.post"
REPOST_COLLECTION = "app.bsky.feed.repost"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ATProto datetime string into an aware UTC datetime.

    Returns ``None`` for anything unparsable; callers treat that as
    "no timestamp", which keeps the record eligible.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat before 3.11 only accepts 3 or 6 fractional digits
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def is_bluesky_collection(collection: str) -> bool:
    return collection == BLUESKY_NAMESPACE or collection.startswith(BLUESKY_NAMESPACE + ".")


def scan_for_timestamp(value: Any) -> Optional[datetime]:
    """Breadth-first search for a ``createdAt`` field, bounded in depth and size."""
    queue: deque[tuple[Any, int]] = deque([(value, 0)])
    visited = 0
    while queue and visited < _GENERIC_SCAN_NODES:
        node, depth = queue.popleft()
        visited += 1
        if isinstance(node, Mapping):
            stamp = parse_timestamp(node.get("createdAt"))
            if stamp is not None:
                return stamp
            children = node.values()
        elif isinstance(node, list):
            children = node
        else:
            continue
        if depth >= _GENERIC_SCAN_DEPTH:
            continue
        for child in children:
            if isinstance(child, (Mapping, list)):
                queue.append((child, depth + 1))
    return None


@dataclass(frozen=True, slots=True)
class CollectionRecord:
    uri: str
    collection: str
    kind: RecordKind
    value: Mapping[str, Any]
    created_at: Optional[datetime]
    is_bluesky: bool

    @classmethod
    def from_payload(cls, collection: str, payload: Mapping[str, Any]) -> "CollectionRecord":
        value = payload.get("value")
        if not isinstance(value, Mapping):
            value = {}
        kind = KNOWN_COLLECTIONS.get(collection, RecordKind.GENERIC)
        if kind is RecordKind.GENERIC:
            created_at = scan_for_timestamp(value)
        else:
            created_at = parse_timestamp(value.get("createdAt"))
        return cls(
            uri=str(payload.get("uri") or ""),
            collection=collection,
            kind=kind,
            value=value,
            created_at=created_at,
            is_bluesky=is_bluesky_collection(collection),
        )


@dataclass(frozen=True, slots=True)
class FeedItem:
    """One entry of ``getAuthorFeed``: the post view plus an optional reason."""

    uri: str
    author_did: str
    created_at: Optional[datetime]
    is_repost: bool
    like_count: int
    repost_count: int
    quote_count: int
    reply_count: int

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "FeedItem":
        post = payload.get("post") if isinstance(payload.get("post"), Mapping) else {}
        author = post.get("author") if isinstance(post.get("author"), Mapping) else {}
        record = post.get("record") if isinstance(post.get("record"), Mapping) else {}
        reason = payload.get("reason") if isinstance(payload.get("reason"), Mapping) else {}
        is_repost = reason.get("$type") == REASON_REPOST
        if is_repost:
            # feed order follows repost time, not the original post's age
            created_at = parse_timestamp(reason.get("indexedAt"))
        else:
            created_at = parse_timestamp(record.get("createdAt")) or parse_timestamp(post.get("indexedAt"))
        return cls(
            uri=str(post.get("uri") or ""),
            author_did=str(author.get("did") or ""),
            created_at=created_at,
            is_repost=is_repost,
            like_count=_count(post.get("likeCount")),
            repost_count=_count(post.get("repostCount")),
            quote_count=_count(post.get("quoteCount")),
            reply_count=_count(post.get("replyCount")),
        )


@dataclass(frozen=True, slots=True)
class BlobEntry:
    cid: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "BlobEntry":
        if isinstance(payload, Mapping):
            return cls(cid=str(payload.get("cid") or ""), created_at=parse_timestamp(payload.get("createdAt")))
        return cls(cid=str(payload))


@dataclass(slots=True)
class Page(Generic[T]):
    records: List[T] = field(default_factory=list)
    cursor: Optional[str] = None


def _count(value: Any) -> int:
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0
