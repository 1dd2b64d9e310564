"""Engagement received on the account's own posts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from skyscore.atproto.records import FeedItem

from .stats import safe_div


@dataclass(frozen=True, slots=True)
class EngagementSnapshot:
    likes_received: int = 0
    reposts_received: int = 0
    quotes_received: int = 0
    replies_received: int = 0
    posts_considered: int = 0

    @property
    def total(self) -> int:
        return self.likes_received + self.reposts_received + self.quotes_received + self.replies_received

    @property
    def engagement_rate(self) -> float:
        """Interactions per own post in the window."""
        return safe_div(self.total, self.posts_considered)

    def to_dict(self) -> dict:
        return {
            "likesReceived": self.likes_received,
            "repostsReceived": self.reposts_received,
            "quotesReceived": self.quotes_received,
            "repliesReceived": self.replies_received,
            "totalReceived": self.total,
            "postsConsidered": self.posts_considered,
            "engagementRate": self.engagement_rate,
        }


def aggregate_engagement(
    items: Iterable[FeedItem],
    owner_did: str,
    *,
    cutoff: Optional[datetime] = None,
) -> EngagementSnapshot:
    """Sum the counters of the owner's own posts.

    Reposts and posts by other authors are skipped even on an author-scoped
    feed; only the post's own counters count, never those of embedded posts.
    Items dated before *cutoff* are dropped, undated ones are kept.
    """
    likes = reposts = quotes = replies = posts = 0
    for item in items:
        if item.is_repost or item.author_did != owner_did:
            continue
        if cutoff is not None and item.created_at is not None and item.created_at < cutoff:
            continue
        posts += 1
        likes += item.like_count
        reposts += item.repost_count
        quotes += item.quote_count
        replies += item.reply_count
    return EngagementSnapshot(
        likes_received=likes,
        reposts_received=reposts,
        quotes_received=quotes,
        replies_received=replies,
        posts_considered=posts,
    )
