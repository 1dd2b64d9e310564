from datetime import datetime, timedelta, timezone

from skyscore.analysis.engagement import EngagementSnapshot, aggregate_engagement
from skyscore.atproto.records import FeedItem

OWNER = "did:plc:owner"
NOW = datetime(2025, 3, 1, tzinfo=timezone.utc)


def item(author=OWNER, days_ago=1, repost=False, likes=0, reposts=0, quotes=0, replies=0):
    return FeedItem(
        uri=f"at://{author}/app.bsky.feed.post/{days_ago}",
        author_did=author,
        created_at=None if days_ago is None else NOW - timedelta(days=days_ago),
        is_repost=repost,
        like_count=likes,
        repost_count=reposts,
        quote_count=quotes,
        reply_count=replies,
    )


def test_sums_only_own_posts():
    items = [
        item(likes=5, reposts=1, quotes=1, replies=2),
        item(likes=3),
        item(author="did:plc:other", likes=100),
        item(repost=True, likes=50),
    ]
    snapshot = aggregate_engagement(items, OWNER)
    assert snapshot == EngagementSnapshot(
        likes_received=8, reposts_received=1, quotes_received=1, replies_received=2, posts_considered=2
    )
    assert snapshot.total == 12
    assert snapshot.engagement_rate == 6


def test_cutoff_excludes_old_items_but_keeps_undated():
    cutoff = NOW - timedelta(days=30)
    items = [item(days_ago=10, likes=1), item(days_ago=45, likes=10), item(days_ago=None, likes=2)]
    snapshot = aggregate_engagement(items, OWNER, cutoff=cutoff)
    assert snapshot.likes_received == 3
    assert snapshot.posts_considered == 2


def test_empty_feed_has_zero_rate():
    snapshot = aggregate_engagement([], OWNER)
    assert snapshot.engagement_rate == 0
    assert snapshot.to_dict()["totalReceived"] == 0
