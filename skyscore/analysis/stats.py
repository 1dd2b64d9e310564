"""Post composition statistics.

``compute_post_stats`` is pure: it only reads the records handed to it and the
owner DID, so identical input always yields an identical ``PostStats``.
Counts stay exact integers; rates and percentages are rounded only when the
finished document goes through ``round_numbers``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from skyscore.atproto.records import CollectionRecord, RecordKind

EMBED_IMAGES = "app.bsky.embed.images"
EMBED_VIDEO = "app.bsky.embed.video"
EMBED_EXTERNAL = "app.bsky.embed.external"
EMBED_RECORD = "app.bsky.embed.record"
EMBED_RECORD_WITH_MEDIA = "app.bsky.embed.recordWithMedia"
FACET_LINK = "app.bsky.richtext.facet#link"
FACET_MENTION = "app.bsky.richtext.facet#mention"

MEDIA_IMAGE = "image"
MEDIA_VIDEO = "video"
MEDIA_LINK = "link"
MEDIA_MENTION = "mention"
MEDIA_TEXT = "text"


def round_to_two(value: float) -> float:
    return round(float(value), 2)


def round_numbers(obj: Any) -> Any:
    """Round every float in a nested structure; ints and bools are left alone."""
    if isinstance(obj, Mapping):
        return {key: round_numbers(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [round_numbers(value) for value in obj]
    if isinstance(obj, float):
        return round_to_two(obj)
    return obj


def safe_div(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    return numerator / denominator


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _uri_mentions(uri: Any, did: str) -> bool:
    return bool(did) and isinstance(uri, str) and did in uri


def _facet_features(value: Mapping[str, Any]) -> Iterable[str]:
    for facet in value.get("facets") or []:
        for feature in _mapping(facet).get("features") or []:
            kind = _mapping(feature).get("$type")
            if isinstance(kind, str):
                yield kind


def _media_embed(value: Mapping[str, Any]) -> Mapping[str, Any]:
    embed = _mapping(value.get("embed"))
    if embed.get("$type") == EMBED_RECORD_WITH_MEDIA:
        return _mapping(embed.get("media"))
    return embed


def media_type(value: Mapping[str, Any]) -> str:
    """Single media class of a post; embeds win over facets."""
    embed_type = _media_embed(value).get("$type")
    if embed_type == EMBED_IMAGES:
        return MEDIA_IMAGE
    if embed_type == EMBED_VIDEO:
        return MEDIA_VIDEO
    if embed_type == EMBED_EXTERNAL:
        return MEDIA_LINK
    features = set(_facet_features(value))
    if FACET_LINK in features:
        return MEDIA_LINK
    if FACET_MENTION in features:
        return MEDIA_MENTION
    return MEDIA_TEXT


def has_alt_text(value: Mapping[str, Any]) -> bool:
    images = _media_embed(value).get("images") or []
    return any(str(_mapping(image).get("alt") or "").strip() for image in images)


def quoted_uri(value: Mapping[str, Any]) -> Any:
    embed = _mapping(value.get("embed"))
    embed_type = embed.get("$type")
    if embed_type == EMBED_RECORD:
        return _mapping(embed.get("record")).get("uri")
    if embed_type == EMBED_RECORD_WITH_MEDIA:
        return _mapping(_mapping(embed.get("record")).get("record")).get("uri")
    return None


def is_quote(value: Mapping[str, Any]) -> bool:
    return _mapping(value.get("embed")).get("$type") in (EMBED_RECORD, EMBED_RECORD_WITH_MEDIA)


@dataclass(frozen=True, slots=True)
class PostStats:
    period_days: float
    posts_count: int = 0
    top_level_posts: int = 0
    replies: int = 0
    replies_to_self: int = 0
    quotes: int = 0
    self_quotes: int = 0
    reposts: int = 0
    self_reposts: int = 0
    posts_with_images: int = 0
    image_posts_alt_text: int = 0
    posts_with_video: int = 0
    posts_with_links: int = 0
    posts_with_mentions: int = 0
    posts_with_only_text: int = 0

    @property
    def replies_to_others(self) -> int:
        return self.replies - self.replies_to_self

    @property
    def other_quotes(self) -> int:
        return self.quotes - self.self_quotes

    @property
    def other_reposts(self) -> int:
        return self.reposts - self.self_reposts

    @property
    def image_posts_no_alt_text(self) -> int:
        return self.posts_with_images - self.image_posts_alt_text

    @property
    def alt_text_percentage(self) -> float:
        return safe_div(self.image_posts_alt_text, self.posts_with_images)

    def per_day(self, count: int) -> float:
        return safe_div(count, self.period_days)

    def share(self, count: int) -> float:
        return safe_div(count, self.posts_count)

    def to_dict(self) -> dict[str, Any]:
        """Document fields; rates and shares stay unrounded until ``round_numbers``."""
        rate = self.per_day
        pct = self.share
        return {
            "postsCount": self.posts_count,
            "postsPerDay": rate(self.posts_count),
            "onlyPosts": self.top_level_posts,
            "onlyPostsPerDay": rate(self.top_level_posts),
            "onlyReplies": self.replies,
            "onlyRepliesPerDay": rate(self.replies),
            "onlyRepliesToSelf": self.replies_to_self,
            "onlyRepliesToSelfPerDay": rate(self.replies_to_self),
            "onlyRepliesToOthers": self.replies_to_others,
            "onlyRepliesToOthersPerDay": rate(self.replies_to_others),
            "onlyQuotes": self.quotes,
            "onlyQuotesPerDay": rate(self.quotes),
            "onlySelfQuotes": self.self_quotes,
            "onlySelfQuotesPerDay": rate(self.self_quotes),
            "onlyOtherQuotes": self.other_quotes,
            "onlyOtherQuotesPerDay": rate(self.other_quotes),
            "onlyReposts": self.reposts,
            "onlyRepostsPerDay": rate(self.reposts),
            "onlySelfReposts": self.self_reposts,
            "onlySelfRepostsPerDay": rate(self.self_reposts),
            "onlyOtherReposts": self.other_reposts,
            "onlyOtherRepostsPerDay": rate(self.other_reposts),
            "postsWithImages": self.posts_with_images,
            "imagePostsPerDay": rate(self.posts_with_images),
            "imagePostsAltText": self.image_posts_alt_text,
            "imagePostsNoAltText": self.image_posts_no_alt_text,
            "altTextPercentage": self.alt_text_percentage,
            "postsWithOnlyText": self.posts_with_only_text,
            "textPostsPerDay": rate(self.posts_with_only_text),
            "postsWithMentions": self.posts_with_mentions,
            "mentionPostsPerDay": rate(self.posts_with_mentions),
            "postsWithVideo": self.posts_with_video,
            "videoPostsPerDay": rate(self.posts_with_video),
            "postsWithLinks": self.posts_with_links,
            "linkPostsPerDay": rate(self.posts_with_links),
            "replyPercentage": pct(self.replies),
            "replySelfPercentage": pct(self.replies_to_self),
            "replyOtherPercentage": pct(self.replies_to_others),
            "quotePercentage": pct(self.quotes),
            "quoteSelfPercentage": pct(self.self_quotes),
            "quoteOtherPercentage": pct(self.other_quotes),
            "repostPercentage": pct(self.reposts),
            "repostSelfPercentage": pct(self.self_reposts),
            "repostOtherPercentage": pct(self.other_reposts),
            "textPercentage": pct(self.posts_with_only_text),
            "linkPercentage": pct(self.posts_with_links),
            "imagePercentage": pct(self.posts_with_images),
            "videoPercentage": pct(self.posts_with_video),
            "mentionPercentage": pct(self.posts_with_mentions),
        }


def compute_post_stats(
    records: Iterable[CollectionRecord],
    owner_did: str,
    period_days: float,
) -> PostStats:
    """Classify posts and reposts of one window into a :class:`PostStats`."""
    counts = {
        "posts_count": 0,
        "top_level_posts": 0,
        "replies": 0,
        "replies_to_self": 0,
        "quotes": 0,
        "self_quotes": 0,
        "reposts": 0,
        "self_reposts": 0,
        "posts_with_images": 0,
        "image_posts_alt_text": 0,
        "posts_with_video": 0,
        "posts_with_links": 0,
        "posts_with_mentions": 0,
        "posts_with_only_text": 0,
    }
    media_counter = {
        MEDIA_IMAGE: "posts_with_images",
        MEDIA_VIDEO: "posts_with_video",
        MEDIA_LINK: "posts_with_links",
        MEDIA_MENTION: "posts_with_mentions",
        MEDIA_TEXT: "posts_with_only_text",
    }
    for record in records:
        value = record.value
        if record.kind is RecordKind.REPOST:
            counts["reposts"] += 1
            if _uri_mentions(_mapping(value.get("subject")).get("uri"), owner_did):
                counts["self_reposts"] += 1
            continue
        if record.kind is not RecordKind.POST:
            continue

        counts["posts_count"] += 1
        if "reply" in value:
            counts["replies"] += 1
            if _uri_mentions(_mapping(_mapping(value.get("reply")).get("parent")).get("uri"), owner_did):
                counts["replies_to_self"] += 1
        else:
            counts["top_level_posts"] += 1

        if is_quote(value):
            counts["quotes"] += 1
            if _uri_mentions(quoted_uri(value), owner_did):
                counts["self_quotes"] += 1

        kind = media_type(value)
        counts[media_counter[kind]] += 1
        if kind == MEDIA_IMAGE and has_alt_text(value):
            counts["image_posts_alt_text"] += 1

    return PostStats(period_days=period_days or 0, **counts)
