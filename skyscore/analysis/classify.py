"""Label classifiers expressed as ordered rule tables.

Each classifier is a list of ``(predicate, label)`` pairs evaluated top to
bottom; the first predicate that holds wins, otherwise the table's default
label is returned. The tables are plain data so they can be inspected and
tested on their own.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Mapping, Optional, Sequence, Tuple, TypeVar

from skyscore.atproto.records import parse_timestamp
from skyscore.config import DEFAULT_HANDLE_DOMAIN, NETWORK_REFERENCE_DATE

from .stats import PostStats, safe_div

F = TypeVar("F")
Rule = Tuple[Callable[[F], bool], str]

UNKNOWN = "unknown"


def first_match(rules: Sequence[Rule], facts: F, default: str) -> str:
    for predicate, label in rules:
        if predicate(facts):
            return label
    return default


# ---------------------------------------------------------------------------
# Activity status
# ---------------------------------------------------------------------------

ACTIVITY_RULES: Sequence[Rule[float]] = (
    (lambda rate: rate <= 0, "inactive"),
    (lambda rate: rate < 1, "eepy"),
    (lambda rate: rate < 10, "awake"),
)
ACTIVITY_DEFAULT = "wired"


def calculate_activity_status(records_per_day: float) -> str:
    return first_match(ACTIVITY_RULES, float(records_per_day or 0), ACTIVITY_DEFAULT)


# ---------------------------------------------------------------------------
# Posting style
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PostingFacts:
    posts_per_day: float
    only_posts_per_day: float
    reply_other_percentage: float
    quote_other_percentage: float
    repost_other_percentage: float
    alt_text_percentage: float
    total_bsky_records_per_day: float
    dominant_media: Optional[str]

    @classmethod
    def from_stats(cls, stats: PostStats, total_bsky_records_per_day: float) -> "PostingFacts":
        shares = {
            "text": stats.share(stats.posts_with_only_text),
            "image": stats.share(stats.posts_with_images),
            "link": stats.share(stats.posts_with_links),
            "video": stats.share(stats.posts_with_video),
        }
        return cls(
            posts_per_day=stats.per_day(stats.posts_count),
            only_posts_per_day=stats.per_day(stats.top_level_posts),
            reply_other_percentage=stats.share(stats.replies_to_others),
            quote_other_percentage=stats.share(stats.other_quotes),
            repost_other_percentage=stats.share(stats.other_reposts),
            alt_text_percentage=stats.alt_text_percentage,
            total_bsky_records_per_day=total_bsky_records_per_day,
            dominant_media=dominant_share(shares),
        )

    @property
    def prolific(self) -> bool:
        return self.only_posts_per_day > 0.8

    @property
    def engaged(self) -> bool:
        return self.reply_other_percentage >= 0.3


def dominant_share(shares: Mapping[str, float]) -> Optional[str]:
    """Key whose share is strictly greater than every other, if any."""
    if not shares:
        return None
    best = max(shares, key=lambda key: shares[key])
    if any(shares[key] >= shares[best] for key in shares if key != best):
        return None
    return best


def _poster(engaged: bool, media: Optional[str] = None, bad_alt: Optional[bool] = None) -> Callable[[PostingFacts], bool]:
    def predicate(facts: PostingFacts) -> bool:
        if not facts.prolific or facts.engaged != engaged:
            return False
        if media is not None and facts.dominant_media != media:
            return False
        if bad_alt is not None and (facts.alt_text_percentage <= 0.3) != bad_alt:
            return False
        return True

    return predicate


POSTING_STYLE_RULES: Sequence[Rule[PostingFacts]] = (
    (lambda f: f.posts_per_day < 0.1 and f.total_bsky_records_per_day > 0.3, "Lurker"),
    (_poster(True, "text"), "Engaged Text Poster"),
    (_poster(True, "image", bad_alt=True), "Engaged Image Poster who's bad at alt text"),
    (_poster(True, "image"), "Engaged Image Poster"),
    (_poster(True, "link"), "Engaged Link Poster"),
    (_poster(True, "video"), "Engaged Video Poster"),
    (_poster(True), "Engaged Poster"),
    (_poster(False, "text"), "Unengaged Text Poster"),
    (_poster(False, "image", bad_alt=True), "Unengaged Image Poster who's bad at alt text"),
    (_poster(False, "image"), "Unengaged Image Poster"),
    (_poster(False, "link"), "Unengaged Link Poster"),
    (_poster(False, "video"), "Unengaged Video Poster"),
    (_poster(False), "Unengaged Poster"),
    (lambda f: f.reply_other_percentage >= 0.5, "Reply Guy"),
    (lambda f: f.quote_other_percentage >= 0.5, "Quote Guy"),
    (lambda f: f.repost_other_percentage >= 0.5, "Repost Guy"),
)
POSTING_STYLE_DEFAULT = "Unknown"


def calculate_posting_style(stats: PostStats, total_bsky_records_per_day: float = 0.0) -> str:
    facts = PostingFacts.from_stats(stats, total_bsky_records_per_day)
    return first_match(POSTING_STYLE_RULES, facts, POSTING_STYLE_DEFAULT)


# ---------------------------------------------------------------------------
# Social status
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SocialFacts:
    age_in_days: int
    followers_count: int
    follows_count: int
    engagement_rate: float = 0.0

    @property
    def follow_ratio(self) -> float:
        return safe_div(self.follows_count, self.followers_count)


SOCIAL_STATUS_RULES: Sequence[Rule[SocialFacts]] = (
    (lambda f: f.age_in_days < 30, "Newbie"),
    (lambda f: f.follow_ratio < 0.5 and 500 <= f.followers_count < 10_000, "Micro Influencer"),
    (lambda f: f.follow_ratio < 0.5 and 10_000 <= f.followers_count < 100_000, "Influencer"),
    (lambda f: f.follow_ratio < 0.5 and f.followers_count >= 100_000, "Celebrity"),
    (lambda f: f.engagement_rate >= 5, "Conversation Starter"),
)
SOCIAL_STATUS_DEFAULT = "Community Member"


def calculate_social_status(facts: SocialFacts) -> str:
    return first_match(SOCIAL_STATUS_RULES, facts, SOCIAL_STATUS_DEFAULT)


# ---------------------------------------------------------------------------
# Profile completion
# ---------------------------------------------------------------------------


def _filled(profile: Mapping[str, Any], key: str) -> bool:
    value = profile.get(key)
    return isinstance(value, str) and bool(value.strip())


def calculate_profile_completion(profile: Mapping[str, Any]) -> str:
    present = [_filled(profile, key) for key in ("displayName", "banner", "description")]
    if all(present):
        return "complete"
    if any(present):
        return "incomplete"
    return "not started"


# ---------------------------------------------------------------------------
# Domain rarity
# ---------------------------------------------------------------------------

STANDARD_TLDS = (".com", ".org", ".net")

# (minimum length, label), longest first
DEFAULT_DOMAIN_RARITY = ((21, "very common"), (18, "common"), (17, "uncommon"), (16, "rare"), (15, "very rare"), (0, "extremely rare"))
STANDARD_TLD_RARITY = ((15, "very common"), (12, "common"), (9, "uncommon"), (7, "rare"), (6, "very rare"), (0, "extremely rare"))
OTHER_DOMAIN_RARITY = ((14, "very common"), (11, "common"), (8, "uncommon"), (6, "rare"), (5, "very rare"), (0, "extremely rare"))


def _length_rules(table: Sequence[Tuple[int, str]]) -> Sequence[Rule[int]]:
    return tuple((lambda length, floor=floor: length >= floor, label) for floor, label in table)


def is_default_handle(handle: str) -> bool:
    return handle.endswith("." + DEFAULT_HANDLE_DOMAIN)


def calculate_domain_rarity(handle: str) -> str:
    """Rarity label from the handle length; a pure function of the string."""
    handle = (handle or "").strip().lower()
    if not handle:
        return UNKNOWN
    if is_default_handle(handle):
        return first_match(_length_rules(DEFAULT_DOMAIN_RARITY), len(handle), UNKNOWN)
    if handle.endswith(STANDARD_TLDS):
        # the first label is never counted, so "example.com" measures "com"
        domain = handle.partition(".")[2]
        return first_match(_length_rules(STANDARD_TLD_RARITY), len(domain), UNKNOWN)
    return first_match(_length_rules(OTHER_DOMAIN_RARITY), len(handle), UNKNOWN)


# ---------------------------------------------------------------------------
# Era and account age
# ---------------------------------------------------------------------------

ERA_RULES: Sequence[Rule[date]] = (
    (lambda d: date(2022, 11, 16) <= d <= date(2023, 1, 31), "pre-history"),
    (lambda d: date(2023, 2, 1) <= d <= date(2024, 1, 31), "invite-only"),
    (lambda d: d > date(2024, 1, 31), "public-release"),
)


def calculate_era(created_at: Any) -> str:
    stamp = created_at if isinstance(created_at, datetime) else parse_timestamp(created_at)
    if stamp is None:
        return UNKNOWN
    return first_match(ERA_RULES, stamp.date(), UNKNOWN)


@dataclass(frozen=True, slots=True)
class AccountAge:
    age_in_days: int
    age_percentage: float


def calculate_age(created_at: Any, now: datetime) -> AccountAge:
    """Whole days since creation and the share of the network's lifetime."""
    stamp = created_at if isinstance(created_at, datetime) else parse_timestamp(created_at)
    reference = parse_timestamp(NETWORK_REFERENCE_DATE)
    days_since_reference = int(abs((now - reference).total_seconds()) // 86400) if reference else 0
    if stamp is None:
        return AccountAge(age_in_days=0, age_percentage=0.0)
    age_in_days = int(abs((now - stamp).total_seconds()) // 86400)
    return AccountAge(age_in_days=age_in_days, age_percentage=safe_div(age_in_days, days_since_reference))
