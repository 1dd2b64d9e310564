"""Assembly of the per-window score input document."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping

from skyscore.analysis import (
    AccountAge,
    EngagementSnapshot,
    PostStats,
    SocialFacts,
    calculate_activity_status,
    calculate_domain_rarity,
    calculate_era,
    calculate_posting_style,
    calculate_profile_completion,
    calculate_social_status,
    safe_div,
)
from skyscore.analysis.classify import is_default_handle
from skyscore.atproto import Identity, IdentityMetrics, PeriodWindow, parse_timestamp
from skyscore.atproto.records import CollectionRecord, is_bluesky_collection


def isoformat(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class AccountSnapshot:
    """Window-independent facts gathered once per run."""

    identity: Identity
    profile: Mapping[str, Any]
    metrics: IdentityMetrics
    collections: List[str]
    blobs_count: int
    age: AccountAge

    @property
    def bluesky_collections(self) -> List[str]:
        return [name for name in self.collections if is_bluesky_collection(name)]

    @property
    def other_collections(self) -> List[str]:
        return [name for name in self.collections if not is_bluesky_collection(name)]

    def profile_count(self, key: str) -> int:
        value = self.profile.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 0
        return max(0, int(value))

    @property
    def followers_count(self) -> int:
        return self.profile_count("followersCount")

    @property
    def follows_count(self) -> int:
        return self.profile_count("followsCount")

    @property
    def follow_ratio(self) -> float:
        return safe_div(self.follows_count, self.followers_count)

    @property
    def display_name(self) -> str:
        name = self.profile.get("displayName")
        return name.strip() if isinstance(name, str) else ""


@dataclass
class CollectionTally:
    """Record counts of one window, per collection and per week."""

    window: PeriodWindow
    counts: Dict[str, int] = field(default_factory=dict)
    bluesky: Dict[str, bool] = field(default_factory=dict)
    weekly: List[List[int]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.weekly:
            self.weekly = [[0, 0] for _ in range(self.window.week_count)]

    def add(self, record: CollectionRecord) -> None:
        self.bluesky[record.collection] = record.is_bluesky
        self.counts[record.collection] = self.counts.get(record.collection, 0) + 1
        if record.created_at is None:
            return
        bucket = self.weekly[self.window.week_index(record.created_at)]
        bucket[0 if record.is_bluesky else 1] += 1

    def ensure(self, collection: str) -> None:
        self.counts.setdefault(collection, 0)

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def bluesky_total(self) -> int:
        return sum(count for name, count in self.counts.items() if self.bluesky.get(name))

    @property
    def other_total(self) -> int:
        return self.total - self.bluesky_total

    def per_day(self, count: int) -> float:
        return safe_div(count, self.window.days)

    def weekly_activity(self) -> List[Dict[str, int]]:
        return [
            {"week": index + 1, "totalBskyRecords": bsky, "totalNonBskyRecords": other}
            for index, (bsky, other) in enumerate(self.weekly)
        ]

    def collection_stats(self) -> Dict[str, Dict[str, float]]:
        return {
            name: {"count": count, "perDay": self.per_day(count)}
            for name, count in self.counts.items()
        }


def _has_text(profile: Mapping[str, Any], key: str) -> bool:
    value = profile.get(key)
    return isinstance(value, str) and bool(value.strip())


def profile_edited(profile: Mapping[str, Any], window: PeriodWindow) -> bool:
    stamp = parse_timestamp(profile.get("indexedAt"))
    return stamp is not None and stamp >= window.cutoff_time


def build_window_document(
    account: AccountSnapshot,
    window: PeriodWindow,
    tally: CollectionTally,
    stats: PostStats,
    engagement: EngagementSnapshot,
    *,
    generated_at: datetime,
) -> dict:
    """Draft document for one window; every ``score`` is left for the scorer."""
    identity = account.identity
    profile = account.profile
    metrics = account.metrics
    handle = identity.handle
    post_stats = stats.to_dict()

    total_per_day = tally.per_day(tally.total)
    bsky_per_day = tally.per_day(tally.bluesky_total)
    other_per_day = tally.per_day(tally.other_total)
    activity_status = calculate_activity_status(total_per_day)
    bsky_activity_status = calculate_activity_status(bsky_per_day)
    atproto_activity_status = calculate_activity_status(other_per_day)

    posting_style = calculate_posting_style(stats, bsky_per_day)
    social_status = calculate_social_status(
        SocialFacts(
            age_in_days=account.age.age_in_days,
            followers_count=account.followers_count,
            follows_count=account.follows_count,
            engagement_rate=engagement.engagement_rate,
        )
    )
    completion = calculate_profile_completion(profile)
    rarity = calculate_domain_rarity(handle)
    handle_type = "default" if is_default_handle(handle) else "custom"
    edited = profile_edited(profile, window)
    posts_count = account.profile_count("postsCount")

    return {
        "handle": handle,
        "did": identity.did,
        "displayName": account.display_name,
        "serviceEndpoint": identity.service_endpoint,
        "pdsType": identity.pds_type,
        "didMethod": identity.did_method,
        "createdAt": profile.get("createdAt"),
        "periodDays": window.days,
        "cutoffTime": isoformat(window.cutoff_time),
        "scoreGeneratedAt": isoformat(generated_at),
        "blueskyCategories": {
            "profileQuality": {
                "score": None,
                "profileCompletion": completion,
                "hasDisplayName": bool(account.display_name),
                "hasDescription": _has_text(profile, "description"),
                "hasAvatar": _has_text(profile, "avatar"),
                "hasBanner": _has_text(profile, "banner"),
                "profileEdited": edited,
                "handleType": handle_type,
                "domainRarity": rarity,
            },
            "communityEngagement": {
                "score": None,
                "engagement": engagement.to_dict(),
                "replyOtherPercentage": post_stats["replyOtherPercentage"],
                "quoteOtherPercentage": post_stats["quoteOtherPercentage"],
                "repostOtherPercentage": post_stats["repostOtherPercentage"],
            },
            "contentActivity": {
                "score": None,
                "postingStyle": posting_style,
                "activityStatus": bsky_activity_status,
                "totalBskyRecords": tally.bluesky_total,
                "totalBskyRecordsPerDay": bsky_per_day,
                "postStats": post_stats,
            },
            "recognitionStatus": {
                "score": None,
                "socialStatus": social_status,
                "followersCount": account.followers_count,
                "followsCount": account.follows_count,
                "followRatio": account.follow_ratio,
                "postsCount": posts_count,
            },
        },
        "atprotoCategories": {
            "decentralization": {
                "score": None,
                "didMethod": identity.did_method,
                "pdsType": identity.pds_type,
                "serviceEndpoint": identity.service_endpoint,
                "rotationKeys": metrics.rotation_keys,
                "handleType": handle_type,
                "totalCustomAkas": metrics.total_custom_akas,
            },
            "protocolActivity": {
                "score": None,
                "activityStatus": atproto_activity_status,
                "totalNonBskyCollections": len(account.other_collections),
                "totalNonBskyRecords": tally.other_total,
                "totalNonBskyRecordsPerDay": other_per_day,
                "totalNonBskyRecordsPercentage": safe_div(tally.other_total, tally.total),
                "blobsCount": account.blobs_count,
                "blobsPerDay": safe_div(account.blobs_count, account.age.age_in_days),
                "blobsPerPost": safe_div(account.blobs_count, posts_count),
                "blobsPerImagePost": safe_div(account.blobs_count, stats.posts_with_images),
            },
            "accountMaturity": {
                "score": None,
                "createdAt": profile.get("createdAt"),
                "ageInDays": account.age.age_in_days,
                "agePercentage": account.age.age_percentage,
                "era": calculate_era(profile.get("createdAt")),
                "plcOperations": metrics.plc_operations,
                "totalAkas": metrics.total_akas,
            },
        },
        "activity": {
            "activityStatus": activity_status,
            "bskyActivityStatus": bsky_activity_status,
            "atprotoActivityStatus": atproto_activity_status,
            "profileEdited": edited,
            "totalCollections": len(account.collections),
            "totalBskyCollections": len(account.bluesky_collections),
            "totalNonBskyCollections": len(account.other_collections),
            "totalRecords": tally.total,
            "totalRecordsPerDay": total_per_day,
            "totalBskyRecords": tally.bluesky_total,
            "totalBskyRecordsPerDay": bsky_per_day,
            "totalBskyRecordsPercentage": safe_div(tally.bluesky_total, tally.total),
            "totalNonBskyRecords": tally.other_total,
            "totalNonBskyRecordsPerDay": other_per_day,
            "totalNonBskyRecordsPercentage": safe_div(tally.other_total, tally.total),
            "collections": tally.collection_stats(),
        },
        "weeklyActivity": tally.weekly_activity(),
        "alsoKnownAs": {
            "totalAkas": metrics.total_akas,
            "activeAkas": metrics.active_akas,
            "totalBskyAkas": metrics.total_bsky_akas,
            "totalCustomAkas": metrics.total_custom_akas,
            "domainRarity": rarity,
            "handleType": handle_type,
        },
        "identityMetrics": metrics.to_dict(),
    }
