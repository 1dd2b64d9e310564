"""Plain-language summary of a window document.

``build_narrative`` only reads the document it is given; it never touches the
network and returns the same three paragraphs for the same input.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence, Tuple

from .classify import dominant_share, is_default_handle
from .stats import round_to_two

AGE_STATEMENTS: Sequence[Tuple[float, str]] = (
    (0.97, "since the very beginning"),
    (0.7, "for a very long time"),
    (0.5, "for a long time"),
    (0.1, "for awhile"),
    (0.02, "for only a short period of time"),
)
AGE_FALLBACK = "for barely any time at all"

FEATURE_STATEMENTS: Sequence[Tuple[int, str]] = (
    (12, "they are using all of Bluesky's core features"),
    (8, "they are using most of Bluesky's core features"),
    (3, "they are using some of Bluesky's core features"),
)
FEATURE_FALLBACK = "they haven't used any of Bluesky's core features yet"

# (minimum collections, records strictly above, statement)
ECOSYSTEM_STATEMENTS: Sequence[Tuple[int, int, str]] = (
    (10, 100, "is extremely engaged, having used many different services or tools"),
    (5, 50, "is very engaged, having used many different services or tools"),
    (1, 5, "has dipped their toes in the water, but has yet to go deeper"),
)
ECOSYSTEM_FALLBACK = "has not yet explored what's out there"

ENGAGEMENT_BANDS: Sequence[Tuple[float, str]] = (
    (10, "exceptionally high"),
    (3, "high"),
    (1, "moderate"),
)

MEDIA_PHRASES = {
    "text": "mostly text",
    "image": "mostly images",
    "link": "mostly links",
    "video": "mostly video",
}


def _section(doc: Mapping[str, Any], *path: str) -> Mapping[str, Any]:
    node: Any = doc
    for key in path:
        node = node.get(key) if isinstance(node, Mapping) else None
    return node if isinstance(node, Mapping) else {}


def _number(mapping: Mapping[str, Any], key: str) -> float:
    value = mapping.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def _threshold(value: float, table: Sequence[Tuple[float, str]], fallback: str) -> str:
    for floor, statement in table:
        if value >= floor:
            return statement
    return fallback


def _display_name(doc: Mapping[str, Any]) -> str:
    name = doc.get("displayName")
    if isinstance(name, str) and name.strip():
        return name.strip()
    return str(doc.get("handle") or "This account")


def ecosystem_statement(collections: int, records: int) -> str:
    for min_collections, min_records, statement in ECOSYSTEM_STATEMENTS:
        if collections >= min_collections and records > min_records:
            return statement
    return ECOSYSTEM_FALLBACK


def domain_history_statement(handle: str, total_akas: int, custom_akas: int) -> str:
    if is_default_handle(handle):
        if custom_akas > 0:
            return "They've used a custom domain name at some point but are currently using a default Bluesky handle"
        return "They still have a default Bluesky handle"
    if total_akas > 2:
        return "They have a custom domain set and have a history of using different aliases"
    return "They currently are using a custom domain"


def rotation_key_statement(did_method: str, rotation_keys: int) -> str:
    if did_method == "web":
        return "Their identity is self-hosted on did:web, so it has no PLC rotation keys"
    if rotation_keys == 2:
        return "They don't have their own rotation key set"
    return "They have their own rotation key set"


def engagement_band(rate: float) -> str:
    if rate <= 0:
        return "no measurable engagement"
    return _threshold(rate, ENGAGEMENT_BANDS, "low") + " engagement"


def media_statement(post_stats: Mapping[str, Any]) -> str:
    shares = {
        "text": _number(post_stats, "textPercentage"),
        "image": _number(post_stats, "imagePercentage"),
        "link": _number(post_stats, "linkPercentage"),
        "video": _number(post_stats, "videoPercentage"),
    }
    dominant = dominant_share(shares)
    if dominant is None:
        return "a mix of text, images, links and video"
    return MEDIA_PHRASES[dominant]


def alt_text_statement(post_stats: Mapping[str, Any]) -> str:
    if not _number(post_stats, "postsWithImages"):
        return ""
    coverage = _number(post_stats, "altTextPercentage")
    if coverage >= 0.9:
        return " They nearly always add alt text to their images."
    if coverage >= 0.5:
        return " They usually add alt text to their images."
    if coverage > 0:
        return " They only sometimes add alt text to their images."
    return " They never add alt text to their images."


def _identity_paragraph(doc: Mapping[str, Any], name: str) -> str:
    maturity = _section(doc, "atprotoCategories", "accountMaturity")
    decentralization = _section(doc, "atprotoCategories", "decentralization")
    profile_quality = _section(doc, "blueskyCategories", "profileQuality")
    activity = _section(doc, "activity")
    aliases = _section(doc, "alsoKnownAs")
    handle = str(doc.get("handle") or "")

    age = _threshold(_number(maturity, "agePercentage"), AGE_STATEMENTS, AGE_FALLBACK)
    features = _threshold(_number(activity, "totalBskyCollections"), FEATURE_STATEMENTS, FEATURE_FALLBACK)
    ecosystem = ecosystem_statement(
        _number(activity, "totalNonBskyCollections"), _number(activity, "totalNonBskyRecords")
    )
    history = domain_history_statement(
        handle, _number(aliases, "totalAkas"), _number(aliases, "totalCustomAkas")
    )
    keys = rotation_key_statement(
        str(decentralization.get("didMethod") or ""), _number(decentralization, "rotationKeys")
    )
    if decentralization.get("pdsType") == "Bluesky":
        host = "their PDS is hosted by a Bluesky mushroom"
    else:
        host = "their PDS is hosted by either a third-party or themselves"

    return (
        f"{name} has been on the network {age} and is {activity.get('activityStatus', 'inactive')}. "
        f"Their profile is {profile_quality.get('profileCompletion', 'not started')}, and {features}. "
        f"When it comes to the broader AT Proto ecosystem, this identity {ecosystem}. "
        f"{history} which is {profile_quality.get('domainRarity', 'unknown')}. "
        f"{keys}, and {host}."
    )


def _posting_paragraph(doc: Mapping[str, Any], name: str) -> str:
    maturity = _section(doc, "atprotoCategories", "accountMaturity")
    content = _section(doc, "blueskyCategories", "contentActivity")
    post_stats = _section(content, "postStats")
    days = doc.get("periodDays") or 0

    text = (
        f"{name} first joined Bluesky during the {maturity.get('era', 'unknown')} era. "
        f"Their style of posting is \"{content.get('postingStyle', 'Unknown')}\". "
    )
    if not _number(post_stats, "postsCount"):
        return text + f"They haven't posted in the last {days} days."
    return text + f"Over the last {days} days their posts consisted of {media_statement(post_stats)}." + alt_text_statement(post_stats)


def _social_paragraph(doc: Mapping[str, Any], name: str) -> str:
    recognition = _section(doc, "blueskyCategories", "recognitionStatus")
    engagement = _section(doc, "blueskyCategories", "communityEngagement", "engagement")
    days = doc.get("periodDays") or 0
    rate = _number(engagement, "engagementRate")

    return (
        f"They are {recognition.get('socialStatus', 'Community Member')} as is indicated by their follower count "
        f"of {int(_number(recognition, 'followersCount'))} and their follower/following ratio of "
        f"{round_to_two(_number(recognition, 'followRatio'))}. "
        f"In the last {days} days their posts received {int(_number(engagement, 'totalReceived'))} interactions, "
        f"which is {engagement_band(rate)} ({round_to_two(rate)} per post)."
    )


def build_narrative(doc: Mapping[str, Any]) -> dict[str, str]:
    name = _display_name(doc)
    return {
        "narrative1": _identity_paragraph(doc, name),
        "narrative2": _posting_paragraph(doc, name),
        "narrative3": _social_paragraph(doc, name),
    }
