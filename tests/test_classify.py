from datetime import datetime, timezone

import pytest

from skyscore.analysis.classify import (
    ACTIVITY_RULES,
    POSTING_STYLE_DEFAULT,
    SocialFacts,
    calculate_activity_status,
    calculate_age,
    calculate_domain_rarity,
    calculate_era,
    calculate_posting_style,
    calculate_profile_completion,
    calculate_social_status,
    dominant_share,
    first_match,
)
from skyscore.analysis.stats import PostStats

NOW = datetime(2025, 3, 1, tzinfo=timezone.utc)


def test_first_match_falls_back_to_default():
    rules = ((lambda x: x > 10, "big"), (lambda x: x > 5, "medium"))
    assert first_match(rules, 20, "small") == "big"
    assert first_match(rules, 7, "small") == "medium"
    assert first_match(rules, 1, "small") == "small"


@pytest.mark.parametrize(
    "rate, label",
    [(0, "inactive"), (0.5, "eepy"), (1, "awake"), (9.99, "awake"), (10, "wired"), (250, "wired")],
)
def test_activity_status(rate, label):
    assert calculate_activity_status(rate) == label


def test_activity_rules_are_plain_data():
    assert [label for _, label in ACTIVITY_RULES] == ["inactive", "eepy", "awake"]


# --- domain rarity -----------------------------------------------------------


def test_default_domain_length_17_is_uncommon():
    handle = "abcde.bsky.social"
    assert len(handle) == 17
    assert calculate_domain_rarity(handle) == "uncommon"


@pytest.mark.parametrize(
    "handle, label",
    [
        ("a.bsky.social", "extremely rare"),
        ("abc.bsky.social", "very rare"),
        ("abcd.bsky.social", "rare"),
        ("abcdefgh.bsky.social", "common"),
        ("abcdefghijklmnop.bsky.social", "very common"),
        ("me.a.com", "extremely rare"),
        ("me.ab.org", "very rare"),
        ("me.abc.net", "rare"),
        ("alice.example.com", "uncommon"),
        ("alice.longexample.net", "very common"),
        ("example.com", "extremely rare"),
        ("a.io", "extremely rare"),
        ("alice.dev", "uncommon"),
        ("someone.example.io", "very common"),
    ],
)
def test_domain_rarity_tables(handle, label):
    assert calculate_domain_rarity(handle) == label


def test_domain_rarity_is_pure():
    assert calculate_domain_rarity("Alice.Example.com") == calculate_domain_rarity("alice.example.com")
    assert calculate_domain_rarity("") == "unknown"


# --- era / age ------------------------------------------------------------------


@pytest.mark.parametrize(
    "created, era",
    [
        ("2022-11-16T23:00:00Z", "pre-history"),
        ("2023-01-31T23:59:59Z", "pre-history"),
        ("2023-02-01T00:00:00Z", "invite-only"),
        ("2024-01-31T12:00:00Z", "invite-only"),
        ("2024-02-06T00:00:00Z", "public-release"),
        ("2021-05-05T00:00:00Z", "unknown"),
        (None, "unknown"),
    ],
)
def test_era(created, era):
    assert calculate_era(created) == era


def test_calculate_age():
    age = calculate_age("2025-02-19T12:00:00Z", NOW)
    assert age.age_in_days == 9
    assert 0 < age.age_percentage < 0.02


def test_calculate_age_from_launch_is_full_share():
    age = calculate_age("2022-11-17T00:35:16.391Z", NOW)
    assert age.age_percentage == 1


def test_calculate_age_without_date():
    age = calculate_age(None, NOW)
    assert age.age_in_days == 0
    assert age.age_percentage == 0


# --- profile / social ----------------------------------------------------------


def test_profile_completion():
    assert calculate_profile_completion({"displayName": "A", "banner": "b", "description": "d"}) == "complete"
    assert calculate_profile_completion({"displayName": "A", "description": "   "}) == "incomplete"
    assert calculate_profile_completion({}) == "not started"


@pytest.mark.parametrize(
    "facts, label",
    [
        (SocialFacts(age_in_days=5, followers_count=50_000, follows_count=10), "Newbie"),
        (SocialFacts(age_in_days=400, followers_count=800, follows_count=100), "Micro Influencer"),
        (SocialFacts(age_in_days=400, followers_count=20_000, follows_count=100), "Influencer"),
        (SocialFacts(age_in_days=400, followers_count=200_000, follows_count=100), "Celebrity"),
        (SocialFacts(age_in_days=400, followers_count=800, follows_count=700, engagement_rate=7), "Conversation Starter"),
        (SocialFacts(age_in_days=400, followers_count=800, follows_count=700, engagement_rate=1), "Community Member"),
        (SocialFacts(age_in_days=400, followers_count=0, follows_count=0), "Community Member"),
    ],
)
def test_social_status(facts, label):
    assert calculate_social_status(facts) == label


def test_follow_ratio_zero_without_followers():
    assert SocialFacts(age_in_days=1, followers_count=0, follows_count=25).follow_ratio == 0


# --- posting style -------------------------------------------------------------


def test_zero_posts_resolves_to_fallback_label():
    assert calculate_posting_style(PostStats(period_days=30)) == POSTING_STYLE_DEFAULT


def test_zero_posts_with_other_activity_is_lurker():
    assert calculate_posting_style(PostStats(period_days=30), total_bsky_records_per_day=2.0) == "Lurker"


def test_engaged_image_poster_bad_at_alt_text():
    stats = PostStats(
        period_days=30,
        posts_count=60,
        top_level_posts=30,
        replies=30,
        posts_with_images=40,
        image_posts_alt_text=4,
        posts_with_only_text=20,
    )
    assert calculate_posting_style(stats) == "Engaged Image Poster who's bad at alt text"


def test_unengaged_text_poster():
    stats = PostStats(period_days=30, posts_count=40, top_level_posts=40, posts_with_only_text=40)
    assert calculate_posting_style(stats) == "Unengaged Text Poster"


def test_prolific_without_dominant_medium():
    stats = PostStats(
        period_days=30,
        posts_count=40,
        top_level_posts=40,
        posts_with_only_text=20,
        posts_with_images=20,
        image_posts_alt_text=20,
    )
    assert calculate_posting_style(stats) == "Unengaged Poster"


def test_reply_guy():
    stats = PostStats(period_days=30, posts_count=20, top_level_posts=2, replies=18, posts_with_only_text=20)
    assert calculate_posting_style(stats) == "Reply Guy"


def test_repost_guy():
    stats = PostStats(period_days=30, posts_count=10, top_level_posts=10, reposts=8, posts_with_only_text=10)
    assert calculate_posting_style(stats) == "Repost Guy"


def test_dominant_share_requires_strict_maximum():
    assert dominant_share({"text": 0.5, "image": 0.5}) is None
    assert dominant_share({"text": 0.6, "image": 0.4}) == "text"
    assert dominant_share({}) is None
