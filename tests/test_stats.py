import json

from skyscore.analysis.stats import (
    PostStats,
    compute_post_stats,
    has_alt_text,
    media_type,
    round_numbers,
    round_to_two,
    safe_div,
)
from skyscore.atproto.records import CollectionRecord

OWNER = "did:plc:owner"
OTHER = "did:plc:other"


def post(value):
    return CollectionRecord.from_payload("app.bsky.feed.post", {"uri": f"at://{OWNER}/app.bsky.feed.post/x", "value": value})


def repost(subject_did):
    return CollectionRecord.from_payload(
        "app.bsky.feed.repost",
        {"value": {"subject": {"uri": f"at://{subject_did}/app.bsky.feed.post/1"}}},
    )


def images(*alts):
    return {"$type": "app.bsky.embed.images", "images": [{"alt": alt} for alt in alts]}


SAMPLE = [
    post({"text": "plain"}),
    post({"text": "pic", "embed": images("a cat")}),
    post({"text": "pic", "embed": images("  ", "")}),
    post({"text": "reply", "reply": {"parent": {"uri": f"at://{OWNER}/app.bsky.feed.post/1"}}}),
    post({"text": "reply", "reply": {"parent": {"uri": f"at://{OTHER}/app.bsky.feed.post/1"}}}),
    post({"text": "quote", "embed": {"$type": "app.bsky.embed.record", "record": {"uri": f"at://{OTHER}/p/1"}}}),
    post(
        {
            "text": "quote with media",
            "embed": {
                "$type": "app.bsky.embed.recordWithMedia",
                "record": {"record": {"uri": f"at://{OWNER}/p/2"}},
                "media": images("alt"),
            },
        }
    ),
    post({"text": "link", "facets": [{"features": [{"$type": "app.bsky.richtext.facet#link"}]}]}),
    post({"text": "@bob", "facets": [{"features": [{"$type": "app.bsky.richtext.facet#mention"}]}]}),
    post({"text": "video", "embed": {"$type": "app.bsky.embed.video"}}),
    repost(OWNER),
    repost(OTHER),
]


def test_counts_by_axis():
    stats = compute_post_stats(SAMPLE, OWNER, 30)
    assert stats.posts_count == 10
    assert stats.replies == 2
    assert stats.replies_to_self == 1
    assert stats.top_level_posts == 8
    assert stats.quotes == 2
    assert stats.self_quotes == 1
    assert stats.other_quotes == 1
    assert stats.reposts == 2
    assert stats.self_reposts == 1
    assert stats.posts_with_images == 3
    assert stats.image_posts_alt_text == 2
    assert stats.posts_with_video == 1
    assert stats.posts_with_links == 1
    assert stats.posts_with_mentions == 1
    assert stats.posts_with_only_text == 4


def test_media_classes_are_mutually_exclusive():
    stats = compute_post_stats(SAMPLE, OWNER, 30)
    media_total = (
        stats.posts_with_images
        + stats.posts_with_video
        + stats.posts_with_links
        + stats.posts_with_mentions
        + stats.posts_with_only_text
    )
    assert media_total == stats.posts_count


def test_embed_wins_over_link_facet():
    value = {
        "embed": {"$type": "app.bsky.embed.external"},
        "facets": [{"features": [{"$type": "app.bsky.richtext.facet#mention"}]}],
    }
    assert media_type(value) == "link"
    assert media_type({"embed": images("x"), "facets": [{"features": [{"$type": "app.bsky.richtext.facet#link"}]}]}) == "image"


def test_alt_text_requires_non_blank_text():
    assert not has_alt_text({"embed": images(" ", "\n")})
    assert has_alt_text({"embed": images("", "a dog")})


def test_zero_posts_window():
    stats = compute_post_stats([], OWNER, 30)
    data = stats.to_dict()
    assert data["postsCount"] == 0
    assert data["postsPerDay"] == 0
    assert data["altTextPercentage"] == 0
    assert data["replyPercentage"] == 0


def test_zero_period_days_gives_zero_rates():
    stats = compute_post_stats(SAMPLE, OWNER, 0)
    assert stats.to_dict()["postsPerDay"] == 0


def test_alt_text_percentage_in_unit_interval():
    stats = compute_post_stats(SAMPLE, OWNER, 30)
    assert 0 <= stats.alt_text_percentage <= 1
    assert PostStats(period_days=30).alt_text_percentage == 0


def test_rates_rounded_only_when_packaged():
    stats = compute_post_stats(SAMPLE, OWNER, 30)
    assert stats.per_day(stats.posts_count) == 10 / 30
    assert stats.to_dict()["postsPerDay"] == 10 / 30
    assert round_numbers(stats.to_dict())["postsPerDay"] == 0.33


def test_compute_post_stats_is_pure():
    first = json.dumps(compute_post_stats(SAMPLE, OWNER, 90).to_dict(), sort_keys=True)
    second = json.dumps(compute_post_stats(SAMPLE, OWNER, 90).to_dict(), sort_keys=True)
    assert first == second


def test_round_to_two_is_idempotent():
    for value in (0.0, 1 / 3, 2.675, 10.005, 123456.789, -0.125):
        assert round_to_two(round_to_two(value)) == round_to_two(value)


def test_round_numbers_leaves_ints_and_bools():
    data = {"a": 1, "b": True, "c": 1 / 3, "d": [2 / 3, {"e": 0.5}], "f": None}
    assert round_numbers(data) == {"a": 1, "b": True, "c": 0.33, "d": [0.67, {"e": 0.5}], "f": None}


def test_safe_div():
    assert safe_div(5, 0) == 0
    assert safe_div(1, 4) == 0.25
