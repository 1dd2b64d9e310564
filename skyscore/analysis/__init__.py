"""Pure computations over fetched records: stats, labels and narrative."""

from .classify import (
    AccountAge,
    PostingFacts,
    SocialFacts,
    calculate_activity_status,
    calculate_age,
    calculate_domain_rarity,
    calculate_era,
    calculate_posting_style,
    calculate_profile_completion,
    calculate_social_status,
    first_match,
)
from .engagement import EngagementSnapshot, aggregate_engagement
from .narrative import build_narrative
from .stats import PostStats, compute_post_stats, round_numbers, round_to_two, safe_div

__all__ = [
    "AccountAge",
    "PostingFacts",
    "SocialFacts",
    "calculate_activity_status",
    "calculate_age",
    "calculate_domain_rarity",
    "calculate_era",
    "calculate_posting_style",
    "calculate_profile_completion",
    "calculate_social_status",
    "first_match",
    "EngagementSnapshot",
    "aggregate_engagement",
    "build_narrative",
    "PostStats",
    "compute_post_stats",
    "round_numbers",
    "round_to_two",
    "safe_div",
]
