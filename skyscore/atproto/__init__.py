"""AT Protocol access: identity, repository pagination and run context."""

from .context import Identity, PeriodWindow, RunContext, xrpc_url
from .identity import IdentityMetrics, fetch_identity_metrics, resolve_identity
from .pagination import PaginationResult, paginate
from .records import BlobEntry, CollectionRecord, FeedItem, Page, RecordKind, parse_timestamp
from .repo import (
    count_blobs,
    fetch_author_feed,
    fetch_profile,
    fetch_repo_description,
    list_collections,
    list_records,
)

__all__ = [
    "Identity",
    "PeriodWindow",
    "RunContext",
    "xrpc_url",
    "IdentityMetrics",
    "fetch_identity_metrics",
    "resolve_identity",
    "PaginationResult",
    "paginate",
    "BlobEntry",
    "CollectionRecord",
    "FeedItem",
    "Page",
    "RecordKind",
    "parse_timestamp",
    "count_blobs",
    "fetch_author_feed",
    "fetch_profile",
    "fetch_repo_description",
    "list_collections",
    "list_records",
]
