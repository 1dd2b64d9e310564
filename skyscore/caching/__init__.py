"""Caching primitives."""

from .run_cache import RunCache

__all__ = ["RunCache"]
