"""Per-run URL memoization.

One ``RunCache`` is created for each resolution run and dropped with it; it is
never shared between runs and never invalidated. All network reads of a run go
through it so that different computation phases asking for the same page
(the 30- and 90-day windows walk the same first pages) hit the network once.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Any, Callable

_LOGGER = logging.getLogger("skyscore.cache")


class RunCache:
    """URL -> decoded JSON memo with hit/miss accounting.

    Execution within a run is sequential, so no lock is taken. Failed fetches
    are not cached: the factory's exception propagates and the next caller
    retries.
    """

    def __init__(self) -> None:
        self._store: OrderedDict[str, Any] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __contains__(self, url: str) -> bool:
        return url in self._store

    def __len__(self) -> int:
        return len(self._store)

    def get_or_set(self, url: str, factory: Callable[[], Any]) -> Any:
        """Return the cached value for *url*, calling *factory* on miss."""
        if url in self._store:
            self.hits += 1
            _LOGGER.debug("cache hit %s", url)
            return self._store[url]
        self.misses += 1
        value = factory()
        self._store[url] = value
        return value

    def stats(self) -> dict[str, int]:
        return {"items": len(self._store), "hits": self.hits, "misses": self.misses}
