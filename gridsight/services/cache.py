"""In-process LRU cache for derived views, keyed by table snapshot versions."""

import logging
from collections import OrderedDict
from typing import Any, Callable, Hashable, Sequence

from gridsight.config import settings

logger = logging.getLogger(__name__)


def _key(operation: str, versions: Sequence[int], params: Hashable) -> tuple:
    return (operation, tuple(versions), params)


class SnapshotCache:
    """
    Bounded LRU of derived results (joined views, filtered views, pivots).

    Keys embed the versions of the snapshots a result was computed from, so a
    replaced table simply stops being asked for; stale entries age out.
    """

    def __init__(self, max_entries: int = None):
        self.max_entries = max_entries or settings.CACHE_MAX_ENTRIES
        self._entries: "OrderedDict[tuple, Any]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get_or_compute(
        self,
        operation: str,
        versions: Sequence[int],
        params: Hashable,
        factory: Callable[[], Any],
    ) -> Any:
        """Return the cached result for (operation, versions, params) or compute and store it."""
        key = _key(operation, versions, params)
        if key in self._entries:
            self._entries.move_to_end(key)
            return self._entries[key]
        logger.debug("Cache miss for %s %s", operation, tuple(versions))
        value = factory()
        self._entries[key] = value
        if len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
        return value

    def clear(self) -> None:
        self._entries.clear()
