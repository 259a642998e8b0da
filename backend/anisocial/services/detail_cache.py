"""
detail_cache.py

Statistic bundles per item for the current root user. Follower entries are fetched once per
session, so bundles never expire; the only invalidation is a full clear on root user reload.
"""
import logging
from typing import Dict, Optional

from anisocial.schemas import StatisticBundle

logger = logging.getLogger(__name__)


class DetailCache:
    def __init__(self):
        self._bundles: Dict[int, StatisticBundle] = {}

    def __len__(self) -> int:
        return len(self._bundles)

    def __contains__(self, item_id: int) -> bool:
        return item_id in self._bundles

    def get(self, item_id: int) -> Optional[StatisticBundle]:
        bundle = self._bundles.get(item_id)
        if bundle is not None:
            logger.debug(f"[DetailCache] Cache hit for item {item_id}")
            # Callers get their own copy so edits never leak into the cache
            return bundle.model_copy(deep=True)
        return None

    def store(self, item_id: int, bundle: StatisticBundle):
        self._bundles[item_id] = bundle.model_copy(deep=True)

    def clear(self):
        if self._bundles:
            logger.debug(f"[DetailCache] Dropping {len(self._bundles)} cached bundles")
        self._bundles = {}
