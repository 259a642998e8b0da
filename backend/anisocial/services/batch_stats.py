"""
batch_stats.py

Per-item follower lookups for the detail view.

AliasedBatchStatsFetcher sends one multiplexed request (GraphQL aliases). For backends without
request multiplexing, ConcurrentBatchStatsFetcher issues single-item requests with bounded
concurrency and returns the same mapping.
"""
import asyncio
import logging
from typing import Dict, Iterable, Optional

from anisocial.core import metrics
from anisocial.core.config import settings
from anisocial.schemas import ItemRating
from anisocial.services.anilist_client import AniListAPIError
from anisocial.services.media_service import MediaService
from anisocial.services.social_errors import BatchFetchFailed

logger = logging.getLogger(__name__)


class AliasedBatchStatsFetcher:
    def __init__(self, service: MediaService):
        self.service = service

    async def fetch(self, item_id: int, follower_ids: Iterable[int]) -> Dict[int, ItemRating]:
        """Return follower id -> entry for followers that have the item on their list.

        Raises BatchFetchFailed on transport errors; missing entries are never an error.
        """
        wanted = list(dict.fromkeys(follower_ids))
        try:
            with metrics.Timer("social.batch_fetch"):
                records = await self._fetch(item_id, wanted)
        except AniListAPIError as e:
            logger.error(f"[BatchStats] Batch fetch for item {item_id} failed: {e}")
            raise BatchFetchFailed(item_id, str(e)) from e
        await metrics.increment("social.batch_fetch")
        wanted_set = set(wanted)
        return {fid: record for fid, record in records.items() if fid in wanted_set}

    async def _fetch(self, item_id: int, follower_ids: list) -> Dict[int, ItemRating]:
        return await self.service.batch_single_item_ratings(item_id, follower_ids)


class ConcurrentBatchStatsFetcher(AliasedBatchStatsFetcher):
    def __init__(self, service: MediaService, concurrency: Optional[int] = None):
        super().__init__(service)
        self.concurrency = max(1, concurrency or settings.social_fetch_concurrency)

    async def _fetch(self, item_id: int, follower_ids: list) -> Dict[int, ItemRating]:
        semaphore = asyncio.Semaphore(self.concurrency)

        async def fetch_one(follower_id: int):
            async with semaphore:
                return follower_id, await self.service.single_item_rating(item_id, follower_id)

        tasks = [asyncio.ensure_future(fetch_one(fid)) for fid in follower_ids]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            # One failure fails the batch; don't leave siblings running
            for task in tasks:
                task.cancel()
            raise
        return {fid: record for fid, record in results if record is not None}


def build_batch_fetcher(service: MediaService, strategy: Optional[str] = None, concurrency: Optional[int] = None):
    strategy = (strategy or settings.social_batch_strategy).lower()
    if strategy == "concurrent":
        return ConcurrentBatchStatsFetcher(service, concurrency)
    if strategy != "aliased":
        logger.warning(f"[BatchStats] Unknown batch strategy '{strategy}', using aliased requests")
    return AliasedBatchStatsFetcher(service)
