"""
social_graph.py

Social graph store: the accounts a root user follows, what each of them has on their list,
and the aggregates derived from that.

- load_followers(name) replaces the follower set and drops everything derived from the old one
- load_follower_ratings(id) fetches one follower's list on demand (idempotent once loaded)
- popularity_scores() is the weighted count of followers per item, recomputed after any change
- inspect_item(id) returns the per-item statistic bundle, cached until the next root reload

All state lives on the instance. Mutations happen between awaits only, so with asyncio no lock
is needed. Each root reload bumps `generation`; work started under an older generation is
discarded when it completes.
"""
import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from anisocial.core import metrics
from anisocial.core.config import settings
from anisocial.schemas import Follower, FollowerRating, FollowerSummary, LoadState, MediaType, StatisticBundle
from anisocial.services.anilist_client import AniListAPIError
from anisocial.services.batch_stats import build_batch_fetcher
from anisocial.services.detail_cache import DetailCache
from anisocial.services.follower_directory import FollowerDirectory, fetch_following
from anisocial.services.media_service import MediaService
from anisocial.services.score_index import FollowerScoreIndex, fetch_follower_scores
from anisocial.services.social_errors import FollowerNotFound, FollowerRatingsFetchFailed
from anisocial.services.social_stats import build_bundle, empty_bundle
from anisocial.services.weights import WeightTable

logger = logging.getLogger(__name__)


class SocialGraph:
    def __init__(self, service: MediaService, media_type: Optional[MediaType] = None,
                 batch_fetcher=None, retry_failed: Optional[bool] = None):
        self.service = service
        self.media_type = MediaType(media_type or settings.social_media_type)
        self.batch_fetcher = batch_fetcher or build_batch_fetcher(service)
        self.retry_failed = settings.social_retry_failed_followers if retry_failed is None else retry_failed

        self.directory = FollowerDirectory()
        self.score_index = FollowerScoreIndex()
        self.weights = WeightTable()
        self.detail_cache = DetailCache()

        self.generation = 0
        # Bumped by anything that invalidates in-flight rating fetches (reload, media type switch)
        self._index_epoch = 0
        self.loading_social = False
        self._details_in_flight = 0
        self._popularity: Optional[Tuple[Tuple[int, int], Dict[int, int]]] = None

    @property
    def followers(self) -> List[Follower]:
        return self.directory.followers

    @property
    def loading_details(self) -> bool:
        return self._details_in_flight > 0

    def _require_follower(self, follower_id: int) -> Follower:
        follower = self.directory.get(follower_id)
        if follower is None:
            raise FollowerNotFound(follower_id)
        return follower

    # Follower directory

    async def load_followers(self, root_user_name: str) -> Optional[List[Follower]]:
        """Load everyone `root_user_name` follows, replacing the current social graph.

        Returns the new follower list, or None when a later call superseded this one.
        Raises IdentityNotFound / DirectoryFetchFailed; the directory is left empty then.
        """
        self.generation += 1
        self._index_epoch += 1
        generation = self.generation
        self.loading_social = True
        # Everything below is keyed against the previous root user
        self.directory.clear()
        self.score_index.clear()
        self.detail_cache.clear()

        try:
            identity, followers = await fetch_following(self.service, root_user_name)
        except Exception as e:
            if generation == self.generation:
                logger.warning(f"[SocialGraph] Loading social graph for '{root_user_name}' failed: {e}")
            raise
        finally:
            if generation == self.generation:
                self.loading_social = False

        if generation != self.generation:
            logger.info(f"[SocialGraph] Discarding follower list for '{root_user_name}', a newer load superseded it")
            return None

        self.directory.replace(identity, followers)
        logger.info(f"[SocialGraph] Loaded {len(followers)} followers for '{identity.name}'")
        return self.directory.followers

    def switch_media_type(self, media_type: MediaType):
        """Follower maps are per media type, so switching drops them and resets load states."""
        media_type = MediaType(media_type)
        if media_type == self.media_type:
            return
        logger.info(f"[SocialGraph] Switching media type {self.media_type.value} -> {media_type.value}")
        self.media_type = media_type
        self._index_epoch += 1
        self.score_index.clear()
        self.directory.reset_load_states()

    # Follower score index

    async def load_follower_ratings(self, follower_id: int, force: bool = False) -> bool:
        """Fetch one follower's list into the score index.

        Returns True when a sub-map was installed, False when nothing was done (already loaded,
        failed and not forced, or superseded by a reload). Raises FollowerRatingsFetchFailed.
        """
        follower = self._require_follower(follower_id)
        if follower.load_state == LoadState.LOADED:
            return False
        if follower.load_state == LoadState.FAILED and not force:
            logger.debug(f"[SocialGraph] Follower {follower_id} failed before, skipping without force")
            return False

        epoch = self._index_epoch
        media_type = self.media_type
        follower.load_state = LoadState.LOADING
        installed = False
        try:
            with metrics.Timer("social.ratings_fetch"):
                scores = await fetch_follower_scores(self.service, follower.name, media_type)
        except AniListAPIError as e:
            logger.warning(f"[SocialGraph] Loading list of '{follower.name}' failed: {e}")
            if epoch == self._index_epoch and follower.load_state == LoadState.LOADING:
                follower.load_state = LoadState.NOT_LOADED if self.retry_failed else LoadState.FAILED
            raise FollowerRatingsFetchFailed(follower_id, str(e)) from e
        else:
            if epoch != self._index_epoch or not self.directory.is_current(follower):
                logger.info(f"[SocialGraph] Discarding list of '{follower.name}', the social graph changed meanwhile")
                return False
            self.score_index.install(follower_id, scores)
            follower.load_state = LoadState.LOADED
            installed = True
            logger.info(f"[SocialGraph] Loaded {len(scores)} {media_type.value} entries for '{follower.name}'")
        finally:
            # Cancellation must not leave the follower stuck in LOADING. After a reload or media
            # type switch the state belongs to whichever fetch started since, so leave it alone.
            if not installed and epoch == self._index_epoch and follower.load_state == LoadState.LOADING:
                follower.load_state = LoadState.NOT_LOADED
        await metrics.increment("social.ratings_fetch")
        return True

    async def load_all_follower_ratings(self, concurrency: Optional[int] = None) -> Dict[int, str]:
        """Load every follower not loaded yet; failures are isolated per follower.

        Returns follower id -> error message for the followers that failed.
        """
        semaphore = asyncio.Semaphore(max(1, concurrency or settings.social_fetch_concurrency))
        failures: Dict[int, str] = {}

        async def load_one(follower_id: int):
            async with semaphore:
                try:
                    await self.load_follower_ratings(follower_id)
                except FollowerRatingsFetchFailed as e:
                    failures[follower_id] = str(e)

        pending = [f.id for f in self.followers if f.load_state != LoadState.LOADED]
        await asyncio.gather(*(load_one(fid) for fid in pending))
        if failures:
            logger.warning(f"[SocialGraph] {len(failures)}/{len(pending)} follower lists failed to load")
        return failures

    # Weights

    def weight_of(self, follower_id: int) -> int:
        return self.weights.get(follower_id)

    def toggle_weight(self, follower_id: int) -> int:
        return self.weights.toggle(follower_id)

    # Aggregates

    def popularity_scores(self) -> Dict[int, int]:
        """Item id -> summed weight of loaded followers that have the item on their list."""
        key = (self.score_index.version, self.weights.version)
        if self._popularity is not None and self._popularity[0] == key:
            return dict(self._popularity[1])

        scores: Dict[int, int] = {}
        for follower_id, item_scores in self.score_index.items():
            weight = self.weights.get(follower_id)
            for item_id in item_scores:
                scores[item_id] = scores.get(item_id, 0) + weight
        self._popularity = (key, scores)
        return dict(scores)

    def top_items(self, limit: int = 20) -> List[Tuple[int, int]]:
        ranked = sorted(self.popularity_scores().items(), key=lambda kv: (-kv[1], kv[0]))
        return ranked[:max(0, limit)]

    def social_details_from_index(self, item_id: int) -> StatisticBundle:
        """Statistic bundle from already loaded follower lists only; never touches the network."""
        ratings = []
        for follower_id, rating in self.score_index.ratings_for_item(item_id):
            follower = self.directory.get(follower_id)
            if follower is not None:
                ratings.append(FollowerRating(follower=FollowerSummary.from_follower(follower), rating=rating, status=None))
        return build_bundle(ratings)

    async def inspect_item(self, item_id: int) -> StatisticBundle:
        """Per-item statistics across all followers, fetched once and cached.

        Raises BatchFetchFailed; the cache is left untouched then, so calling again retries.
        """
        cached = self.detail_cache.get(item_id)
        if cached is not None:
            await metrics.increment("social.detail_cache.hit")
            return cached

        followers = self.directory.followers
        if not followers:
            # Not cached: followers may still arrive for this root user
            return empty_bundle()

        await metrics.increment("social.detail_cache.miss")
        generation = self.generation
        self._details_in_flight += 1
        try:
            records = await self.batch_fetcher.fetch(item_id, [f.id for f in followers])
        finally:
            self._details_in_flight -= 1

        ratings = []
        for follower in followers:
            record = records.get(follower.id)
            if record is not None:
                ratings.append(FollowerRating(follower=FollowerSummary.from_follower(follower), rating=record.rating, status=record.status))
        bundle = build_bundle(ratings)

        if generation == self.generation:
            self.detail_cache.store(item_id, bundle)
        else:
            logger.info(f"[SocialGraph] Not caching stats for item {item_id}, the root user changed meanwhile")
        logger.debug(f"[SocialGraph] Item {item_id}: {bundle.count} followers, avg {bundle.average}, median {bundle.median}")
        return bundle
