"""
score_index.py

Per-follower item -> rating maps. A follower's map is installed whole by a single fetch and
never edited afterwards; the version counter lets derived views know when to recompute.
"""
import logging
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple

from anisocial.core.config import settings
from anisocial.schemas import MediaType, RatedEntry
from anisocial.services.media_service import MediaService

logger = logging.getLogger(__name__)


class FollowerScoreIndex:
    def __init__(self):
        self._scores: Dict[int, Dict[int, int]] = {}
        self.version = 0

    def __len__(self) -> int:
        return len(self._scores)

    def __contains__(self, follower_id: int) -> bool:
        return follower_id in self._scores

    def get(self, follower_id: int) -> Optional[Mapping[int, int]]:
        return self._scores.get(follower_id)

    def items(self) -> Iterator[Tuple[int, Mapping[int, int]]]:
        return iter(self._scores.items())

    def install(self, follower_id: int, scores: Mapping[int, int]):
        self._scores[follower_id] = dict(scores)
        self.version += 1

    def discard(self, follower_id: int):
        if self._scores.pop(follower_id, None) is not None:
            self.version += 1

    def clear(self):
        self._scores = {}
        self.version += 1

    def ratings_for_item(self, item_id: int) -> Iterator[Tuple[int, int]]:
        """Yield (follower_id, rating) for every loaded follower with an entry for the item."""
        for follower_id, scores in self._scores.items():
            if item_id in scores:
                yield follower_id, scores[item_id]


def build_score_map(entries: Iterable[RatedEntry]) -> Dict[int, int]:
    return {entry.item_id: entry.rating for entry in entries}


async def fetch_follower_scores(service: MediaService, user_name: str, media_type: MediaType, max_pages: Optional[int] = None) -> Dict[int, int]:
    """Page through a follower's whole list and return item id -> rating.

    Transport errors propagate unchanged; nothing is returned unless every chunk succeeded.
    """
    max_pages = max_pages or settings.anilist_max_pages
    scores: Dict[int, int] = {}
    chunk = 1
    while chunk <= max_pages:
        result = await service.list_rated_items(user_name, media_type, chunk)
        scores.update(build_score_map(result.entries))
        if not result.has_next_chunk:
            break
        chunk += 1
    else:
        logger.warning(f"[ScoreIndex] Stopped paging list of '{user_name}' after {max_pages} chunks")
    return scores
