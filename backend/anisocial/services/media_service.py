"""
media_service.py

Contract the social graph engine expects from its media list backend.
AniListClient implements it over GraphQL; tests use in-memory fakes.
"""
from typing import Dict, Iterable, Optional, Protocol

from anisocial.schemas import (
    FollowingPage,
    ItemRating,
    MediaType,
    RatedItemsChunk,
    UserIdentity,
)


class MediaService(Protocol):
    async def resolve_identity(self, name: str) -> UserIdentity:
        """Raises AniListNotFoundError when no such user exists."""
        ...

    async def list_following(self, user_id: int, page: int = 1) -> FollowingPage:
        ...

    async def list_rated_items(self, user_name: str, media_type: MediaType = MediaType.ANIME, chunk: int = 1) -> RatedItemsChunk:
        ...

    async def batch_single_item_ratings(self, item_id: int, follower_ids: Iterable[int]) -> Dict[int, ItemRating]:
        """One round trip for all followers; missing entries are absent, not errors."""
        ...

    async def single_item_rating(self, item_id: int, follower_id: int) -> Optional[ItemRating]:
        ...
