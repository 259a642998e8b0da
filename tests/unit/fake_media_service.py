"""In-memory MediaService used by the social graph tests. Counts every call."""
import asyncio
from collections import Counter
from typing import Dict, Iterable, List, Optional, Tuple

from anisocial.schemas import (
    FollowedAccount,
    FollowingPage,
    ItemRating,
    MediaType,
    RatedEntry,
    RatedItemsChunk,
    UserIdentity,
)
from anisocial.services.anilist_client import AniListNetworkError, AniListNotFoundError


def account(follower_id: int, name: Optional[str] = None) -> FollowedAccount:
    name = name or f"user{follower_id}"
    return FollowedAccount(id=follower_id, name=name, site_url=f"https://anilist.co/user/{name}")


class FakeMediaService:
    def __init__(self, page_size: int = 2, chunk_size: int = 2):
        self.users: Dict[str, UserIdentity] = {}
        self.following: Dict[int, List[FollowedAccount]] = {}
        # user name -> media type -> [(item_id, rating, status)]
        self.lists: Dict[str, Dict[MediaType, List[Tuple[int, int, Optional[str]]]]] = {}
        self.page_size = page_size
        self.chunk_size = chunk_size
        self.calls = Counter()
        self.failing = set()
        self._gates: Dict[str, asyncio.Event] = {}

    # Setup helpers

    def add_root(self, name: str, user_id: int, follows: Iterable[int]):
        self.users[name] = UserIdentity(id=user_id, name=name)
        self.following[user_id] = [account(fid) for fid in follows]

    def add_list(self, user_name: str, entries, media_type: MediaType = MediaType.ANIME):
        self.lists.setdefault(user_name, {})[media_type] = list(entries)

    def fail(self, key: str):
        """Fail calls matching `key` (a method name, or "method:arg")."""
        self.failing.add(key)

    def hold(self, key: str) -> asyncio.Event:
        """Block calls matching `key` until the returned event is set."""
        gate = asyncio.Event()
        self._gates[key] = gate
        return gate

    async def _enter(self, method: str, arg) -> None:
        self.calls[method] += 1
        for key in (method, f"{method}:{arg}"):
            gate = self._gates.get(key)
            if gate is not None:
                await gate.wait()
        # Yield once so concurrent callers interleave like real I/O
        await asyncio.sleep(0)
        if method in self.failing or f"{method}:{arg}" in self.failing:
            raise AniListNetworkError(f"{method} failed")

    # MediaService

    async def resolve_identity(self, name: str) -> UserIdentity:
        await self._enter("resolve_identity", name)
        if name not in self.users:
            raise AniListNotFoundError("Not Found.")
        return self.users[name]

    async def list_following(self, user_id: int, page: int = 1) -> FollowingPage:
        await self._enter("list_following", user_id)
        everyone = self.following.get(user_id, [])
        start = (page - 1) * self.page_size
        items = everyone[start:start + self.page_size]
        return FollowingPage(items=items, has_next_page=start + self.page_size < len(everyone))

    async def list_rated_items(self, user_name: str, media_type: MediaType = MediaType.ANIME, chunk: int = 1) -> RatedItemsChunk:
        await self._enter("list_rated_items", user_name)
        entries = self.lists.get(user_name, {}).get(MediaType(media_type), [])
        start = (chunk - 1) * self.chunk_size
        part = entries[start:start + self.chunk_size]
        return RatedItemsChunk(
            entries=[RatedEntry(item_id=i, rating=r, status=s) for i, r, s in part],
            has_next_chunk=start + self.chunk_size < len(entries),
        )

    def _record(self, item_id: int, follower_id: int) -> Optional[ItemRating]:
        for user in self.following.values():
            for acc in user:
                if acc.id != follower_id:
                    continue
                for media_entries in self.lists.get(acc.name, {}).values():
                    for i, r, s in media_entries:
                        if i == item_id:
                            return ItemRating(rating=r, status=s)
        return None

    async def batch_single_item_ratings(self, item_id: int, follower_ids: Iterable[int]) -> Dict[int, ItemRating]:
        await self._enter("batch_single_item_ratings", item_id)
        out = {}
        for fid in follower_ids:
            record = self._record(item_id, fid)
            if record is not None:
                out[fid] = record
        return out

    async def single_item_rating(self, item_id: int, follower_id: int) -> Optional[ItemRating]:
        await self._enter("single_item_rating", follower_id)
        return self._record(item_id, follower_id)
