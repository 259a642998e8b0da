"""
follower_directory.py

Resolves a root user to the ordered set of accounts they follow.
"""
import logging
from typing import Dict, List, Optional, Tuple

from anisocial.core.config import settings
from anisocial.schemas import Follower, LoadState, UserIdentity
from anisocial.services.anilist_client import AniListAPIError, AniListNotFoundError
from anisocial.services.media_service import MediaService
from anisocial.services.social_errors import DirectoryFetchFailed, IdentityNotFound

logger = logging.getLogger(__name__)


class FollowerDirectory:
    """Follower set for the current root user, in the order AniList returned it."""

    def __init__(self):
        self.root: Optional[UserIdentity] = None
        self._followers: Dict[int, Follower] = {}

    def __len__(self) -> int:
        return len(self._followers)

    def __contains__(self, follower_id: int) -> bool:
        return follower_id in self._followers

    @property
    def followers(self) -> List[Follower]:
        return list(self._followers.values())

    def ids(self) -> List[int]:
        return list(self._followers.keys())

    def get(self, follower_id: int) -> Optional[Follower]:
        return self._followers.get(follower_id)

    def is_current(self, follower: Follower) -> bool:
        """False once the follower object was dropped by a reload."""
        return self._followers.get(follower.id) is follower

    def replace(self, root: UserIdentity, followers: List[Follower]):
        self.root = root
        self._followers = {}
        for follower in followers:
            follower.load_state = LoadState.NOT_LOADED
            self._followers[follower.id] = follower

    def reset_load_states(self):
        for follower in self._followers.values():
            follower.load_state = LoadState.NOT_LOADED

    def clear(self):
        self.root = None
        self._followers = {}


async def fetch_following(service: MediaService, root_user_name: str, max_pages: Optional[int] = None) -> Tuple[UserIdentity, List[Follower]]:
    """Resolve the root user and page through everyone they follow.

    Raises IdentityNotFound for unknown names and DirectoryFetchFailed for anything else.
    """
    max_pages = max_pages or settings.anilist_max_pages
    try:
        logger.info(f"[FollowerDirectory] Resolving user '{root_user_name}'")
        identity = await service.resolve_identity(root_user_name)
    except AniListNotFoundError as e:
        raise IdentityNotFound(root_user_name) from e
    except AniListAPIError as e:
        raise DirectoryFetchFailed(root_user_name, str(e)) from e

    followers: Dict[int, Follower] = {}
    page = 1
    try:
        while page <= max_pages:
            result = await service.list_following(identity.id, page)
            for account in result.items:
                # Pages can shift while we read them; keep the first position
                if account.id not in followers:
                    followers[account.id] = Follower.from_account(account)
            if not result.has_next_page:
                break
            page += 1
        else:
            logger.warning(f"[FollowerDirectory] Stopped paging following list of '{root_user_name}' after {max_pages} pages")
    except AniListAPIError as e:
        raise DirectoryFetchFailed(root_user_name, str(e)) from e

    logger.info(f"[FollowerDirectory] '{identity.name}' (id {identity.id}) follows {len(followers)} accounts")
    return identity, list(followers.values())
