"""
schemas.py

Pydantic schemas for AniList payloads, follower state, statistic bundles and API bodies.
Everything the transport adapter returns is one of these; raw GraphQL dicts never leave it.
"""
from enum import Enum
from pydantic import BaseModel, Field
from typing import Dict, List, Optional

MAX_RATING = 10


class MediaType(str, Enum):
    ANIME = "ANIME"
    MANGA = "MANGA"


class ListStatus(str, Enum):
    CURRENT = "CURRENT"
    PLANNING = "PLANNING"
    COMPLETED = "COMPLETED"
    DROPPED = "DROPPED"
    PAUSED = "PAUSED"
    REPEATING = "REPEATING"


class LoadState(str, Enum):
    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


# Media service results
class UserIdentity(BaseModel):
    id: int
    name: str
    avatar: Optional[str] = None


class FollowedAccount(BaseModel):
    id: int
    name: str
    site_url: Optional[str] = None
    avatar: Optional[str] = None


class FollowingPage(BaseModel):
    items: List[FollowedAccount] = []
    has_next_page: bool = False


class RatedEntry(BaseModel):
    item_id: int
    rating: int = Field(0, ge=0, le=MAX_RATING)
    status: Optional[ListStatus] = None


class RatedItemsChunk(BaseModel):
    entries: List[RatedEntry] = []
    has_next_chunk: bool = False


class ItemRating(BaseModel):
    rating: int = Field(0, ge=0, le=MAX_RATING)
    status: Optional[ListStatus] = None


# Engine state
class Follower(BaseModel):
    id: int
    name: str
    site_url: Optional[str] = None
    avatar: Optional[str] = None
    load_state: LoadState = LoadState.NOT_LOADED

    @classmethod
    def from_account(cls, account: FollowedAccount) -> "Follower":
        return cls(**account.model_dump())


class FollowerSummary(BaseModel):
    """Identity of a follower inside a statistic bundle; load state is tracked on Follower only."""
    id: int
    name: str
    site_url: Optional[str] = None
    avatar: Optional[str] = None

    @classmethod
    def from_follower(cls, follower: Follower) -> "FollowerSummary":
        return cls(**follower.model_dump(exclude={"load_state"}))


class FollowerRating(BaseModel):
    follower: FollowerSummary
    rating: int
    status: Optional[ListStatus] = None


class StatisticBundle(BaseModel):
    ratings: List[FollowerRating] = []
    average: float = 0.0
    median: float = 0.0
    count: int = 0


# Payloads
class RootUserLoad(BaseModel):
    user_name: str = Field(..., min_length=1)
    media_type: Optional[MediaType] = None


class FollowerView(Follower):
    weight: int = 1


class RootUserView(BaseModel):
    root: Optional[UserIdentity] = None
    media_type: MediaType
    loading: bool = False
    followers: List[FollowerView] = []


class PopularityView(BaseModel):
    scores: Dict[int, int] = {}
    top: List[List[int]] = []
