"""
social.py

API endpoints exposing the social graph: root user loading, follower lists, weights,
popularity and per-item statistics.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
import logging

from ..schemas import (
    FollowerView,
    PopularityView,
    RootUserLoad,
    RootUserView,
    StatisticBundle,
)
from ..services.social_errors import (
    BatchFetchFailed,
    DirectoryFetchFailed,
    FollowerNotFound,
    FollowerRatingsFetchFailed,
    IdentityNotFound,
)
from ..services.social_graph import SocialGraph

router = APIRouter()
logger = logging.getLogger(__name__)


def get_social_graph(request: Request) -> SocialGraph:
    return request.app.state.social_graph


def _follower_view(graph: SocialGraph, follower) -> FollowerView:
    return FollowerView(**follower.model_dump(), weight=graph.weight_of(follower.id))


def _root_view(graph: SocialGraph) -> RootUserView:
    return RootUserView(
        root=graph.directory.root,
        media_type=graph.media_type,
        loading=graph.loading_social,
        followers=[_follower_view(graph, f) for f in graph.followers],
    )


@router.post("/root", response_model=RootUserView)
async def load_root_user(payload: RootUserLoad, graph: SocialGraph = Depends(get_social_graph)):
    """Load the accounts `user_name` follows; replaces the current social graph."""
    if payload.media_type is not None:
        graph.switch_media_type(payload.media_type)
    try:
        await graph.load_followers(payload.user_name)
    except IdentityNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DirectoryFetchFailed as e:
        raise HTTPException(status_code=502, detail=str(e))
    return _root_view(graph)


@router.get("/followers", response_model=RootUserView)
async def list_followers(graph: SocialGraph = Depends(get_social_graph)):
    return _root_view(graph)


@router.post("/followers/{follower_id}/ratings", response_model=FollowerView)
async def load_follower_ratings(follower_id: int, force: bool = False, graph: SocialGraph = Depends(get_social_graph)):
    """Fetch one follower's list ("compare" button). Safe to call repeatedly."""
    try:
        await graph.load_follower_ratings(follower_id, force=force)
    except FollowerNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except FollowerRatingsFetchFailed as e:
        raise HTTPException(status_code=502, detail=str(e))
    follower = graph.directory.get(follower_id)
    if follower is None:
        # Root user was reloaded while the list was loading
        raise HTTPException(status_code=409, detail="The social graph changed, reload followers.")
    return _follower_view(graph, follower)


@router.post("/followers/{follower_id}/weight", response_model=FollowerView)
async def toggle_follower_weight(follower_id: int, graph: SocialGraph = Depends(get_social_graph)):
    follower = graph.directory.get(follower_id)
    if follower is None:
        raise HTTPException(status_code=404, detail=str(FollowerNotFound(follower_id)))
    graph.toggle_weight(follower_id)
    return _follower_view(graph, follower)


@router.get("/popularity", response_model=PopularityView)
async def get_popularity(limit: int = 20, graph: SocialGraph = Depends(get_social_graph)):
    return PopularityView(
        scores=graph.popularity_scores(),
        top=[[item_id, score] for item_id, score in graph.top_items(limit)],
    )


@router.get("/items/{item_id}/stats", response_model=StatisticBundle)
async def get_item_stats(item_id: int, graph: SocialGraph = Depends(get_social_graph)):
    try:
        return await graph.inspect_item(item_id)
    except BatchFetchFailed as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/items/{item_id}/loaded-stats", response_model=StatisticBundle)
async def get_item_stats_from_loaded_lists(item_id: int, graph: SocialGraph = Depends(get_social_graph)):
    """Same bundle computed from follower lists already loaded; no AniList request."""
    return graph.social_details_from_index(item_id)
