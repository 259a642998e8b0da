class AniListAPIError(Exception):
    """Base exception for AniList API errors."""
    pass

class AniListNotFoundError(AniListAPIError):
    """Raised when AniList reports that a user (or list) does not exist."""
    pass

class AniListNetworkError(AniListAPIError):
    """Raised when network or connection to AniList fails."""
    pass

class AniListUnavailableError(AniListAPIError):
    """Raised when AniList is offline, unavailable or rate limiting us."""

    def __init__(self, message: str, retry_after: float = None):
        super().__init__(message)
        self.retry_after = retry_after

"""
anilist_client.py

Async AniList GraphQL client with rate limiting and exponential backoff.
Every response is parsed into the strict models from anisocial.schemas before it is returned.
"""

import logging
import httpx
from typing import Any, Dict, Iterable, List, Optional, Tuple
from pydantic import ValidationError

from anisocial.core.config import settings
from anisocial.schemas import (
    FollowedAccount,
    FollowingPage,
    ItemRating,
    MediaType,
    RatedEntry,
    RatedItemsChunk,
    UserIdentity,
)

logger = logging.getLogger(__name__)

USER_QUERY = """
query ($name: String) {
  User(name: $name) {
    id
    name
    avatar { large }
  }
}
"""

FOLLOWING_QUERY = """
query ($userId: Int!, $page: Int, $perPage: Int) {
  Page(page: $page, perPage: $perPage) {
    pageInfo { hasNextPage }
    following(userId: $userId, sort: ID_DESC) {
      id
      name
      siteUrl
      avatar { medium }
    }
  }
}
"""

MEDIA_LIST_QUERY = """
query ($userName: String, $type: MediaType, $chunk: Int, $perChunk: Int) {
  MediaListCollection(userName: $userName, type: $type, chunk: $chunk, perChunk: $perChunk) {
    lists {
      entries {
        score(format: POINT_10)
        status
        media { id }
      }
    }
    hasNextChunk
  }
}
"""

# Page(perPage: 1) yields an empty list instead of a 404 when the user has no entry
SINGLE_ITEM_FRAGMENT = """
  {alias}: Page(perPage: 1) {{
    mediaList(userId: {user_id}, mediaId: {media_id}) {{
      score(format: POINT_10)
      status
    }}
  }}
"""

HEADERS = {"Accept": "application/json", "Content-Type": "application/json"}


def alias_for(follower_id: int) -> str:
    # GraphQL aliases must start with a letter
    return f"u{int(follower_id)}"


def build_batch_query(media_id: int, follower_ids: Iterable[int]) -> Tuple[str, Dict[str, int]]:
    """Build one aliased query for many followers.

    Returns the query text and the alias -> follower id mapping used to read the response.
    """
    slots: Dict[str, int] = {}
    parts: List[str] = []
    for follower_id in follower_ids:
        alias = alias_for(follower_id)
        if alias in slots:
            continue
        slots[alias] = int(follower_id)
        parts.append(SINGLE_ITEM_FRAGMENT.format(alias=alias, user_id=int(follower_id), media_id=int(media_id)))
    return "query {" + "".join(parts) + "}", slots


def _chunks(values: List[int], size: int) -> Iterable[List[int]]:
    size = max(1, size)
    for start in range(0, len(values), size):
        yield values[start:start + size]


def _error_messages(body: Any) -> List[str]:
    if not isinstance(body, dict):
        return []
    return [str(e.get("message", e)) for e in (body.get("errors") or []) if isinstance(e, dict)]


def _parse_rating(slot: Optional[dict]) -> Optional[ItemRating]:
    entries = (slot or {}).get("mediaList") or []
    if not entries:
        return None
    entry = entries[0] or {}
    return ItemRating(rating=entry.get("score") or 0, status=entry.get("status"))


class AniListClient:
    """Transport adapter implementing the MediaService protocol against AniList."""

    def __init__(self, api_url: Optional[str] = None, timeout: Optional[float] = None,
                 rate_limit: Optional[bool] = None, max_retries: Optional[int] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_url = api_url or settings.anilist_api_url
        self.timeout = timeout or settings.anilist_timeout_seconds
        self.rate_limit = settings.rate_limit_enabled if rate_limit is None else rate_limit
        self.max_retries = max_retries or settings.anilist_max_retries
        # Injected transport lets tests and scripts swap the network layer
        self._transport = transport

    async def _request(self, query: str, variables: Optional[dict] = None) -> Dict[str, Any]:
        """POST a GraphQL document and return its `data` object.

        Partial GraphQL errors are logged and the data returned; a response without data is an error.
        """
        payload = {"query": query, "variables": variables or {}}

        from anisocial.services.rate_limit import RATE_LIMITS, RateLimitExceeded, with_backoff

        async def make_request():
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    resp = await client.post(self.api_url, json=payload, headers=HEADERS)
                    if resp.status_code == 404:
                        messages = _error_messages(_safe_json(resp))
                        raise AniListNotFoundError(messages[0] if messages else "Not Found.")
                    resp.raise_for_status()
                    return resp.json()
            except httpx.TimeoutException:
                logger.error("Network timeout connecting to AniList API.")
                raise AniListNetworkError("Network timeout connecting to AniList API. Please try again later.")
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if status == 429:
                    retry_after = _retry_after(e.response)
                    logger.warning(f"AniList API rate limit exceeded (429), retry after {retry_after}s.")
                    raise AniListUnavailableError("AniList API rate limit exceeded (429).", retry_after=retry_after)
                if status in (500, 502, 503, 504):
                    logger.error(f"AniList API is currently unavailable (status {status}).")
                    raise AniListUnavailableError(f"AniList API is currently unavailable (status {status}).")
                messages = _error_messages(_safe_json(e.response))
                logger.error(f"AniList API returned HTTP error {status}: {messages or e}")
                raise AniListAPIError(f"AniList API error {status}: {'; '.join(messages) or e}")
            except httpx.RequestError as e:
                logger.error(f"Network error connecting to AniList API: {e}")
                raise AniListNetworkError("Network error connecting to AniList API. Please check your connection.")
            except ValueError as e:
                logger.error(f"AniList API returned a non-JSON body: {e}")
                raise AniListAPIError("AniList API returned a malformed response.")

        try:
            body = await with_backoff(
                make_request,
                max_retries=self.max_retries,
                service="anilist_api" if self.rate_limit else None,
                user_id="global" if self.rate_limit else None,
            )
        except RateLimitExceeded as e:
            raise AniListUnavailableError(f"AniList request quota exhausted: {e}", retry_after=RATE_LIMITS["anilist_api"]["window"])

        messages = _error_messages(body)
        data = body.get("data") if isinstance(body, dict) else None
        if data is None:
            raise AniListAPIError(f"AniList API error: {'; '.join(messages) or 'response has no data'}")
        if messages:
            logger.warning(f"AniList returned partial errors: {messages}")
        return data

    async def resolve_identity(self, name: str) -> UserIdentity:
        data = await self._request(USER_QUERY, {"name": name})
        user = data.get("User")
        if not user:
            raise AniListNotFoundError(f"AniList user '{name}' not found.")
        try:
            return UserIdentity(id=user["id"], name=user["name"], avatar=(user.get("avatar") or {}).get("large"))
        except (KeyError, ValidationError) as e:
            raise AniListAPIError(f"Malformed user payload for '{name}': {e}")

    async def list_following(self, user_id: int, page: int = 1) -> FollowingPage:
        per_page = min(50, settings.anilist_following_per_page)
        data = await self._request(FOLLOWING_QUERY, {"userId": user_id, "page": page, "perPage": per_page})
        page_data = data.get("Page") or {}
        try:
            items = [
                FollowedAccount(
                    id=u["id"],
                    name=u["name"],
                    site_url=u.get("siteUrl"),
                    avatar=(u.get("avatar") or {}).get("medium"),
                )
                for u in (page_data.get("following") or [])
            ]
        except (KeyError, ValidationError) as e:
            raise AniListAPIError(f"Malformed following payload for user {user_id}: {e}")
        has_next = bool((page_data.get("pageInfo") or {}).get("hasNextPage"))
        return FollowingPage(items=items, has_next_page=has_next)

    async def list_rated_items(self, user_name: str, media_type: MediaType = MediaType.ANIME, chunk: int = 1) -> RatedItemsChunk:
        """Fetch one chunk of a user's list, flattened across status and custom lists.

        An entry can appear in several lists (e.g. COMPLETED and a custom list); the last one wins.
        """
        variables = {
            "userName": user_name,
            "type": MediaType(media_type).value,
            "chunk": chunk,
            "perChunk": min(500, settings.anilist_chunk_size),
        }
        data = await self._request(MEDIA_LIST_QUERY, variables)
        collection = data.get("MediaListCollection") or {}
        by_item: Dict[int, RatedEntry] = {}
        try:
            for media_list in collection.get("lists") or []:
                for e in (media_list or {}).get("entries") or []:
                    item_id = e["media"]["id"]
                    by_item[item_id] = RatedEntry(item_id=item_id, rating=e.get("score") or 0, status=e.get("status"))
        except (KeyError, TypeError, ValidationError) as e:
            raise AniListAPIError(f"Malformed media list payload for '{user_name}': {e}")
        return RatedItemsChunk(entries=list(by_item.values()), has_next_chunk=bool(collection.get("hasNextChunk")))

    async def batch_single_item_ratings(self, item_id: int, follower_ids: Iterable[int]) -> Dict[int, ItemRating]:
        """Fetch every follower's entry for one item through aliased sub-queries.

        Followers without an entry are simply absent from the result. Large follower sets are
        split into several requests of `anilist_batch_size` aliases each.
        """
        ids = list(dict.fromkeys(int(f) for f in follower_ids))
        results: Dict[int, ItemRating] = {}
        for batch in _chunks(ids, settings.anilist_batch_size):
            query, slots = build_batch_query(item_id, batch)
            data = await self._request(query)
            for alias, follower_id in slots.items():
                try:
                    rating = _parse_rating(data.get(alias))
                except ValidationError as e:
                    logger.warning(f"Skipping malformed entry for follower {follower_id} on item {item_id}: {e}")
                    continue
                if rating is not None:
                    results[follower_id] = rating
        logger.debug(f"Batch ratings for item {item_id}: {len(results)}/{len(ids)} followers have an entry")
        return results

    async def single_item_rating(self, item_id: int, follower_id: int) -> Optional[ItemRating]:
        query, slots = build_batch_query(item_id, [follower_id])
        data = await self._request(query)
        try:
            return _parse_rating(data.get(alias_for(follower_id)))
        except ValidationError as e:
            raise AniListAPIError(f"Malformed entry for follower {follower_id} on item {item_id}: {e}")


def _safe_json(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None


def _retry_after(resp: httpx.Response) -> Optional[float]:
    value = resp.headers.get("Retry-After")
    try:
        return float(value) if value is not None else None
    except ValueError:
        return None
