"""
social_errors.py

Errors raised by the social graph engine. Transport errors from the AniList client are
translated into these at the engine boundary; the original error is kept as __cause__.
"""


class SocialGraphError(Exception):
    """Base exception for social graph failures."""
    pass


class IdentityNotFound(SocialGraphError):
    """Raised when the root user name does not resolve to an account."""

    def __init__(self, user_name: str):
        super().__init__(f"User '{user_name}' not found.")
        self.user_name = user_name


class DirectoryFetchFailed(SocialGraphError):
    """Raised when the identity lookup or the following list cannot be fetched."""

    def __init__(self, user_name: str, reason: str):
        super().__init__(f"Could not load the accounts followed by '{user_name}': {reason}")
        self.user_name = user_name


class FollowerNotFound(SocialGraphError):
    """Raised when an operation names a follower that is not in the current directory."""

    def __init__(self, follower_id: int):
        super().__init__(f"Follower {follower_id} is not part of the current social graph.")
        self.follower_id = follower_id


class FollowerRatingsFetchFailed(SocialGraphError):
    """Raised when one follower's list cannot be fetched. The follower stays retryable."""

    def __init__(self, follower_id: int, reason: str):
        super().__init__(f"Could not load ratings for follower {follower_id}: {reason}")
        self.follower_id = follower_id


class BatchFetchFailed(SocialGraphError):
    """Raised when the batched per-item lookup fails at the transport level."""

    def __init__(self, item_id: int, reason: str):
        super().__init__(f"Could not fetch follower ratings for item {item_id}: {reason}")
        self.item_id = item_id
