#!/usr/bin/env python3
"""
social_report.py

Print what the accounts a user follows are watching or reading.

Usage:
  python -m anisocial.scripts.social_report <user_name> [--media-type MANGA] [--top 20] [--item 21]

Loads every followed account's list (bounded concurrency), prints the weighted popularity
ranking and, with --item, the detailed follower statistics for one item.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from anisocial.schemas import MediaType
from anisocial.services.anilist_client import AniListClient
from anisocial.services.social_errors import SocialGraphError
from anisocial.services.social_graph import SocialGraph
import anisocial.utils.logger  # noqa: F401

logger = logging.getLogger(__name__)


async def run(user_name: str, media_type: MediaType, top: int, items: List[int], boost: List[int]) -> int:
    graph = SocialGraph(AniListClient(), media_type=media_type)
    followers = await graph.load_followers(user_name)
    if not followers:
        print(f"{user_name} does not follow anyone.")
        return 0

    for follower_id in boost:
        graph.toggle_weight(follower_id)

    failures = await graph.load_all_follower_ratings()
    loaded = len(followers) - len(failures)

    print("=" * 60)
    print(f"{media_type.value} POPULAR WITH ACCOUNTS {user_name.upper()} FOLLOWS ({loaded}/{len(followers)} loaded)")
    print("=" * 60)
    for rank, (item_id, score) in enumerate(graph.top_items(top), start=1):
        print(f"{rank:>3}. item {item_id:>8}  score {score:>4}")

    for item_id in items:
        bundle = await graph.inspect_item(item_id)
        print("\n" + "-" * 60)
        print(f"Item {item_id}: {bundle.count} followers, average {bundle.average}, median {bundle.median}")
        for entry in bundle.ratings:
            status = entry.status.value if entry.status else "-"
            score = entry.rating if entry.rating > 0 else "unrated"
            print(f"  {entry.follower.name:<24} {status:<10} {score}")

    if failures:
        print(f"\n{len(failures)} follower lists could not be loaded:")
        for follower_id, reason in failures.items():
            print(f"  {follower_id}: {reason}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Weighted popularity among the accounts a user follows")
    parser.add_argument("user_name")
    parser.add_argument("--media-type", choices=[m.value for m in MediaType], default=MediaType.ANIME.value)
    parser.add_argument("--top", type=int, default=20)
    parser.add_argument("--item", type=int, action="append", default=[], help="Item id to inspect (repeatable)")
    parser.add_argument("--boost", type=int, action="append", default=[], help="Follower id counted twice (repeatable)")
    args = parser.parse_args(argv)

    try:
        return asyncio.run(run(args.user_name, MediaType(args.media_type), args.top, args.item, args.boost))
    except SocialGraphError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
