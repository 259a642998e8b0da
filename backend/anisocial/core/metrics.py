from __future__ import annotations
import asyncio
import time
from typing import Any, Dict

from anisocial.core.config import settings
from anisocial.core.redis_client import get_redis


COUNTERS_KEY = "metrics:counters"


async def increment(name: str, amount: int = 1) -> None:
    if not settings.metrics_enabled:
        return
    r = get_redis()
    try:
        await r.hincrby(COUNTERS_KEY, name, amount)
    except Exception:
        pass


async def timing(name: str, milliseconds: float) -> None:
    """Record latency aggregates (count/sum/min/max)."""
    if not settings.metrics_enabled:
        return
    r = get_redis()
    try:
        key = f"metrics:latency:{name}"
        ms = float(milliseconds)
        pipe = r.pipeline()
        pipe.hincrby(key, "count", 1)
        pipe.hincrbyfloat(key, "sum", ms)
        pipe.hget(key, "min")
        pipe.hget(key, "max")
        res = await pipe.execute()
        # res: [count, sum, min, max]
        cur_min = res[2]
        cur_max = res[3]
        if cur_min is None or ms < float(cur_min):
            await r.hset(key, "min", ms)
        if cur_max is None or ms > float(cur_max):
            await r.hset(key, "max", ms)
    except Exception:
        pass


async def counters_snapshot() -> Dict[str, int]:
    if not settings.metrics_enabled:
        return {}
    r = get_redis()
    out: Dict[str, int] = {}
    try:
        data = await r.hgetall(COUNTERS_KEY)
        for k, v in (data or {}).items():
            try:
                out[str(k)] = int(v)
            except (TypeError, ValueError):
                out[str(k)] = 0
    except Exception:
        pass
    return out


async def latency_snapshot() -> Dict[str, Dict[str, Any]]:
    if not settings.metrics_enabled:
        return {}
    r = get_redis()
    out: Dict[str, Dict[str, Any]] = {}
    try:
        keys = await r.keys("metrics:latency:*")
        for k in keys:
            name = str(k).split(":", 2)[-1]
            stats = await r.hgetall(k)
            try:
                count = int(stats.get("count", 0) or 0)
                total = float(stats.get("sum", 0.0) or 0.0)
                out[name] = {
                    "count": count,
                    "sum": total,
                    "min": float(stats.get("min", 0.0) or 0.0),
                    "max": float(stats.get("max", 0.0) or 0.0),
                    "avg": (total / count) if count else 0.0,
                }
            except (TypeError, ValueError):
                out[name] = {"count": 0, "sum": 0.0, "min": 0.0, "max": 0.0, "avg": 0.0}
    except Exception:
        pass
    return out


class Timer:
    """Context manager that records elapsed milliseconds under `name`.

    The write is fire-and-forget on the running loop; outside a loop it is dropped.
    """

    def __init__(self, name: str):
        self.name = name
        self._start = None

    def __enter__(self):
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._start is None or not settings.metrics_enabled:
            return
        ms = (time.perf_counter() - self._start) * 1000.0
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        loop.create_task(timing(self.name, ms))
