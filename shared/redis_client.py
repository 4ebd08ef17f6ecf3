"""
redis_client.py – lazy Redis connection + ops helpers
=====================================================

• Disabled unless `REDIS_URL` is set; the engine then never touches Redis.
• First call connects; a failed connect is retried on the next call
  (callers run these helpers from a worker thread, never on the loop).
• `heartbeat(service)` once per supervisor cycle.
• `trading_paused()` lets the engine honour the global kill-switch.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Optional

import redis

from .config import env
from .constants import KEY_HEARTBEAT, KEY_PAUSE_FLAG
from .logging import get_logger

# ───── CONFIG ──────────────────────────────────────────────────────────
REDIS_URL = env("REDIS_URL", "")
log = get_logger("shared.redis")


# ───── LAZY SINGLETON ─────────────────────────────────────────────────
class _LazyRedis:
    """Proxy object that connects on first attribute access."""

    def __init__(self, url: str) -> None:
        self.url = url
        self._client: Optional[redis.Redis] = None

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def __getattr__(self, name: str) -> Callable[..., Any]:  # noqa: D401
        if self._client is None:
            self._connect()
        return getattr(self._client, name)

    def _connect(self) -> None:
        client = redis.Redis.from_url(self.url, decode_responses=True, socket_timeout=2)
        try:
            client.ping()
        except redis.RedisError:
            client.close()
            raise
        self._client = client
        log.info("Connected to Redis at %s", self.url)


# Exposed singleton used by the engine supervisor
rds = _LazyRedis(REDIS_URL)


# ───── HELPER FUNCTIONS ───────────────────────────────────────────────
def heartbeat(service: str) -> None:
    """Store current epoch-seconds in `heartbeat:<service>`."""
    if not rds.enabled:
        return
    try:
        rds.set(KEY_HEARTBEAT.format(service), time.time())
    except redis.RedisError as exc:
        log.error("heartbeat failed – %s", exc)


def trading_paused() -> bool:
    """True if an operator raised the global pause flag."""
    if not rds.enabled:
        return False
    try:
        return rds.get(KEY_PAUSE_FLAG) == "1"
    except redis.RedisError:
        # configured but unreachable → *paused* for safety
        return True
