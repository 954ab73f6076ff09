"""
redis_client.py – singleton Redis connection + helpers
======================================================

• 100 % lazy: first call triggers connect; retries until Redis is up.
• `heartbeat(service)` once per loop; trade_manager watches these keys.
• `trading_paused()` is the Redis half of the decision service's
  permission gate (the other half is MT5 `trade_allowed`).  A Redis
  outage reads as paused, so no order goes out while the flag is unknown.
• `set_trading_paused(flag, auto=...)` writes the flag together with the
  `flags:trading_paused:auto` marker.  The marker records that the
  supervisor (not an operator) paused, so only those pauses lift
  themselves when heartbeats return.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Optional

import redis

from .config import env
from .constants import KEY_AUTO_PAUSE, KEY_HEARTBEAT, KEY_PAUSE_FLAG
from .logging import get_logger

# ───── CONFIG ──────────────────────────────────────────────────────────
REDIS_URL = env("REDIS_URL", "redis://redis:6379/0")
log = get_logger("shared.redis")

# ───── LAZY SINGLETON ─────────────────────────────────────────────────
class _LazyRedis:
    """Proxy object that connects on first attribute access (auto-retry)."""
    _client: Optional[redis.Redis[Any]] = None

    def __getattr__(self, name: str) -> Callable[..., Any]:  # noqa: D401
        if self._client is None:
            self._connect()
        return getattr(self._client, name)  # type: ignore[arg-type]

    def _connect(self) -> None:
        while True:
            try:
                self._client = redis.Redis.from_url(
                    REDIS_URL,
                    decode_responses=True,
                    socket_timeout=2,
                )
                self._client.ping()
                log.info("Connected to Redis at %s", REDIS_URL)
                break
            except redis.RedisError as exc:
                log.warning("Redis unavailable – retrying in 2 s (%s)", exc)
                time.sleep(2)

# Exposed singleton used by all services
rds: redis.Redis[Any] = _LazyRedis()  # type: ignore[assignment]

# ───── HELPER FUNCTIONS ───────────────────────────────────────────────
def heartbeat(service: str) -> None:
    """Store current epoch-seconds in `heartbeat:<service>`."""
    try:
        rds.set(KEY_HEARTBEAT.format(service), time.time())
    except redis.RedisError as exc:
        log.error("heartbeat failed – %s", exc)

def trading_paused() -> bool:
    """Return True if trade_manager (or an operator) set the global pause flag."""
    try:
        return rds.get(KEY_PAUSE_FLAG) == "1"
    except redis.RedisError:
        # On Redis failure, default to *paused* for safety.
        return True

def set_trading_paused(flag: bool, *, auto: bool = False) -> None:
    pipe = rds.pipeline()
    pipe.set(KEY_PAUSE_FLAG, "1" if flag else "0")
    if flag and auto:
        pipe.set(KEY_AUTO_PAUSE, "1")
    else:
        pipe.delete(KEY_AUTO_PAUSE)
    pipe.execute()

def auto_paused() -> bool:
    """True while the current pause was set by the supervisor."""
    return rds.get(KEY_AUTO_PAUSE) == "1"
