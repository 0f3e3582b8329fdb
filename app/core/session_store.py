# app/core/session_store.py

import json
import time
from typing import Dict, Optional, Tuple

import redis.asyncio as redis
from loguru import logger

from app.core.config import settings

SESSION_PREFIX = "session:"
ADMIN_SESSION_PREFIX = "admin_session:"


# ----------------------------------------------------------------
# 1. IN-MEMORY REGISTRY (single process / tests)
# ----------------------------------------------------------------
class MemorySessionStore:
    """
    TTL key/value registry of base sessions and admin sessions.

    Base session:  session:<sid>        -> {"user_id", "refresh_jti"}
    Admin session: admin_session:<sid>  -> {"user_id", "jti", "roles", "expires_at"}
    """

    def __init__(self):
        self._data: Dict[str, Tuple[dict, float]] = {}

    def _evict_expired(self, now: float) -> None:
        expired = [k for k, (_, expires_at) in self._data.items() if expires_at <= now]
        for key in expired:
            del self._data[key]

    async def _set(self, key: str, value: dict, ttl_seconds: int) -> None:
        # Sessions that are never read again would otherwise stay forever
        now = time.time()
        self._evict_expired(now)
        self._data[key] = (value, now + ttl_seconds)

    async def _get(self, key: str) -> Optional[dict]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if time.time() >= expires_at:
            self._data.pop(key, None)
            return None
        return dict(value)

    async def _delete(self, key: str) -> None:
        self._data.pop(key, None)

    # --- base sessions ---
    async def create_session(self, session_id: str, record: dict, ttl_seconds: int) -> None:
        await self._set(SESSION_PREFIX + session_id, record, ttl_seconds)

    async def get_session(self, session_id: str) -> Optional[dict]:
        return await self._get(SESSION_PREFIX + session_id)

    async def session_exists(self, session_id: str) -> bool:
        return await self.get_session(session_id) is not None

    async def revoke_session(self, session_id: str) -> None:
        await self._delete(SESSION_PREFIX + session_id)
        await self._delete(ADMIN_SESSION_PREFIX + session_id)

    # --- admin sessions ---
    async def set_admin_session(self, session_id: str, record: dict, ttl_seconds: int) -> None:
        await self._set(ADMIN_SESSION_PREFIX + session_id, record, ttl_seconds)

    async def get_admin_session(self, session_id: str) -> Optional[dict]:
        return await self._get(ADMIN_SESSION_PREFIX + session_id)

    async def revoke_admin_session(self, session_id: str) -> bool:
        existed = await self.get_admin_session(session_id) is not None
        await self._delete(ADMIN_SESSION_PREFIX + session_id)
        return existed


# ----------------------------------------------------------------
# 2. REDIS REGISTRY (shared across workers)
# ----------------------------------------------------------------
class RedisSessionStore(MemorySessionStore):
    def __init__(self, url: str):
        super().__init__()
        self.client = redis.from_url(url, decode_responses=True)

    async def _set(self, key: str, value: dict, ttl_seconds: int) -> None:
        await self.client.set(key, json.dumps(value), ex=max(int(ttl_seconds), 1))

    async def _get(self, key: str) -> Optional[dict]:
        raw = await self.client.get(key)
        return json.loads(raw) if raw else None

    async def _delete(self, key: str) -> None:
        await self.client.delete(key)


def build_session_store():
    # 'rediss://' is forced in production, as for the rate limiter
    url = settings.REDIS_URL
    if url:
        if url.startswith("redis://") and settings.ENV == "prod":
            url = url.replace("redis://", "rediss://", 1)
        logger.info("Session registry: Redis")
        return RedisSessionStore(url)

    logger.warning("REDIS_URL not set. Session registry is in-memory (single process only).")
    return MemorySessionStore()
