"""
Ephemeral per-session storage for the fetched catalog.

Values are JSON strings stored under fixed key names, in the spirit of
browser session storage: read once at startup, written once after the first
successful fetch, cleared when the session ends. Nothing here survives a
session.

Two backends:
- MemorySessionCache: plain dict, the default
- RedisSessionCache:  session:{session_id}:{key} with a TTL, for multi-worker deployments
"""
import os
from typing import Dict, Optional

import redis

from storefront.utils.logger import get_logger

logger = get_logger("data.session_cache")


class SessionCache:
    """Interface for per-session key/value storage of JSON strings."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemorySessionCache(SessionCache):
    """In-process session cache; lives exactly as long as the owning session."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()


class RedisSessionCache(SessionCache):
    """
    Redis-backed session cache.

    Keys are namespaced per session so two sessions never share a snapshot,
    and every write carries a TTL so abandoned sessions expire on their own.

    Connection priority:
    1. UPSTASH_REDIS_URL (cloud-hosted, rediss:// TLS)
    2. REDIS_HOST + REDIS_PORT (local)
    """

    def __init__(self, session_id: str, client: Optional[redis.Redis] = None, ttl_seconds: int = 3600):
        self.session_id = session_id
        self.ttl_seconds = ttl_seconds
        self.client = client or self._connect()
        self._keys: set = set()

    @staticmethod
    def _connect() -> redis.Redis:
        upstash_url = os.getenv("UPSTASH_REDIS_URL")
        if upstash_url:
            return redis.from_url(
                upstash_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        return redis.Redis(
            host=os.getenv("REDIS_HOST", "localhost"),
            port=int(os.getenv("REDIS_PORT", "6379")),
            db=int(os.getenv("REDIS_DB_SESSION", "0")),
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )

    def _key(self, key: str) -> str:
        """Prefix key with the session namespace."""
        return f"session:{self.session_id}:{key}"

    def get(self, key: str) -> Optional[str]:
        try:
            return self.client.get(self._key(key))
        except redis.RedisError as e:
            # A cache miss just means the catalog gets fetched again
            logger.warning(f"Session cache read failed for '{key}': {e}")
            return None

    def set(self, key: str, value: str) -> None:
        try:
            self.client.setex(self._key(key), self.ttl_seconds, value)
            self._keys.add(key)
        except redis.RedisError as e:
            logger.warning(f"Session cache write failed for '{key}': {e}")

    def delete(self, key: str) -> None:
        try:
            self.client.delete(self._key(key))
        except redis.RedisError as e:
            logger.warning(f"Session cache delete failed for '{key}': {e}")
        self._keys.discard(key)

    def clear(self) -> None:
        for key in list(self._keys):
            self.delete(key)


def create_session_cache(session_id: str, backend: str = "memory", ttl_seconds: int = 3600) -> SessionCache:
    """Build the configured session cache backend for a new session."""
    if backend == "redis":
        return RedisSessionCache(session_id, ttl_seconds=ttl_seconds)
    if backend != "memory":
        logger.warning(f"Unknown cache backend '{backend}', using in-memory cache")
    return MemorySessionCache()
