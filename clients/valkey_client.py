"""
Valkey (Redis-compatible) storage for auth sessions and published analytics snapshots.

Thin wrapper over redis-py with string values. Connection URL from Vault.
Fail-fast: raises on connection failure, never returns fallback values.
"""

import json
import logging

import redis

logger = logging.getLogger(__name__)


class ValkeyClient:
    """
    String key/value access to Valkey.

    Every write is a single SET (with EX when a TTL is given), so replacing a
    published snapshot is atomic: readers see the old value or the new one,
    never a partial write.

    Usage:
        client = ValkeyClient("redis://localhost:6379/0")
        client.set("analytics:...", snapshot_json, expire_seconds=86400)
        raw = client.get("analytics:...")  # None if missing
    """

    def __init__(self, url: str):
        """
        Connect and verify connectivity.

        Raises:
            redis.ConnectionError: If Valkey is unreachable
        """
        self._client = redis.from_url(url, decode_responses=True)
        self._client.ping()
        logger.info("ValkeyClient connected")

    def get(self, key: str) -> str | None:
        """Value for ``key``; None if missing (not an error)."""
        return self._client.get(key)

    def get_many(self, keys: list[str]) -> list[str | None]:
        """Values for ``keys`` in one round trip, None where missing."""
        if not keys:
            return []
        return self._client.mget(keys)

    def set(self, key: str, value: str, expire_seconds: int | None = None) -> None:
        """Replace ``key`` with ``value``; ``expire_seconds`` None keeps it forever."""
        self._client.set(key, value, ex=expire_seconds)

    def delete(self, key: str) -> bool:
        """True if the key existed."""
        return self._client.delete(key) > 0

    def keys_matching(self, pattern: str) -> list[str]:
        """
        Keys matching a glob pattern, sorted.

        Walks the keyspace with SCAN; KEYS would block the server.
        """
        return sorted(self._client.scan_iter(match=pattern, count=500))

    def set_json(self, key: str, value: dict | list, expire_seconds: int | None = None) -> None:
        self.set(key, json.dumps(value), expire_seconds)

    def get_json(self, key: str) -> dict | list | None:
        """
        Decoded JSON value, or None if missing.

        Raises ValueError if the stored value is not valid JSON.
        """
        value = self.get(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in key '{key}': {e}")

    def close(self) -> None:
        self._client.close()
        logger.info("ValkeyClient closed")
