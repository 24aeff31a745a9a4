"""
Valkey (Redis-compatible) client.

Holds three kinds of short-lived state, all keyed by prefix:
- session:<token>            operator sessions (JSON, sliding TTL)
- invoice_draft:<uuid>       invoices being composed (JSON, TTL)
- invoice_submit:<key>       duplicate-submission markers (SET NX EX)

Fail-fast: the constructor pings, and connection errors propagate as
redis.ConnectionError instead of being treated as a cache miss.
"""

import json
import logging

import redis

logger = logging.getLogger(__name__)


class ValkeyClient:
    """Thin wrapper around redis-py with JSON helpers."""

    def __init__(self, url: str):
        """
        Args:
            url: Connection URL from Vault (e.g., redis://localhost:6379/0)

        Raises:
            redis.ConnectionError: If the server is unreachable
        """
        self._client = redis.from_url(url, decode_responses=True)
        self._client.ping()
        logger.info("ValkeyClient connected")

    def ping(self) -> bool:
        self._client.ping()
        return True

    def get(self, key: str) -> str | None:
        return self._client.get(key)

    def set(self, key: str, value: str, expire_seconds: int | None = None) -> None:
        """Store a value; with expire_seconds the key expires after that many seconds."""
        if expire_seconds is None:
            self._client.set(key, value)
        else:
            self._client.setex(key, expire_seconds, value)

    def set_if_absent(self, key: str, value: str, expire_seconds: int) -> bool:
        """SET NX EX. True only for the caller that created the key."""
        return bool(self._client.set(key, value, nx=True, ex=expire_seconds))

    def delete(self, key: str) -> bool:
        """True if the key existed."""
        return self._client.delete(key) > 0

    def set_json(self, key: str, value: dict | list, expire_seconds: int | None = None) -> None:
        self.set(key, json.dumps(value), expire_seconds)

    def get_json(self, key: str) -> dict | list | None:
        """
        Load a JSON value, None if the key is missing or expired.

        Raises ValueError if the stored value is not valid JSON.
        """
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in key '{key}': {e}")

    def close(self) -> None:
        self._client.close()
        logger.info("ValkeyClient closed")
