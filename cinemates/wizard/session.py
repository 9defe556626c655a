"""
String-keyed session storage backing the booking draft
Values are plain strings; structured values are stored as JSON by the caller
"""

import logging
from typing import Optional

from ..redis_client import get_redis_client

logger = logging.getLogger(__name__)


class SessionStorage:
    """Interface shared by the storage backends"""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError

    def keys(self) -> list[str]:
        raise NotImplementedError


class MemorySessionStorage(SessionStorage):
    """Per-process storage, the equivalent of one browser tab"""

    def __init__(self, initial: Optional[dict] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def keys(self) -> list[str]:
        return list(self._data)


class RedisSessionStorage(SessionStorage):
    """
    Draft storage in a Redis hash, one hash per session id.

    Lets several client processes share one draft. No expiry is set.
    """

    def __init__(self, session_id: str, client=None, prefix: str = "cinemates:draft:"):
        if not session_id:
            raise ValueError("session_id is required")
        self.session_id = session_id
        self.redis_key = f"{prefix}{session_id}"
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = get_redis_client()
        return self._client

    def get(self, key: str) -> Optional[str]:
        value = self.client.hget(self.redis_key, key)
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        self.client.hset(self.redis_key, key, value)

    def remove(self, key: str) -> None:
        self.client.hdel(self.redis_key, key)

    def clear(self) -> None:
        self.client.delete(self.redis_key)
        logger.debug(f"Cleared draft session {self.session_id}")

    def keys(self) -> list[str]:
        return [k.decode("utf-8") if isinstance(k, bytes) else k for k in self.client.hkeys(self.redis_key)]
