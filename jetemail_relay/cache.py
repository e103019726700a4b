"""In-process cache for release API responses.

Entries are keyed by a hash of the request URL and replaced as a whole, so a
reader sees either the previous payload or the new one, never a mix.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .config import CACHE_KEY_PREFIX, CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    payload: Any
    expires_at: float


class ResponseCache:
    def __init__(
        self,
        ttl: float = CACHE_TTL_SECONDS,
        prefix: str = CACHE_KEY_PREFIX,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl
        self._prefix = prefix
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def key_for(self, url: str) -> str:
        return self._prefix + hashlib.md5(url.encode("utf-8")).hexdigest()

    def get(self, url: str) -> Optional[Any]:
        key = self.key_for(url)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                logger.debug("Cache entry expired for %s", url)
                return None
            return entry.payload

    def set(self, url: str, payload: Any) -> None:
        entry = CacheEntry(payload=payload, expires_at=self._clock() + self._ttl)
        with self._lock:
            self._entries[self.key_for(url)] = entry

    def purge(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info("Purged %s cached release response(s)", count)
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
