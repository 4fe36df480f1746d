"""In-memory embedding cache.

Maps the preprocessed form of a text to its vector. The cache is
non-authoritative: entries are pure functions of their key, so losing them
(restart, eviction) only costs a provider call, and concurrent writers for
the same key are harmless (last write wins).
"""

import threading

from cachetools import TTLCache

from shared.helper.HelperConfig import HelperConfig

KEY_PREFIX = "embedding:"


class EmbeddingCache:
    """Best-effort TTL cache for embedding vectors."""

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()
        maxsize = int(helper_config.get_number_val("EMBED_CACHE_SIZE", default=10000))
        ttl = float(helper_config.get_number_val("EMBED_CACHE_TTL", default=1800))
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        # guards the cache dict only; never held across an await
        self._lock = threading.Lock()

    @staticmethod
    def make_key(preprocessed_text: str) -> str:
        return f"{KEY_PREFIX}{preprocessed_text}"

    def get(self, key: str) -> list[float] | None:
        """Return the cached vector for ``key``, or None on a miss or cache failure."""
        try:
            with self._lock:
                cached = self._cache.get(key)
        except Exception as exc:
            self.logging.warning("[Embed] Cache retrieval failed: %s", exc)
            return None
        if cached is None:
            return None
        return list(cached)

    def set(self, key: str, embedding: list[float]) -> None:
        """Store a vector; failures are logged and ignored."""
        try:
            with self._lock:
                self._cache[key] = tuple(embedding)
        except Exception as exc:
            self.logging.warning("[Embed] Cache storage failed: %s", exc)
            return
        self.logging.debug("[Embed] Cached embedding of size %d", len(embedding))

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
