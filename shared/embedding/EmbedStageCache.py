from shared.embedding.EmbedStageInterface import EmbedStageInterface
from shared.embedding.EmbeddingCache import EmbeddingCache
from shared.helper.HelperConfig import HelperConfig
from shared.models.embedding import EmbeddingSource


class EmbedStageCache(EmbedStageInterface):
    """Returns a previously computed vector for the same preprocessed text."""

    def __init__(self, helper_config: HelperConfig, cache: EmbeddingCache):
        super().__init__(helper_config=helper_config)
        self._cache = cache

    def get_source(self) -> EmbeddingSource:
        return EmbeddingSource.CACHE

    def is_provider(self) -> bool:
        return False

    async def attempt(self, text: str, cache_key: str | None) -> list[float] | None:
        if cache_key is None:
            return None
        cached = self._cache.get(cache_key)
        if cached:
            self.logging.info("[Embed] Using cached embedding of size %d", len(cached))
            return cached
        return None
