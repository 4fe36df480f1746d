"""Embedding resolution chain.

text → cache → local provider → remote provider → vector

The cache key is derived from the preprocessed text, so inputs that differ
only in casing, whitespace or markup share one entry. Provider output is
fitted to the configured dimensions before it is cached or returned.
"""

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.embedding.EmbedStageCache import EmbedStageCache
from shared.embedding.EmbedStageInterface import EmbedStageInterface
from shared.embedding.EmbedStageLocal import EmbedStageLocal, LocalEmbeddingProvider
from shared.embedding.EmbedStageRemote import EmbedStageRemote
from shared.embedding.EmbeddingCache import EmbeddingCache
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperVector import fit_dimensions, zero_vector
from shared.knowledge.TextPreprocessor import TextPreprocessor
from shared.models.embedding import EmbeddingConfig, EmbeddingResult, EmbeddingSource


class EmbeddingError(Exception):
    """No stage of the embedding chain produced a vector."""


class EmbeddingService:
    """Resolves vectors for text through an ordered list of stages."""

    def __init__(
        self,
        helper_config: HelperConfig,
        cache: EmbeddingCache | None = None,
        local_provider: LocalEmbeddingProvider | None = None,
        remote_client: EmbedClientInterface | None = None,
        preprocessor: TextPreprocessor | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._config: EmbeddingConfig = helper_config.get_embedding_config()
        self._max_input_chars = int(helper_config.get_number_val("EMBED_MAX_INPUT_CHARS", default=8192))
        self._cache = cache or EmbeddingCache(helper_config=helper_config)
        self._preprocessor = preprocessor or TextPreprocessor(helper_config=helper_config)

        self._stages: list[EmbedStageInterface] = [EmbedStageCache(helper_config=helper_config, cache=self._cache)]
        if local_provider is not None:
            self._stages.append(EmbedStageLocal(helper_config=helper_config, provider=local_provider))
        if remote_client is not None:
            self._stages.append(EmbedStageRemote(helper_config=helper_config, client=remote_client))

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_embedding_config(self) -> EmbeddingConfig:
        return self._config

    def get_dimensions(self) -> int:
        return self._config.dimensions

    def get_provider_name(self) -> str:
        return self._config.provider.value

    def get_model_name(self) -> str:
        return self._config.model

    def get_zero_vector(self) -> list[float]:
        """Zero vector of the configured dimensions."""
        return zero_vector(self._config.dimensions)

    def has_providers(self) -> bool:
        """False when only the cache stage is configured."""
        return len(self._stages) > 1

    def get_cache_key(self, text: str) -> str | None:
        """None when nothing survives preprocessing, e.g. code-only text. Such text is never cached."""
        preprocessed = self._preprocessor.preprocess(text)
        return EmbeddingCache.make_key(preprocessed) if preprocessed else None

    ##########################################
    ################ EMBED ###################
    ##########################################

    async def embed(self, text: str) -> list[float]:
        """Embed ``text``; never raises.

        Empty input and total provider failure both yield the zero vector.

        Returns:
            list[float]: A vector of the configured dimensions.
        """
        result = await self.embed_with_status(text)
        return result.embedding

    async def embed_with_status(self, text: str) -> EmbeddingResult:
        """Embed ``text`` and report which stage produced the vector.

        Returns:
            EmbeddingResult: ``degraded`` is True when every provider failed
                and the zero vector was substituted.
        """
        if not text or not isinstance(text, str) or not text.strip():
            self.logging.warning("[Embed] Empty input text, returning zero vector")
            return EmbeddingResult(embedding=self.get_zero_vector(), source=EmbeddingSource.EMPTY_INPUT)

        try:
            embedding, source = await self._resolve(text)
        except Exception as exc:
            self.logging.error(
                "[Embed] All embedding attempts failed, using zero vector: %s: %s (text: %r)",
                type(exc).__name__, exc, text[:100],
            )
            return EmbeddingResult(embedding=self.get_zero_vector(), source=EmbeddingSource.FALLBACK, degraded=True)
        return EmbeddingResult(embedding=embedding, source=source)

    async def embed_strict(self, text: str) -> list[float]:
        """Embed ``text`` and raise instead of falling back to a zero vector.

        Used by ingestion and repair, where storing a placeholder vector
        would silently corrupt the knowledge base.

        Raises:
            EmbeddingError: If the text is empty or no stage produced a vector.
        """
        if not text or not isinstance(text, str) or not text.strip():
            raise EmbeddingError("Cannot embed empty text.")
        try:
            embedding, _ = await self._resolve(text)
        except EmbeddingError:
            raise
        except Exception as exc:
            raise EmbeddingError(f"Embedding failed: {type(exc).__name__}: {exc}") from exc
        return embedding

    ##########################################
    ############### HELPERS ##################
    ##########################################

    async def _resolve(self, text: str) -> tuple[list[float], EmbeddingSource]:
        """Run the stage chain until a vector is found.

        Raises:
            EmbeddingError: If no terminal stage is configured and every stage missed.
            Exception: Whatever the terminal stage raised.
        """
        self.logging.info("[Embed] Starting embedding generation for text length: %d", len(text))
        cache_key = self.get_cache_key(text)
        truncated = text[: self._max_input_chars]

        for stage in self._stages:
            embedding = await stage.attempt(truncated, cache_key)
            if not embedding:
                continue

            embedding = self._fit(embedding)
            if stage.is_provider() and cache_key is not None:
                self._cache.set(cache_key, embedding)
            return embedding, stage.get_source()

        raise EmbeddingError("No embedding provider produced a vector.")

    def _fit(self, embedding: list[float]) -> list[float]:
        dimensions = self._config.dimensions
        if len(embedding) != dimensions:
            self.logging.warning("[Embed] Converting embedding from %d to %d dimensions", len(embedding), dimensions)
        return fit_dimensions(embedding, dimensions)
