import asyncio
from typing import Protocol

from shared.embedding.EmbedStageInterface import EmbedStageInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperVector import is_valid_vector
from shared.models.embedding import EmbeddingSource


class LocalEmbeddingProvider(Protocol):
    """Anything that can embed a single text, e.g. EmbedClientOllama."""

    async def generate_embedding(self, text: str) -> list[float]:
        ...


class EmbedStageLocal(EmbedStageInterface):
    """Local embedding generation. Every failure falls through to the next stage."""

    def __init__(self, helper_config: HelperConfig, provider: LocalEmbeddingProvider):
        super().__init__(helper_config=helper_config)
        self._provider = provider
        self._timeout = float(helper_config.get_number_val("EMBED_LOCAL_TIMEOUT", default=30.0))

    def get_source(self) -> EmbeddingSource:
        return EmbeddingSource.LOCAL

    async def attempt(self, text: str, cache_key: str | None) -> list[float] | None:
        self.logging.info("[Embed] Attempting local embedding generation...")
        try:
            embedding = await asyncio.wait_for(self._provider.generate_embedding(text), timeout=self._timeout)
        except asyncio.TimeoutError:
            self.logging.warning("[Embed] Local embedding generation timed out after %.1fs", self._timeout)
            return None
        except Exception as exc:
            self.logging.warning("[Embed] Local embedding generation failed: %s: %s", type(exc).__name__, exc)
            return None

        if not is_valid_vector(embedding):
            self.logging.warning("[Embed] Invalid local embedding response: %s", type(embedding).__name__)
            return None

        self.logging.info("[Embed] Successfully generated local embedding of size %d", len(embedding))
        return list(embedding)
