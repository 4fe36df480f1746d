"""Pydantic models for embedding configuration and provenance.

EmbeddingConfig: process-wide provider/model/dimension settings.
EmbeddingInfo: audit record stored alongside every persisted vector.
EmbeddingResult: a resolved vector plus the stage that produced it.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict

DEFAULT_DIMENSIONS = 384  # BGE-small-en-v1.5


class EmbeddingProvider(str, Enum):
    """Known embedding providers."""

    OPENAI = "OpenAI"
    OLLAMA = "Ollama"
    GAIANET = "GaiaNet"
    HEURIST = "Heurist"
    BGE = "BGE"

    @classmethod
    def from_name(cls, name: str) -> "EmbeddingProvider":
        """Resolve a provider from a case-insensitive name.

        Raises:
            ValueError: If the name does not match any provider.
        """
        for provider in cls:
            if provider.value.lower() == name.strip().lower():
                return provider
        raise ValueError(
            f"Unsupported embedding provider '{name}'. Expected one of: {', '.join(p.value for p in cls)}"
        )


# default (model, dimensions) per provider
PROVIDER_DEFAULTS: dict[EmbeddingProvider, tuple[str, int]] = {
    EmbeddingProvider.OPENAI: ("text-embedding-3-small", 1536),
    EmbeddingProvider.OLLAMA: ("mxbai-embed-large", 1024),
    EmbeddingProvider.GAIANET: ("nomic-embed", 768),
    EmbeddingProvider.HEURIST: ("BAAI/bge-large-en-v1.5", 1024),
    EmbeddingProvider.BGE: ("BGE-small-en-v1.5", DEFAULT_DIMENSIONS),
}


class EmbeddingConfig(BaseModel):
    """Active embedding configuration. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    dimensions: int = DEFAULT_DIMENSIONS
    model: str = PROVIDER_DEFAULTS[EmbeddingProvider.BGE][0]
    provider: EmbeddingProvider = EmbeddingProvider.BGE


class EmbeddingInfo(BaseModel):
    """Provenance and integrity data for a stored embedding.

    Attributes:
        embedding_dim:       Number of components in the vector.
        embedding_type:      Source type of the embedded content (e.g. "md", "text").
        embedding_version:   Format version of the stored vector.
        embedding_provider:  Provider name that produced the vector.
        embedding_model:     Model name that produced the vector.
        embedding_checksum:  SHA-256 hex digest of the serialised vector.
    """

    embedding_dim: int
    embedding_type: str = "text"
    embedding_version: str = "1.0"
    embedding_provider: str = "default"
    embedding_model: str = "default"
    embedding_checksum: str


class EmbeddingSource(str, Enum):
    """Which pipeline stage produced a vector."""

    EMPTY_INPUT = "empty_input"
    CACHE = "cache"
    LOCAL = "local"
    REMOTE = "remote"
    FALLBACK = "fallback"


class EmbeddingResult(BaseModel):
    """A resolved embedding.

    degraded is True when the vector is the zero-vector fallback produced
    because every provider failed, so callers can tell a real embedding
    from a placeholder.
    """

    embedding: list[float]
    source: EmbeddingSource
    degraded: bool = False
