"""Pydantic models for knowledge items.

KnowledgeItem: a stored unit of knowledge (text, metadata, vector).
KnowledgeContent: the text payload plus its semi-structured metadata.
KnowledgeFile: an ingestion request for a source file.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, JsonValue

from shared.models.embedding import EmbeddingInfo


class KnowledgeScope(str, Enum):
    """Visibility partition of the knowledge base."""

    SHARED = "shared"
    PRIVATE = "private"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KnowledgeContent(BaseModel):
    """Text payload and arbitrary JSON-compatible metadata.

    Well-known metadata keys: title, tags, path, type, isShared, isMain,
    isChunk, originalId, chunkIndex, source, timestamp.
    """

    text: str
    metadata: dict[str, JsonValue] = Field(default_factory=dict)

    def get_title(self) -> str | None:
        title = self.metadata.get("title")
        return title if isinstance(title, str) and title else None

    def get_tags(self) -> list[str]:
        tags = self.metadata.get("tags")
        if not isinstance(tags, list):
            return []
        return [tag for tag in tags if isinstance(tag, str) and tag]


class KnowledgeItem(BaseModel):
    """A knowledge entry as stored in and returned by the knowledge store.

    Attributes:
        id:              Deterministic identifier (UUID string).
        agent_id:        Owning agent.
        content:         Text payload and metadata.
        embedding:       Vector; None only for rows awaiting repair.
        embedding_info:  Provenance/integrity data for the vector.
        created_at:      Ingestion timestamp.
        similarity:      Raw vector similarity when returned by a search.
        score:           Composite relevance score after reranking.
    """

    id: str
    agent_id: str
    content: KnowledgeContent
    embedding: list[float] | None = None
    embedding_info: EmbeddingInfo | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    similarity: float | None = None
    score: float | None = None

    def is_shared(self) -> bool:
        return self.content.metadata.get("isShared") is True

    def is_main(self) -> bool:
        return self.content.metadata.get("isMain") is True


class KnowledgeFile(BaseModel):
    """A source file to ingest into the knowledge base.

    path is relative to the knowledge root and, together with is_shared,
    determines the item id.
    """

    path: str
    content: str
    type: Literal["pdf", "md", "txt"] = "txt"
    is_shared: bool = False
