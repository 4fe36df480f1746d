"""KnowledgePoint model - payload stored alongside each knowledge vector in a RAG backend."""

from pydantic import BaseModel, JsonValue

from shared.models.embedding import EmbeddingInfo


class KnowledgePoint(BaseModel):
    """Payload stored alongside each knowledge vector.

    Flags from the item metadata (isShared, isMain, originalId) are
    duplicated as top-level fields so the backend can filter on them.

    Attributes:
        agent_id:        Owning agent.
        text:            Canonical text payload.
        metadata:        Arbitrary JSON-compatible metadata.
        is_shared:       Visible to every agent.
        is_main:         Main entry of an ingested file (subject to file cleanup).
        original_id:     Id of the main entry a chunk belongs to.
        embedding_info:  Provenance and checksum of the vector.
        created_at:      ISO-8601 ingestion timestamp.
        last_accessed:   ISO-8601 timestamp of the last write.
        access_count:    Number of reads recorded by the backend.
    """

    agent_id: str
    text: str
    metadata: dict[str, JsonValue] = {}

    is_shared: bool = False
    is_main: bool = False
    original_id: str | None = None

    embedding_info: EmbeddingInfo | None = None

    created_at: str | None = None
    last_accessed: str | None = None
    access_count: int = 0
