"""Pydantic models for retrieval requests and responses."""

from pydantic import BaseModel, Field, JsonValue


class SearchRequest(BaseModel):
    """Incoming natural language retrieval query."""

    query: str
    conversation_context: str | None = None
    limit: int = Field(default=8, ge=1, le=100)
    agent_id: str | None = None


class SearchResultItem(BaseModel):
    """A single reranked knowledge item."""

    id: str
    text: str
    metadata: dict[str, JsonValue] = {}
    similarity: float | None = None
    score: float | None = None


class SearchResponse(BaseModel):
    """Response payload returned to the caller after a retrieval."""

    query: str
    results: list[SearchResultItem]
    total: int


class StoreRequest(BaseModel):
    """Request to embed and store a single piece of knowledge."""

    id: str
    content: str
    metadata: dict[str, JsonValue] = {}
