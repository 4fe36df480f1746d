"""Knowledge router - store, ingest and remove knowledge items."""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from shared.dependencies.auth import verify_api_key
from shared.embedding.EmbeddingService import EmbeddingError
from shared.models.knowledge import KnowledgeFile
from shared.models.search import StoreRequest

knowledge_router = APIRouter()


@knowledge_router.post(
    "/knowledge",
    dependencies=[Depends(verify_api_key)],
    tags=["Knowledge"],
)
async def handle_store(request: Request, body: StoreRequest) -> JSONResponse:
    """Embed and store a single piece of knowledge.

    Raises:
        HTTPException: 422 for empty content, 503 if no embedding could be produced.
    """
    if not body.content.strip():
        raise HTTPException(status_code=422, detail="Content must not be empty.")
    try:
        item = await request.app.state.rag_service.store(body.id, body.content, body.metadata)
    except EmbeddingError as exc:
        request.app.state.logging.error("Storing knowledge %r failed: %s", body.id, exc)
        raise HTTPException(status_code=503, detail="Embedding provider unavailable.")
    return JSONResponse(content={"status": "stored", "id": item.id})


@knowledge_router.post(
    "/knowledge/file",
    dependencies=[Depends(verify_api_key)],
    tags=["Knowledge"],
)
async def handle_process_file(request: Request, body: KnowledgeFile) -> JSONResponse:
    """Ingest a source file under its scoped id.

    Raises:
        HTTPException: 422 for empty content, 503 if no embedding could be produced.
    """
    if not body.content.strip():
        raise HTTPException(status_code=422, detail="Content must not be empty.")
    try:
        item = await request.app.state.knowledge_service.process_file(body)
    except EmbeddingError as exc:
        request.app.state.logging.error("Processing file %r failed: %s", body.path, exc)
        raise HTTPException(status_code=503, detail="Embedding provider unavailable.")
    return JSONResponse(content={"status": "stored", "id": item.id, "path": body.path})


@knowledge_router.delete(
    "/knowledge/{id}",
    dependencies=[Depends(verify_api_key)],
    tags=["Knowledge"],
)
async def handle_remove(request: Request, id: str) -> JSONResponse:
    """Remove a knowledge item by the id returned on store, or by the external id it was stored under."""
    item_id = request.app.state.rag_service.make_item_id(id)
    await request.app.state.knowledge_service.remove_knowledge(item_id)
    return JSONResponse(content={"status": "removed", "id": item_id})
