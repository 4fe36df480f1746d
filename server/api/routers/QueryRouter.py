"""Query router - semantic retrieval against the knowledge store."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from shared.dependencies.auth import verify_api_key
from shared.models.search import SearchRequest, SearchResponse, SearchResultItem

query_router = APIRouter()


@query_router.post(
    "/query",
    dependencies=[Depends(verify_api_key)],
    tags=["Query"],
)
async def handle_query(request: Request, body: SearchRequest) -> JSONResponse:
    """Handle a natural language knowledge search request.

    Retrieval failures are logged and answered with an empty result list.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        body (SearchRequest): The parsed query.

    Returns:
        JSONResponse: Reranked list of matching knowledge items.
    """
    request.app.state.logging.info(
        "Query received: agent_id=%r limit=%d query=%r", body.agent_id, body.limit, body.query[:80]
    )

    items = await request.app.state.rag_service.search(
        body.query,
        limit=body.limit,
        agent_id=body.agent_id,
        conversation_context=body.conversation_context,
    )
    result = SearchResponse(
        query=body.query,
        results=[
            SearchResultItem(
                id=item.id,
                text=item.content.text,
                metadata=item.content.metadata,
                similarity=item.similarity,
                score=item.score,
            )
            for item in items
        ],
        total=len(items),
    )
    return JSONResponse(content=result.model_dump())
