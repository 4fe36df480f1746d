"""Maintenance router - health probe, repair and cleanup passes."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from shared.dependencies.auth import verify_api_key

maintenance_router = APIRouter()


@maintenance_router.get(
    "/health",
    dependencies=[Depends(verify_api_key)],
    tags=["Maintenance"],
)
async def handle_health(request: Request) -> JSONResponse:
    """Coarse liveness probe: healthy iff the store holds at least one item."""
    healthy = await request.app.state.knowledge_service.check_rag_health()
    return JSONResponse(
        content={"status": "ok" if healthy else "unavailable", "healthy": healthy},
        status_code=200 if healthy else 503,
    )


@maintenance_router.post(
    "/maintenance/repair",
    dependencies=[Depends(verify_api_key)],
    tags=["Maintenance"],
)
async def handle_repair(request: Request) -> JSONResponse:
    repaired = await request.app.state.knowledge_service.repair_rag_entries()
    return JSONResponse(content={"status": "ok", "repaired": repaired})


@maintenance_router.post(
    "/maintenance/cleanup",
    dependencies=[Depends(verify_api_key)],
    tags=["Maintenance"],
)
async def handle_cleanup(request: Request) -> JSONResponse:
    removed = await request.app.state.knowledge_service.cleanup_deleted_knowledge_files()
    return JSONResponse(content={"status": "ok", "removed": removed})
