"""FastAPI application entry point for the knowledge retrieval API."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from server.api.routers.KnowledgeRouter import knowledge_router
from server.api.routers.MaintenanceRouter import maintenance_router
from server.api.routers.QueryRouter import query_router
from services.knowledge.KnowledgeRuntime import KnowledgeRuntime
from services.knowledge.RAGService import RAGService
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    app.state.logging = logging
    app.state.config = HelperConfig(logger=logging)

    runtime = KnowledgeRuntime(helper_config=app.state.config)
    try:
        app.state.knowledge_service = await runtime.boot()
    except Exception:
        await runtime.close()
        raise
    app.state.rag_service = RAGService(helper_config=app.state.config, knowledge_service=app.state.knowledge_service)

    logging.info("[Knowledge] API v%s ready", app_version, color="green")
    yield

    await runtime.close()
    logging.info("[Knowledge] API shut down")


app = FastAPI(
    title="Knowledge Engine",
    description="Semantic knowledge retrieval: embedding, storage and reranked search.",
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(query_router)
app.include_router(knowledge_router)
app.include_router(maintenance_router)


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("APP_PORT", "8000"))
    logging.info("Starting knowledge API v%s on port %d (root dir: %s)", app_version, port, os.getenv("ROOT_DIR", os.getcwd()))
    uvicorn.run(app, host="0.0.0.0", port=port)
