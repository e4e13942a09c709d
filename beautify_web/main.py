"""FastAPI application entry point for Beautify Web."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .dependencies import async_session, init_db
from .exceptions import GatewayConfigurationError
from .api import generate_router, health_router, history_router, jobs_router, results_router
from .services.gateway import GenerationGateway
from .services.processor import JobProcessor
from .services.supervisor import JobSupervisor
from .services.task_runner import TaskRunner

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    settings.ensure_directories()
    await init_db()

    app.state.supervisor = JobSupervisor()
    try:
        app.state.gateway = GenerationGateway.from_settings()
    except GatewayConfigurationError as e:
        logger.error(f"Image generation disabled: {e}")
        app.state.gateway = None
        app.state.processor = None
    else:
        app.state.processor = JobProcessor(
            async_session,
            app.state.supervisor,
            TaskRunner(app.state.gateway),
        )
        if settings.reconcile_on_startup:
            restarted = await app.state.processor.reconcile()
            logger.info(f"Reconciled {len(restarted)} in-flight jobs")

    yield

    # Shutdown
    if app.state.processor is not None:
        await app.state.processor.shutdown()
    if app.state.gateway is not None:
        await app.state.gateway.aclose()


app = FastAPI(
    title="Beautify Web",
    description="Image beautification jobs backed by a generative image API",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(health_router, prefix=settings.api_v1_prefix)
app.include_router(generate_router, prefix=settings.api_v1_prefix)
app.include_router(history_router, prefix=settings.api_v1_prefix)
app.include_router(jobs_router, prefix=settings.api_v1_prefix)
app.include_router(results_router, prefix=settings.api_v1_prefix)


@app.get("/")
async def root():
    return {"message": "Beautify Web API", "docs": "/docs"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
