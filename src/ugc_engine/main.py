"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ugc_engine import __version__
from ugc_engine.api.routes import health, storage, tasks
from ugc_engine.config import settings
from ugc_engine.exceptions import (
    InvalidStoragePathError,
    InvalidTaskStateError,
    PreconditionError,
    TaskNotFoundError,
)
from ugc_engine.jobs.types import QueueRole
from ugc_engine.logging import get_logger, setup_logging
from ugc_engine.worker import job_queue

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info("application_starting", version=__version__)

    # Startup: verify database connection
    try:
        from ugc_engine.db.session import init_db

        init_db()
        logger.info("database_connected")
    except Exception as e:
        logger.error("database_connection_failed", error=str(e))
        # Don't raise - let health checks report the issue

    # Startup: queue client in the producer role
    try:
        job_queue.start(QueueRole.PRODUCER)
    except Exception as e:
        logger.error("job_queue_start_failed", error=str(e))
        # send() retries the start; readiness reports the broker

    yield

    # Shutdown
    logger.info("application_shutting_down")
    job_queue.stop()


# Create FastAPI app
app = FastAPI(
    title="UGC Engine",
    description="AI product marketing video and image generation",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)
app.state.job_queue = job_queue

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Error mapping
# =============================================================================


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(TaskNotFoundError)
async def task_not_found_handler(request: Request, exc: TaskNotFoundError) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, exc)


@app.exception_handler(PreconditionError)
async def precondition_handler(request: Request, exc: PreconditionError) -> JSONResponse:
    return _error(422, exc)


@app.exception_handler(InvalidTaskStateError)
async def invalid_state_handler(request: Request, exc: InvalidTaskStateError) -> JSONResponse:
    return _error(status.HTTP_409_CONFLICT, exc)


@app.exception_handler(InvalidStoragePathError)
async def invalid_path_handler(request: Request, exc: InvalidStoragePathError) -> JSONResponse:
    return _error(status.HTTP_400_BAD_REQUEST, exc)


# Register routers
app.include_router(health.router)
app.include_router(tasks.router, prefix="/api/v1")
app.include_router(storage.router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Root endpoint redirect to docs."""
    return {
        "name": "UGC Engine",
        "version": __version__,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ugc_engine.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
