import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from storyreel.api import render, worker
from storyreel.config import get_settings
from storyreel.constants.error_codes import get_error_spec, is_retryable
from storyreel.exceptions import StoryreelError
from storyreel.render.encoder import MediaEncoder
from storyreel.render.pipeline import RenderOrchestrator
from storyreel.schemas.errors import ErrorInfo, ErrorResponse
from storyreel.services.job_store import InMemoryJobStore
from storyreel.services.output_store import OutputStore
from storyreel.services.scratch_space import ScratchSpace
from storyreel.services.worker_client import WorkerDispatchClient

settings = get_settings()
logger = logging.getLogger(__name__)


def build_orchestrator() -> RenderOrchestrator:
    """Wire the render pipeline from settings."""
    return RenderOrchestrator(
        job_store=InMemoryJobStore(),
        dispatcher=WorkerDispatchClient(),
        encoder=MediaEncoder(),
        scratch=ScratchSpace(),
        output_store=OutputStore(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.state.orchestrator = build_orchestrator()
    logger.info(f"Worker pool: {settings.worker_endpoints}")
    yield
    # Shutdown
    await app.state.orchestrator.aclose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)


def _error_response(status_code: int, error: ErrorInfo) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error).model_dump(exclude_none=True),
    )


@app.exception_handler(StoryreelError)
async def storyreel_exception_handler(request: Request, exc: StoryreelError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return _error_response(exc.status_code, exc.to_error_info())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report body validation errors with the common error shape."""
    errors = exc.errors()
    if errors:
        first_error = errors[0]
        loc = " -> ".join(str(x) for x in first_error.get("loc", []))
        msg = first_error.get("msg", "Validation error")
        message = f"{loc}: {msg}" if loc else msg
    else:
        message = "Request validation failed"

    spec = get_error_spec("VALIDATION_ERROR")
    error = ErrorInfo(
        code="VALIDATION_ERROR",
        message=message,
        retryable=is_retryable("VALIDATION_ERROR"),
        suggested_fix=spec.get("suggested_fix"),
    )
    return _error_response(422, error)


# Global exception handler to ensure errors return proper JSON
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled exception: {exc}")
    error = ErrorInfo(
        code="INTERNAL_ERROR",
        message="Error generating videos",
        retryable=is_retryable("INTERNAL_ERROR"),
    )
    return _error_response(500, error)


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy", "version": settings.app_version}


# Routers
app.include_router(render.router, tags=["render"])
if settings.enable_worker_api:
    app.include_router(worker.router, tags=["worker"])

# Finished videos are addressable as {scheme}://{host}/{filename}; mounted last
# so API routes take precedence
Path(settings.output_dir).mkdir(parents=True, exist_ok=True)
app.mount(
    "/",
    StaticFiles(directory=settings.output_dir),
    name="outputs",
)
