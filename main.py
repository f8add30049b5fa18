import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from expiring_links.api.v1 import links, redirect
from expiring_links.cache.exceptions import CacheError
from expiring_links.config import settings
from expiring_links.database.connection import engine, Base
from expiring_links.dependencies import get_cache
from expiring_links.logging_config import setup_logging
from expiring_links.services.exceptions import (
    ConflictError,
    GenerationExhaustedError,
    InternalError,
    LinkServiceError,
    NotFoundError,
    ValidationError,
)
from expiring_links.workers.cleanup_worker import CleanupSweeper, run_scheduled_cleanup

# Import models to ensure they're registered with Base
from expiring_links.models import LinkRecord  # noqa: F401

setup_logging(settings.log_level, settings.log_json)
logger = logging.getLogger("expiring_links.main")

# Create database tables
Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Check the cache, run the expiry sweeper for the app's lifetime"""
    cache = get_cache()
    try:
        await cache.ping()
    except CacheError as e:
        logger.warning("Cache unreachable at startup: %s", e)

    sweeper = CleanupSweeper(run_scheduled_cleanup, settings.cleanup_interval)
    sweeper_task = asyncio.create_task(sweeper.start())
    try:
        yield
    finally:
        sweeper.stop()
        sweeper_task.cancel()
        try:
            await sweeper_task
        except asyncio.CancelledError:
            pass
        await cache.close()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="A URL shortener with expiring links built with FastAPI",
    debug=settings.debug,
    lifespan=lifespan,
)


######## Map service errors to HTTP

ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    ConflictError: status.HTTP_409_CONFLICT,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    GenerationExhaustedError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    InternalError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@app.exception_handler(LinkServiceError)
async def link_service_error_handler(request: Request, exc: LinkServiceError):
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "environment": settings.environment}


######## Include routers
app.include_router(links.router, prefix="/api/v1")
app.include_router(redirect.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=settings.debug)
