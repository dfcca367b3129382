"""FastAPI application: middleware, exception handlers, routers and lifespan"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import get_runner, get_session_store
from api.middleware.error_handler import register_exception_handlers
from api.middleware.logging import LoggingMiddleware
from api.middleware.rate_limit import RateLimitMiddleware
from api.routers import health, jobs, uploads
from config.settings import get_settings
from file_storage import get_job_store
from logger import get_logger

settings = get_settings()
logger = get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Prepare the jobs directory on startup; stop running jobs on shutdown."""
    logger.info(f"Starting {settings.app.name} v{settings.app.version}")
    await get_job_store().initialize()
    yield
    await get_runner().shutdown()
    await get_session_store().close()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.app.name,
    version=settings.app.version,
    description=settings.app.description,
    docs_url=settings.server.docs_url,
    redoc_url=settings.server.redoc_url,
    openapi_url=settings.server.openapi_url,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.server.cors_origins,
    allow_credentials=settings.server.cors_allow_credentials,
    allow_methods=settings.server.cors_allow_methods,
    allow_headers=settings.server.cors_allow_headers,
)

# Rate limiting middleware
app.add_middleware(RateLimitMiddleware)

# Logging middleware
app.add_middleware(LoggingMiddleware)

# Exception handlers
register_exception_handlers(app)

# Routers
app.include_router(health.router)
app.include_router(jobs.router)
app.include_router(uploads.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": settings.app.name,
        "version": settings.app.version,
        "docs": settings.server.docs_url,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.server.reload,
    )
