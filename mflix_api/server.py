"""
Primary FastAPI application entry point
"""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware

from mflix_api.api.api import api_router
from mflix_api.api.deps import close_connections, initialize_connections
from mflix_api.core.config import settings
from mflix_api.core.errors import register_error_handlers
from mflix_api.core.logging import configure_logging

logger = logging.getLogger(__name__)

DOCS_URL = "/api-docs"


# Define application lifespan
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    configure_logging(settings)
    logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION} ({settings.ENVIRONMENT})")
    await initialize_connections()
    yield
    # Shutdown
    logger.info("Application shutdown: Closing connections...")
    await close_connections()


# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="REST API for the sample_mflix movie catalogue: CRUD, Atlas Search, vector search and reports.",
    docs_url=DOCS_URL,
    redoc_url=None,
    openapi_url=f"{DOCS_URL}/openapi.json",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    logger.debug(f"Incoming request: {request.method} {request.url.path}")
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    line = f"{request.method} {request.url.path} {response.status_code} - {duration_ms:.0f}ms"
    if response.status_code >= 500:
        logger.error(line)
    elif response.status_code >= 400:
        logger.warning(line)
    else:
        logger.info(line)
    return response


register_error_handlers(app)

# Include routers
app.include_router(api_router, prefix=settings.API_PREFIX)


# Root endpoint
@app.get("/", status_code=status.HTTP_200_OK, tags=["Info"])
async def root():
    """API information and entry points."""
    return {
        "name": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "description": "Movies CRUD, search and reporting API over the sample_mflix dataset",
        "endpoints": {
            "movies": f"{settings.API_PREFIX}/movies",
            "health": f"{settings.API_PREFIX}/health",
            "docs": DOCS_URL,
        },
    }


# For local development
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("mflix_api.server:app", host="0.0.0.0", port=settings.PORT, reload=settings.ENVIRONMENT == "development")
