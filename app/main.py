"""
Plant Care Import API

FastAPI application that turns a photo of a house plant into a plant
record with a researched care schedule.

This is the main entry point for the application.

Usage:
    uvicorn app.main:app --reload
    uvicorn app.main:app --host 0.0.0.0 --port 8000

Production:
    gunicorn app.main:app -k uvicorn.workers.UvicornWorker -w 4
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.openapi.utils import get_openapi

from app.core.config import get_settings
from app.core.dependencies import get_llm_client, get_provider_registry
from app.core.exceptions import PlantImportError
from app.api.routes import (
    health_router,
    import_sessions_router,
    plants_router,
    research_router,
)
from app.api.routes.health import set_startup_time

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs on startup:
    - Register identification providers

    Runs on shutdown:
    - Close the shared LLM client
    """
    logger.info("Starting Plant Care Import API...")

    set_startup_time()

    registry = get_provider_registry()
    if len(registry) == 0:
        logger.warning(
            "No identification providers configured; "
            "set PLANT_IMPORT_LLM_API_KEY or PLANT_IMPORT_PLANTNET_API_KEY"
        )

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down Plant Care Import API...")
    await get_llm_client().close()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
## Plant Care Import API

Import a house plant from a single photo.

### How it works

1. Several independent models identify the species; their votes are
   reconciled and ambiguous results are turned into suggestions
2. Care guides for the species are searched on the web, read and checked
   for explicit, confident care information
3. At least three agreeing sources are consolidated into one care profile
4. After confirmation the plant is created with its care schedule

### API Endpoints

- `POST /api/v1/import-sessions` - Start an import for an uploaded photo
- `GET /api/v1/import-sessions/{id}` - Poll import progress
- `POST /api/v1/import-sessions/{id}/select` - Choose among suggested species
- `POST /api/v1/import-sessions/{id}/confirm` - Create the plant
- `POST /api/v1/research` - Research care for a known species
- `GET /api/v1/plants` - Plants created by confirmed imports
- `GET /api/v1/health` - Health check
- `GET /api/v1/health/ready` - Detailed readiness check
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PlantImportError)
async def plant_import_exception_handler(request: Request, exc: PlantImportError):
    """Errors with a user-facing message that no route translated."""
    logger.error(f"{type(exc).__name__}: {exc.message}")
    return JSONResponse(
        status_code=500,
        content={
            "error": type(exc).__name__,
            "message": exc.message,
        }
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again.",
            "details": str(exc) if settings.debug else None
        }
    )


# Include routers
app.include_router(health_router, prefix=settings.api_prefix)
app.include_router(import_sessions_router, prefix=settings.api_prefix)
app.include_router(research_router, prefix=settings.api_prefix)
app.include_router(plants_router, prefix=settings.api_prefix)


@app.get("/", tags=["Root"])
async def root():
    """API information endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "documentation": "/docs",
        "health_check": f"{settings.api_prefix}/health",
        "import_endpoint": f"{settings.api_prefix}/import-sessions"
    }


# Custom OpenAPI schema
def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=settings.app_name,
        version=settings.app_version,
        description=app.description,
        routes=app.routes,
    )

    openapi_schema["tags"] = [
        {
            "name": "Import",
            "description": "Photo-to-plant import sessions"
        },
        {
            "name": "Research",
            "description": "Care research for a known species"
        },
        {
            "name": "Plants",
            "description": "Plants created by confirmed imports"
        },
        {
            "name": "Health",
            "description": "Health check and system status endpoints"
        },
        {
            "name": "Root",
            "description": "API root and information"
        }
    ]

    openapi_schema["info"]["x-example-request"] = {
        "image_url": "https://example.com/photos/snake-plant.jpg"
    }

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi


# Entry point for running with Python
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers
    )
