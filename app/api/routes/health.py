"""
Health check and system status endpoints.

Provides endpoints for:
- Basic health check
- Detailed system status
- Provider and research configuration checks
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import Optional
import time

from app.core.config import get_settings
from app.core.dependencies import (
    get_llm_client,
    get_provider_registry,
    get_search_service,
)
from app.ml.identification import ProviderRegistry
from app.services.llm_client import LLMClient
from app.services.search_service import WebSearchService

router = APIRouter(prefix="/health", tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: float
    version: str


class DetailedHealthResponse(BaseModel):
    """Detailed health check with component status."""
    status: str
    timestamp: float
    version: str
    components: dict[str, dict]
    uptime_seconds: Optional[float] = None


# Track startup time
_startup_time: Optional[float] = None


def set_startup_time() -> None:
    """Set the startup time (called on app startup)."""
    global _startup_time
    _startup_time = time.time()


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns:
        Simple health status indicating the service is running.
    """
    return HealthResponse(
        status="healthy",
        timestamp=time.time(),
        version=get_settings().app_version
    )


@router.get("/ready", response_model=DetailedHealthResponse)
async def readiness_check(
    registry: ProviderRegistry = Depends(get_provider_registry),
    llm_client: LLMClient = Depends(get_llm_client),
    search_service: WebSearchService = Depends(get_search_service),
) -> DetailedHealthResponse:
    """
    Detailed readiness check.

    Verifies:
    - At least one identification provider is configured
    - The structured-extraction model is reachable with credentials
    - Which search backend will be used

    Returns:
        Detailed status of all components.
    """
    components = {}
    overall_healthy = True

    providers = registry.get_provider_info()
    configured = [p for p in providers if p.get("is_configured")]
    components["identification"] = {
        "status": "ready" if configured else "not_configured",
        "providers": providers,
    }
    if not configured:
        overall_healthy = False

    components["care_extraction"] = {
        "status": "ready" if llm_client.is_configured else "not_configured",
        "base_url": llm_client.base_url,
    }
    if not llm_client.is_configured:
        overall_healthy = False

    components["search"] = {
        "status": "ready",
        "backend": "tavily" if search_service.tavily_api_key else "duckduckgo",
        "directory_fallback": search_service.use_directory_fallback,
    }

    uptime = None
    if _startup_time:
        uptime = time.time() - _startup_time

    if not overall_healthy:
        raise HTTPException(status_code=503, detail="Service not ready")

    return DetailedHealthResponse(
        status="ready",
        timestamp=time.time(),
        version=get_settings().app_version,
        components=components,
        uptime_seconds=uptime
    )


@router.get("/live")
async def liveness_check() -> dict:
    """
    Simple liveness probe for Kubernetes.

    Returns 200 if the process is running.
    """
    return {"status": "alive"}
