"""Health check endpoint."""

from fastapi import APIRouter

from src.routers.deps import RegistryServiceDep
from src.schemas.health import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    registry: RegistryServiceDep,
) -> HealthResponse:
    """Check service health including registry gateway connectivity."""
    registry_healthy = await registry.health_check()

    return HealthResponse(
        status="healthy" if registry_healthy else "degraded",
        registry=registry_healthy,
    )
