from fastapi import APIRouter, Depends

from app.api.deps import get_container
from app.services.runtime import ServiceContainer

router = APIRouter()


@router.get("/health", tags=["health"])
async def health_check(container: ServiceContainer = Depends(get_container)) -> dict:
    """
    Simple liveness / readiness check.
    """
    cfg = container.settings
    return {
        "status": "ok",
        "service": cfg.APP_NAME,
        "environment": cfg.ENVIRONMENT,
        "consumers": [c.queue for c in container.consumers],
    }
