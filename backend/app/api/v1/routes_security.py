# backend/app/api/v1/routes_security.py

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_container
from app.core.errors import GraphStoreError
from app.schemas.graph import GraphSnapshot
from app.schemas.incidents import AggregatedView
from app.services.runtime import ServiceContainer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["security"])


@router.get(
    "/security-analysis",
    response_model=AggregatedView,
    summary="Latest aggregated security analysis",
)
def get_security_analysis(
    container: ServiceContainer = Depends(get_container),
) -> AggregatedView:
    """
    Read-through of the latest-view store. Always well-formed: before the
    first incident is correlated this is a placeholder view.
    """
    return container.view_store.get()


@router.get(
    "/graph",
    response_model=GraphSnapshot,
    summary="Live SENDS_TO graph snapshot",
)
async def get_graph(
    container: ServiceContainer = Depends(get_container),
) -> GraphSnapshot:
    try:
        return await container.graph_store.snapshot()
    except GraphStoreError as exc:
        logger.error("Error fetching graph data: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to fetch graph data",
        )
