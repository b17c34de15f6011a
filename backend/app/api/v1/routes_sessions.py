# backend/app/api/v1/routes_sessions.py

from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from app.api.deps import get_container
from app.schemas.sessions import SessionBatchRequest, SessionBatchResponse
from app.services.runtime import ServiceContainer

router = APIRouter(tags=["sessions", "ingest"])


@router.post(
    "/sessions",
    response_model=SessionBatchResponse,
    status_code=status.HTTP_200_OK,
    summary="Ingest a batch of captured network sessions",
)
async def ingest_sessions(
    payload: SessionBatchRequest,
    container: ServiceContainer = Depends(get_container),
) -> SessionBatchResponse:
    """
    Receive a capture-agent batch and publish one raw-log message per
    session. Classification happens asynchronously downstream.
    """
    return await container.ingest.ingest_batch(payload)


@router.get("/logs", summary="List recently received raw sessions")
def list_logs(
    limit: int = 100,
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    return {"logs": container.log_store.list_logs(limit=limit)}
