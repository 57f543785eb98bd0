"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status

from mastery.web.schemas import API_VERSION, HealthResponse
from mastery.web.services import Services, get_services

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(services: Services = Depends(get_services)) -> HealthResponse:
    """Check API health status."""
    if not services.database.is_open:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not open",
        )
    return HealthResponse(
        status="ok",
        version=API_VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
