"""Health check endpoint."""

from fastapi import APIRouter

from app.api.deps import Gateway
from app.models.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(gateway: Gateway):
    """Health check endpoint for monitoring."""
    return HealthResponse(
        status="healthy",
        version="1.0.0",
        provider=gateway.provider_name,
        model=gateway.model_id,
        provider_available=gateway.is_available(),
    )
