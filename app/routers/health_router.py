"""Liveness endpoint.

Performs no downstream calls and is mounted outside the download pipeline, so
it never touches the rate limiter.
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from app.models.domain import HealthResponse


def create_health_router() -> APIRouter:
    """Create the /health router."""
    router = APIRouter(tags=["health"])

    @router.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Report liveness with the current UTC timestamp."""
        return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc).isoformat())

    return router
