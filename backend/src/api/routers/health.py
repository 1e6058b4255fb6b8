"""Health check endpoints."""
import logging

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import get_async_session


logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str
    cache: str


@router.get("/health", response_model=HealthResponse)
async def health_check(
    request: Request,
    db: AsyncSession = Depends(get_async_session),
) -> HealthResponse:
    """
    Check application, database, and cache health.

    An unavailable cache only degrades the service: user lookups fall back to
    the database.
    """
    db_status = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Database health check failed")
        db_status = "unhealthy"

    redis_client = request.app.state.redis_client
    cache_status = "healthy" if await redis_client.ping() else "unavailable"

    healthy = db_status == "healthy" and cache_status == "healthy"
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        database=db_status,
        cache=cache_status,
    )
