"""Tests for the health check endpoint."""
from unittest.mock import AsyncMock, patch

from httpx import AsyncClient
from redis.exceptions import RedisError

from core.redis import RedisClient


async def test_health_endpoint_returns_200(client: AsyncClient) -> None:
    """Test that the health endpoint returns 200 OK."""
    response = await client.get("/health")
    assert response.status_code == 200


async def test_health_endpoint_returns_healthy_status(client: AsyncClient) -> None:
    """Test that the health endpoint returns healthy status."""
    response = await client.get("/health")
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "healthy"
    assert data["cache"] == "healthy"


async def test_health_endpoint_degraded_when_cache_unavailable(
    client: AsyncClient, redis_client: RedisClient,
) -> None:
    """Test that an unreachable cache degrades but does not fail health."""
    with patch.object(
        redis_client._client, "ping",
        new_callable=AsyncMock,
        side_effect=RedisError("Connection lost"),
    ):
        response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["database"] == "healthy"
    assert data["cache"] == "unavailable"
