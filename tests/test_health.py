"""Tests for health check endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from compliance_engine.main import app
from compliance_engine.rag.exceptions import LLMProviderNotConfiguredError


@pytest.fixture
async def client():
    """Create an async test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    """Test basic health endpoint returns ok."""
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"


@pytest.mark.asyncio
async def test_root(client: AsyncClient):
    """Test root endpoint returns app info."""
    response = await client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "name" in data
    assert "version" in data


@pytest.mark.asyncio
async def test_health_ready_returns_services(client: AsyncClient, session_maker):
    """Test readiness endpoint returns service statuses."""
    with patch("compliance_engine.api.health.async_session_maker", session_maker), \
         patch("compliance_engine.api.health.get_llm", AsyncMock(
             side_effect=LLMProviderNotConfiguredError("none", provider="none")
         )), \
         patch("compliance_engine.api.health.settings") as mock_settings:
        mock_settings.vector_search_configured = False

        response = await client.get("/health/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["services"]["database"] == "ok"
    assert data["services"]["vector"] == "warning: not configured"
    assert data["services"]["llm"] == "warning: no provider configured"


@pytest.mark.asyncio
async def test_health_ready_degraded_when_llm_unhealthy(client: AsyncClient, session_maker):
    """Test readiness reports degraded when the model provider is down."""
    llm = AsyncMock()
    llm.provider_name = "claude"
    llm.check_health = AsyncMock(return_value=False)

    with patch("compliance_engine.api.health.async_session_maker", session_maker), \
         patch("compliance_engine.api.health.get_llm", AsyncMock(return_value=llm)), \
         patch("compliance_engine.api.health.settings") as mock_settings:
        mock_settings.vector_search_configured = False

        response = await client.get("/health/ready")

    data = response.json()
    assert data["status"] == "degraded"
    assert data["services"]["llm"] == "error: claude not healthy"
