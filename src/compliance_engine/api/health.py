"""Health check endpoints for the compliance engine API."""

from typing import Any

import httpx
from fastapi import APIRouter
from sqlalchemy import text

from compliance_engine.config import settings
from compliance_engine.db.database import async_session_maker
from compliance_engine.rag.exceptions import LLMProviderNotConfiguredError
from compliance_engine.rag.factory import get_llm

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    """Basic health check - returns ok if the service is running."""
    return {"status": "ok"}


@router.get("/health/ready")
async def ready() -> dict[str, Any]:
    """
    Readiness check - verifies all dependent services are available.

    Checks:
    - Database: answer store connection
    - Vector: Upstash Vector index (skipped when not configured)
    - LLM: Language model provider connection (Claude, Ollama)
    """
    services: dict[str, str] = {}
    all_ok = True

    # Check database
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
        services["database"] = "ok"
    except Exception as e:
        services["database"] = f"error: {type(e).__name__}"
        all_ok = False

    # Check vector index
    if settings.vector_search_configured:
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.get(
                    f"{settings.UPSTASH_VECTOR_REST_URL.rstrip('/')}/info",
                    headers={"Authorization": f"Bearer {settings.UPSTASH_VECTOR_REST_TOKEN}"},
                )
                if response.status_code == 200:
                    services["vector"] = "ok"
                else:
                    services["vector"] = f"error: status {response.status_code}"
                    all_ok = False
        except Exception as e:
            services["vector"] = f"error: {type(e).__name__}"
            all_ok = False
    else:
        services["vector"] = "warning: not configured"

    # Check LLM (provider-agnostic)
    try:
        llm = await get_llm()
        if await llm.check_health():
            services["llm"] = f"ok ({llm.provider_name})"
        else:
            services["llm"] = f"error: {llm.provider_name} not healthy"
            all_ok = False
    except LLMProviderNotConfiguredError:
        services["llm"] = "warning: no provider configured"
    except Exception as e:
        services["llm"] = f"error: {type(e).__name__}"
        all_ok = False

    status = "ready" if all_ok else "degraded"
    return {"status": status, "services": services}
