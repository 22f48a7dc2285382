"""HTTP API routers."""

from compliance_engine.api.autofill import router as autofill_router
from compliance_engine.api.health import router as health_router

__all__ = ["autofill_router", "health_router"]
