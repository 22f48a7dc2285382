"""Persistence for SOA configurations, documents and versioned answers."""

from compliance_engine.db.database import async_session_maker, engine, init_db
from compliance_engine.db.models import (
    Base,
    ContextEntry,
    SOAAnswer,
    SOAConfiguration,
    SOADocument,
)

__all__ = [
    "Base",
    "ContextEntry",
    "SOAAnswer",
    "SOAConfiguration",
    "SOADocument",
    "engine",
    "async_session_maker",
    "init_db",
]
