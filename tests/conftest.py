"""Shared fixtures: in-memory database and seeded SOA documents."""

import json

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from compliance_engine.db.models import Base, ContextEntry, SOAConfiguration, SOADocument
from compliance_engine.evidence.models import EvidenceChunk

ORG_ID = "org-1"
USER_ID = "user-1"


@pytest_asyncio.fixture(scope="function")
async def session_maker():
    """Fresh in-memory SQLite database per test.

    StaticPool keeps every session on the same connection, so separate
    sessions see the same in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


def make_config_questions(count: int, group: str = "5") -> list[dict]:
    """Configuration question entries with control codes ``<group>.<n>``."""
    return [
        {
            "id": f"q{i}",
            "text": f"Control text {i}",
            "columnMapping": {
                "closure": f"{group}.{i}",
                "title": f"Control {group}.{i}",
                "isApplicable": None,
                "justification": None,
            },
        }
        for i in range(1, count + 1)
    ]


@pytest_asyncio.fixture
async def seed_document(session_maker):
    """Factory creating a configuration + document for ORG_ID."""

    async def _seed(questions: list[dict], organization_id: str = ORG_ID) -> str:
        async with session_maker() as session:
            async with session.begin():
                configuration = SOAConfiguration(
                    framework_name="ISO 27001:2022",
                    questions=json.dumps(questions),
                )
                session.add(configuration)
                await session.flush()
                document = SOADocument(
                    organization_id=organization_id,
                    configuration_id=configuration.id,
                    total_questions=len(questions),
                    approver_id="approver-9",
                )
                session.add(document)
                await session.flush()
                document_id = document.id
        return document_id

    return _seed


@pytest_asyncio.fixture
async def fully_remote_org(session_maker):
    """Record the onboarding answer that marks ORG_ID as fully remote."""
    async with session_maker() as session:
        async with session.begin():
            session.add(
                ContextEntry(
                    organization_id=ORG_ID,
                    question="How does your team work?",
                    answer="We are a Fully-Remote company across three time zones.",
                )
            )
    return ORG_ID


@pytest.fixture
def policy_chunk():
    """Factory for policy evidence chunks."""

    def _chunk(name: str = "Access Control", score: float = 0.8, source_id: str = "c1"):
        return EvidenceChunk(
            source_type="policy",
            source_id=source_id,
            content=f"{name} policy text.",
            relevance_score=score,
            policy_name=name,
        )

    return _chunk


@pytest.fixture
def config_questions():
    """Factory for configuration question lists."""
    return make_config_questions
