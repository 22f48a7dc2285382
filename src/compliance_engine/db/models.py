"""SQLAlchemy models for Statement of Applicability documents and answers.

Configurations and documents are created by the upstream import; this
engine writes answer versions and recomputes document progress.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _new_id() -> str:
    return uuid.uuid4().hex


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class ContextEntry(Base):
    """Organization onboarding question/answer pair."""

    __tablename__ = "context_entries"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    organization_id: Mapped[str] = mapped_column(String(64), index=True)
    question: Mapped[str] = mapped_column(Text)
    answer: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    def __repr__(self) -> str:
        return f"<ContextEntry(org={self.organization_id}, question={self.question[:30]}...)>"


class SOAConfiguration(Base):
    """A named set of control questions for one framework."""

    __tablename__ = "soa_configurations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    framework_name: Mapped[str] = mapped_column(String(256))
    # JSON list of {id, text, columnMapping: {closure, title, isApplicable, justification}}
    questions: Mapped[str] = mapped_column(Text, default="[]")
    is_latest: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    def __repr__(self) -> str:
        return f"<SOAConfiguration(id={self.id}, framework={self.framework_name})>"


class SOADocument(Base):
    """An organization's SOA document built from a configuration."""

    __tablename__ = "soa_documents"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    organization_id: Mapped[str] = mapped_column(String(64), index=True)
    configuration_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("soa_configurations.id"), index=True
    )

    # Progress (recomputed after every auto-fill batch)
    total_questions: Mapped[int] = mapped_column(Integer, default=0)
    answered_questions: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(32), default="in_progress", index=True)
    # Statuses: in_progress, completed
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Sign-off, invalidated whenever answers change
    approver_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    configuration: Mapped["SOAConfiguration"] = relationship(
        "SOAConfiguration", lazy="joined"
    )

    def __repr__(self) -> str:
        return (
            f"<SOADocument(id={self.id}, answered={self.answered_questions}/"
            f"{self.total_questions}, status={self.status})>"
        )


class SOAAnswer(Base):
    """One version of an answer. Rows are append-only.

    Only ``is_latest`` is ever updated after insert.
    """

    __tablename__ = "soa_answers"
    __table_args__ = (
        UniqueConstraint("document_id", "question_id", "version", name="uq_soa_answer_version"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    document_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("soa_documents.id"), index=True
    )
    question_id: Mapped[str] = mapped_column(String(128), index=True)
    answer_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer)
    is_latest: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<SOAAnswer(document={self.document_id}, question={self.question_id}, "
            f"version={self.version}, latest={self.is_latest})>"
        )


# At most one latest row per (document, question)
Index(
    "uq_soa_answer_latest",
    SOAAnswer.document_id,
    SOAAnswer.question_id,
    unique=True,
    sqlite_where=SOAAnswer.is_latest == True,  # noqa: E712
    postgresql_where=SOAAnswer.is_latest == True,  # noqa: E712
)
