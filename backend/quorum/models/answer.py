"""
Quorum Backend - Answer Model
=============================

What:  ORM model for the `answers` table.

Derived columns:
    vote_score   up-votes minus down-votes on this answer. Only ever written
                 by recomputing it from the `votes` table in the same
                 transaction as the vote change.
    is_accepted  at most one TRUE per question, enforced by the partial
                 unique index `uq_answers_one_accepted_per_question`.

Display order: is_accepted DESC, vote_score DESC, created_at ASC.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Text, Uuid, false, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quorum.database import Base
from quorum.models.profile import Profile


class Answer(Base):
    __tablename__ = "answers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    question_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id"), nullable=False
    )
    vote_score: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )
    is_accepted: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    author: Mapped[Profile] = relationship(Profile, lazy="raise")

    __table_args__ = (
        Index("idx_answers_question_id", "question_id"),
        Index(
            "uq_answers_one_accepted_per_question",
            "question_id",
            unique=True,
            postgresql_where=text("is_accepted"),
            sqlite_where=text("is_accepted = 1"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Answer(id={self.id}, question_id={self.question_id}, "
            f"vote_score={self.vote_score}, is_accepted={self.is_accepted})>"
        )
