"""
Quorum Backend - Question Model
===============================

What:  ORM model for the `questions` table.
Who:   QuestionService (posting, listing, detail, view counts) and the vote
       coordinator's SQL store (accepted-answer pointer).

Table Design:
    - accepted_answer_id: nullable pointer to the single accepted Answer of
      this question. Written only together with Answer.is_accepted, inside
      one transaction (see services/sql_vote_store.py).
    - view_count: incremented with an atomic UPDATE, never read-modify-write.
    - The FK to answers is created with use_alter because answers also
      reference questions (a cycle).
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quorum.database import Base
from quorum.models.profile import Profile
from quorum.models.taxonomy import Category, Tag, question_tags


class Question(Base):
    """
    A question posted by a community member.

    Lifecycle:
        1. Created with 1-5 tags (tag usage counters bumped)
        2. Receives answers; its author may accept one of them
        3. Re-accepting moves the pointer; the previous holder is cleared
    """

    __tablename__ = "questions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("categories.id"), nullable=False
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id"), nullable=False
    )
    accepted_answer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey(
            "answers.id",
            use_alter=True,
            name="fk_questions_accepted_answer_id",
            ondelete="SET NULL",
        ),
        nullable=True,
        default=None,
    )
    view_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
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

    # ── Relationships ─────────────────────────────────────────────────────
    # Async sessions cannot lazy-load; queries that need these use selectinload.
    author: Mapped[Profile] = relationship(Profile, lazy="raise")
    category: Mapped[Category] = relationship(Category, lazy="raise")
    tags: Mapped[List[Tag]] = relationship(Tag, secondary=question_tags, lazy="raise")

    # Listing is newest-first and paginates on created_at
    __table_args__ = (
        Index("idx_questions_created_at", "created_at"),
        Index("idx_questions_author_id", "author_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Question(id={self.id}, accepted_answer_id={self.accepted_answer_id}, "
            f"view_count={self.view_count})>"
        )
