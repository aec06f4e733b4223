"""
Quorum Backend - Vote Model
===========================

What:  One voter's up/down vote on one answer.

Invariant: zero or one row per (user_id, answer_id), enforced by
`uq_votes_user_answer`. A repeat vote in the same direction deletes the row;
a repeat vote in the other direction flips `vote_type` in place.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from quorum.database import Base


class VoteDirection(str, enum.Enum):
    UP = "up"
    DOWN = "down"


class Vote(Base):
    __tablename__ = "votes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    answer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("answers.id", ondelete="CASCADE"), nullable=False
    )
    vote_type: Mapped[str] = mapped_column(String(4), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        UniqueConstraint("user_id", "answer_id", name="uq_votes_user_answer"),
        CheckConstraint("vote_type IN ('up', 'down')", name="ck_votes_vote_type"),
        # Score recomputation scans votes by answer
        Index("idx_votes_answer_id", "answer_id"),
    )

    def __repr__(self) -> str:
        return f"<Vote {self.vote_type} by {self.user_id} on answer {self.answer_id}>"
