"""
Quorum Backend - Answer Schemas
===============================

What:  API contract for submitting and listing answers.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from quorum.models.vote import VoteDirection
from quorum.schemas.common import AuthorSummary


class AnswerCreate(BaseModel):
    content: str = Field(min_length=10, description="Answer body (rich text, at least 10 characters)")

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 10:
            raise ValueError("Answer must be at least 10 characters")
        return v


class AnswerResponse(BaseModel):
    """
    One answer as shown under its question.

    user_vote is the requesting user's own vote on this answer, null for
    anonymous callers or when they have not voted.
    """
    id: uuid.UUID
    question_id: uuid.UUID
    content: str
    author: AuthorSummary
    vote_score: int
    is_accepted: bool
    user_vote: Optional[VoteDirection] = None
    created_at: datetime
    updated_at: datetime


class AnswerListResponse(BaseModel):
    """Answers in display order: accepted first, then by score."""
    answers: List[AnswerResponse]
    total_count: int
