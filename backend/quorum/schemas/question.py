"""
Quorum Backend - Question Schemas
=================================

What:  API contract for posting, listing, and reading questions.
How:   QuestionCreate carries the form rules (title 5-100 chars, content at
       least 10, one category, 1-5 distinct tags). FastAPI turns violations
       into 422 responses before the service runs.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from quorum.schemas.common import AuthorSummary, CategoryResponse


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class QuestionCreate(BaseModel):
    title: str = Field(min_length=5, max_length=100)
    content: str = Field(min_length=10)
    category_id: uuid.UUID
    tag_ids: List[uuid.UUID] = Field(min_length=1, max_length=5)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 5:
            raise ValueError("Title must be at least 5 characters")
        return v

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 10:
            raise ValueError("Question must be at least 10 characters")
        return v

    @field_validator("tag_ids")
    @classmethod
    def unique_tags(cls, v: List[uuid.UUID]) -> List[uuid.UUID]:
        """Duplicate tag ids would violate the question_tags primary key."""
        if len(set(v)) != len(v):
            raise ValueError("Each tag can only be added once")
        return v


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class QuestionListItem(BaseModel):
    """
    What:  Card-sized question summary for the home feed.

    has_accepted_answer is derived from accepted_answer_id, so the feed
    badge follows the acceptance state.
    """
    id: uuid.UUID
    title: str
    content_preview: str = Field(description="First 200 characters of the question body")
    author: AuthorSummary
    category: CategoryResponse
    tags: List[str] = Field(description="Tag names")
    answer_count: int
    view_count: int
    has_accepted_answer: bool
    created_at: datetime


class QuestionListResponse(BaseModel):
    """
    Paginated feed, newest first.

    next_cursor encodes the created_at (ISO 8601) and id of the last item;
    send it back as `cursor` to get the following page.
    """
    questions: List[QuestionListItem]
    next_cursor: Optional[str] = None
    has_more: bool


class QuestionDetail(BaseModel):
    id: uuid.UUID
    title: str
    content: str
    author: AuthorSummary
    category: CategoryResponse
    tags: List[str]
    accepted_answer_id: Optional[uuid.UUID] = None
    view_count: int
    created_at: datetime
    updated_at: datetime
