"""
Quorum Backend - Vote and Acceptance Schemas
============================================

What:  Request bodies and results for the vote and accept endpoints.
Who:   VoteCoordinator returns VoteResult / AcceptResult; routes serialize them.
"""

import enum
import uuid
from typing import Optional

from pydantic import BaseModel, Field

from quorum.models.vote import VoteDirection


class VoteOutcome(str, enum.Enum):
    CREATED = "created"
    RETRACTED = "retracted"
    SWITCHED = "switched"


class VoteRequest(BaseModel):
    direction: VoteDirection = Field(description="'up' or 'down'")


class VoteResult(BaseModel):
    """
    What:  Effect of one cast_vote call.
    Who:   Returned by POST /api/answers/{answer_id}/vote.

    user_vote is the caller's vote after the call (null once retracted), so
    the client can redraw its arrows without refetching the answer list.
    """
    answer_id: uuid.UUID
    outcome: VoteOutcome = Field(description="created, retracted, or switched")
    user_vote: Optional[VoteDirection] = Field(
        default=None, description="Caller's vote after the call; null when retracted"
    )
    vote_score: int = Field(description="Answer's up-minus-down score after the call")


class AcceptRequest(BaseModel):
    answer_id: uuid.UUID = Field(description="Answer to mark as the accepted one")


class AcceptResult(BaseModel):
    question_id: uuid.UUID
    accepted_answer_id: uuid.UUID
    previous_answer_id: Optional[uuid.UUID] = Field(
        default=None, description="Accepted answer before the call, if any"
    )
    changed: bool = Field(description="False when the answer was already accepted")
