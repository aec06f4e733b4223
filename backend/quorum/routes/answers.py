"""
Quorum Backend - Answer Route Handlers
======================================

What:  Answer listing and submission under a question, and voting on answers.
Who:   Called by the question page.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.database import get_db_session
from quorum.identity import get_current_user_id
from quorum.schemas.answer import AnswerCreate, AnswerListResponse, AnswerResponse
from quorum.schemas.common import ErrorResponse
from quorum.schemas.vote import VoteRequest, VoteResult
from quorum.services.answer_service import answer_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Answers"])


@router.get(
    "/questions/{question_id}/answers",
    response_model=AnswerListResponse,
    responses={404: {"description": "Question not found", "model": ErrorResponse}},
    summary="List a question's answers",
    description=(
        "Accepted answer first, then by score. Signed-in callers also get "
        "their own vote on each answer in user_vote."
    ),
)
async def list_answers(
    question_id: UUID,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> AnswerListResponse:
    return await answer_service.list_answers(db, question_id, viewer_id=user_id)


@router.post(
    "/questions/{question_id}/answers",
    response_model=AnswerResponse,
    status_code=201,
    responses={
        401: {"description": "Not signed in", "model": ErrorResponse},
        404: {"description": "Question not found", "model": ErrorResponse},
    },
    summary="Answer a question",
)
async def submit_answer(
    question_id: UUID,
    payload: AnswerCreate,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> AnswerResponse:
    return await answer_service.submit_answer(db, user_id, question_id, payload.content)


@router.post(
    "/answers/{answer_id}/vote",
    response_model=VoteResult,
    responses={
        401: {"description": "Not signed in", "model": ErrorResponse},
        404: {"description": "Answer not found", "model": ErrorResponse},
        409: {"description": "Concurrent change, retry", "model": ErrorResponse},
    },
    summary="Vote on an answer",
    description=(
        "Toggle semantics: voting the same direction again removes the vote, "
        "voting the other direction switches it. Returns the new score."
    ),
)
async def cast_vote(
    answer_id: UUID,
    payload: VoteRequest,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> VoteResult:
    return await answer_service.cast_vote(db, user_id, answer_id, payload.direction)
