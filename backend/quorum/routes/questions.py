"""
Quorum Backend - Question Route Handlers
========================================

What:  Question feed, posting, detail, and answer acceptance.
How:   Extracts path/query/body values and the caller id, delegates to
       QuestionService or AnswerService, returns their schemas.
Who:   Called by the home feed, the ask form, and the question page.

Caching Strategy:
    - GET /api/questions: no-cache (answer counts and badges change constantly)
    - GET /api/questions/{id}: no-cache (view count and acceptance change)
    - Mutations are never cached
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.config import settings
from quorum.database import get_db_session
from quorum.identity import get_current_user_id
from quorum.schemas.common import ErrorResponse
from quorum.schemas.question import QuestionCreate, QuestionDetail, QuestionListResponse
from quorum.schemas.vote import AcceptRequest, AcceptResult
from quorum.services.answer_service import answer_service
from quorum.services.question_service import question_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Questions"])


@router.get(
    "/questions",
    response_model=QuestionListResponse,
    responses={500: {"description": "Server error", "model": ErrorResponse}},
    summary="List questions, newest first",
    description=(
        "Cursor-paginated question feed. Supports a free-text search over title, "
        "body and tag names, and filtering by tag or category slug."
    ),
)
async def list_questions(
    response: Response,
    limit: int = Query(
        default=settings.questions_page_size, ge=1, le=100,
        description="Items per page (max 100)",
    ),
    cursor: Optional[str] = Query(
        default=None,
        description="next_cursor from the previous page. Omit for the first page.",
    ),
    q: Optional[str] = Query(default=None, max_length=200, description="Search text"),
    tag: Optional[str] = Query(default=None, description="Tag slug filter"),
    category: Optional[str] = Query(default=None, description="Category slug filter"),
    db: AsyncSession = Depends(get_db_session),
) -> QuestionListResponse:
    """
    Example client usage (infinite scroll):
        Page 1: GET /api/questions?limit=20&tag=python
        Page 2: GET /api/questions?limit=20&tag=python&cursor=<next_cursor from page 1>
    """
    result = await question_service.list_questions(
        db=db,
        limit=limit,
        cursor=cursor,
        search=q,
        tag=tag,
        category=category,
    )
    response.headers["Cache-Control"] = "no-cache"
    return result


@router.post(
    "/questions",
    response_model=QuestionDetail,
    status_code=201,
    responses={
        400: {"description": "Unknown category or tags", "model": ErrorResponse},
        401: {"description": "Not signed in", "model": ErrorResponse},
        404: {"description": "Caller has no profile", "model": ErrorResponse},
    },
    summary="Ask a question",
)
async def create_question(
    payload: QuestionCreate,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> QuestionDetail:
    return await question_service.create_question(db, user_id, payload)


@router.get(
    "/questions/{question_id}",
    response_model=QuestionDetail,
    responses={404: {"description": "Question not found", "model": ErrorResponse}},
    summary="Get a question",
    description="Returns the question with its author, category and tags, and counts one view.",
)
async def get_question(
    question_id: UUID,
    response: Response,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db_session),
) -> QuestionDetail:
    """
    The view is counted after the response is sent, so a slow or failing
    increment never delays or breaks the page. The returned view_count is
    therefore the count before this visit.
    """
    question = await question_service.get_question(db, question_id)
    background_tasks.add_task(question_service.increment_view_count, question_id)
    response.headers["Cache-Control"] = "no-cache"
    return question


@router.post(
    "/questions/{question_id}/accept",
    response_model=AcceptResult,
    responses={
        401: {"description": "Not signed in", "model": ErrorResponse},
        403: {"description": "Caller is not the question's author", "model": ErrorResponse},
        404: {"description": "Question or answer not found", "model": ErrorResponse},
        409: {"description": "Concurrent change, retry", "model": ErrorResponse},
    },
    summary="Accept an answer",
    description=(
        "Marks one answer as the accepted answer of the question. Only the "
        "question's author may call this. Any previously accepted answer loses "
        "its flag. Accepting the already-accepted answer is a no-op."
    ),
)
async def accept_answer(
    question_id: UUID,
    payload: AcceptRequest,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> AcceptResult:
    return await answer_service.accept_answer(db, user_id, question_id, payload.answer_id)
