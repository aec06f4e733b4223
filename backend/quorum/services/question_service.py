"""
Quorum Backend - Question Service
=================================

What:  Posting, listing, and reading questions, plus view counting.
How:   Async SQLAlchemy queries against the request session. View counts are
       bumped after the response by a background task that opens its own
       session and retries transient failures with tenacity.
Who:   Called by the questions route handlers.

Feed query (GET /api/questions):
    SELECT questions.*, (SELECT count(*) FROM answers
                          WHERE answers.question_id = questions.id) AS answer_count
      FROM questions
     WHERE [(created_at, id) < (:cursor_ts, :cursor_id)] [AND search/tag/category filters]
     ORDER BY created_at DESC, id DESC
     LIMIT :limit + 1
    → author, category and tags arrive via selectinload (3 extra IN queries)
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from quorum.config import settings
from quorum.database import async_session_factory
from quorum.exceptions import (
    DatabaseError,
    NotFoundError,
    QuorumError,
    UnauthenticatedError,
    ValidationError,
)
from quorum.models.answer import Answer
from quorum.models.profile import Profile
from quorum.models.question import Question
from quorum.models.taxonomy import Category, Tag
from quorum.schemas.common import AuthorSummary, CategoryResponse
from quorum.schemas.question import (
    QuestionCreate,
    QuestionDetail,
    QuestionListItem,
    QuestionListResponse,
)

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 200
CURSOR_SEPARATOR = "_"


def _encode_cursor(question: Question) -> str:
    return f"{question.created_at.isoformat()}{CURSOR_SEPARATOR}{question.id}"


def _decode_cursor(cursor: str) -> Tuple[datetime, Optional[UUID]]:
    """
    Split a feed cursor into (created_at, id).

    A bare ISO timestamp is accepted too and pages strictly before it.
    """
    raw_ts, _, raw_id = cursor.partition(CURSOR_SEPARATOR)
    try:
        return datetime.fromisoformat(raw_ts), UUID(raw_id) if raw_id else None
    except ValueError:
        raise ValidationError(message="Invalid pagination cursor", field="cursor")


def _detail(question: Question) -> QuestionDetail:
    return QuestionDetail(
        id=question.id,
        title=question.title,
        content=question.content,
        author=AuthorSummary.model_validate(question.author),
        category=CategoryResponse.model_validate(question.category),
        tags=[tag.name for tag in question.tags],
        accepted_answer_id=question.accepted_answer_id,
        view_count=question.view_count,
        created_at=question.created_at,
        updated_at=question.updated_at,
    )


class QuestionService:
    """
    Business logic layer for questions.

    session_factory is only used by the view-count background task, which
    runs after the request session has closed.
    """

    def __init__(self, session_factory: async_sessionmaker = async_session_factory):
        self.session_factory = session_factory

    async def create_question(
        self,
        db: AsyncSession,
        author_id: Optional[UUID],
        payload: QuestionCreate,
    ) -> QuestionDetail:
        """
        Post a question with its category and 1-5 tags.

        Raises:
            UnauthenticatedError: no caller
            ValidationError: unknown category, unknown tag, or too many tags
            NotFoundError: the caller has no profile
        """
        if author_id is None:
            raise UnauthenticatedError(message="Please sign in to ask a question")

        if len(payload.tag_ids) > settings.max_tags_per_question:
            raise ValidationError(
                message=f"A question can have at most {settings.max_tags_per_question} tags",
                field="tag_ids",
            )

        try:
            author = await db.get(Profile, author_id)
            if author is None:
                raise NotFoundError(resource="profile", resource_id=str(author_id))

            category = await db.get(Category, payload.category_id)
            if category is None:
                raise ValidationError(message="Please select a valid category", field="category_id")

            result = await db.execute(select(Tag).where(Tag.id.in_(payload.tag_ids)))
            tags = list(result.scalars().all())
            if len(tags) != len(payload.tag_ids):
                missing = set(payload.tag_ids) - {tag.id for tag in tags}
                raise ValidationError(
                    message="One or more tags do not exist",
                    field="tag_ids",
                    context={"missing": sorted(str(t) for t in missing)},
                )

            # Keep the caller's tag order
            order = {tag_id: i for i, tag_id in enumerate(payload.tag_ids)}
            tags.sort(key=lambda tag: order[tag.id])

            question = Question(
                title=payload.title,
                content=payload.content,
                category_id=category.id,
                author_id=author_id,
            )
            question.author = author
            question.category = category
            question.tags = tags
            db.add(question)
            await db.flush()

            await db.execute(
                update(Tag)
                .where(Tag.id.in_(payload.tag_ids))
                .values(usage_count=Tag.usage_count + 1)
                .execution_options(synchronize_session=False)
            )

            logger.info("Question %s posted by %s with %d tags", question.id, author_id, len(tags))
            return _detail(question)

        except QuorumError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error posting question: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not post your question. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def get_question(self, db: AsyncSession, question_id: UUID) -> QuestionDetail:
        """
        Raises:
            NotFoundError: Question with given ID does not exist (→ 404)
        """
        try:
            result = await db.execute(
                select(Question)
                .options(
                    selectinload(Question.author),
                    selectinload(Question.category),
                    selectinload(Question.tags),
                )
                .where(Question.id == question_id)
                .execution_options(populate_existing=True)
            )
            question = result.scalar_one_or_none()
            if question is None:
                raise NotFoundError(resource="question", resource_id=str(question_id))
            return _detail(question)

        except NotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error fetching question %s: %s", question_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the question. Please try again.",
                context={"question_id": str(question_id)},
            )

    async def list_questions(
        self,
        db: AsyncSession,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
        search: Optional[str] = None,
        tag: Optional[str] = None,
        category: Optional[str] = None,
    ) -> QuestionListResponse:
        """
        Newest-first feed with cursor pagination.

        Args:
            limit: Page size (defaults to settings.questions_page_size)
            cursor: next_cursor of the previous page (created_at and id of its last item)
            search: Case-insensitive match on title, content, or tag name
            tag: Tag slug filter
            category: Category slug filter

        Raises:
            ValidationError: cursor is malformed
        """
        limit = limit or settings.questions_page_size

        cursor_dt: Optional[datetime] = None
        cursor_id: Optional[UUID] = None
        if cursor:
            cursor_dt, cursor_id = _decode_cursor(cursor)

        try:
            answer_count = (
                select(func.count(Answer.id))
                .where(Answer.question_id == Question.id)
                .correlate(Question)
                .scalar_subquery()
            )
            query = select(Question, answer_count.label("answer_count")).options(
                selectinload(Question.author),
                selectinload(Question.category),
                selectinload(Question.tags),
            )

            if cursor_id is not None:
                # Ties on created_at are broken by id so no row is skipped
                query = query.where(
                    or_(
                        Question.created_at < cursor_dt,
                        and_(Question.created_at == cursor_dt, Question.id < cursor_id),
                    )
                )
            elif cursor_dt is not None:
                query = query.where(Question.created_at < cursor_dt)

            if search and search.strip():
                term = search.strip()
                query = query.where(
                    or_(
                        Question.title.icontains(term, autoescape=True),
                        Question.content.icontains(term, autoescape=True),
                        Question.tags.any(Tag.name.icontains(term, autoescape=True)),
                    )
                )

            if tag:
                query = query.where(Question.tags.any(Tag.slug == tag))

            if category:
                query = query.where(Question.category.has(Category.slug == category))

            # Fetch one extra to determine if there are more pages
            query = query.order_by(Question.created_at.desc(), Question.id.desc()).limit(limit + 1)

            result = await db.execute(query)
            rows = list(result.all())

            has_more = len(rows) > limit
            if has_more:
                rows = rows[:limit]

            next_cursor = None
            if has_more and rows:
                next_cursor = _encode_cursor(rows[-1][0])

            items: List[QuestionListItem] = [
                QuestionListItem(
                    id=question.id,
                    title=question.title,
                    content_preview=question.content[:PREVIEW_LENGTH],
                    author=AuthorSummary.model_validate(question.author),
                    category=CategoryResponse.model_validate(question.category),
                    tags=[t.name for t in question.tags],
                    answer_count=count or 0,
                    view_count=question.view_count,
                    has_accepted_answer=question.accepted_answer_id is not None,
                    created_at=question.created_at,
                )
                for question, count in rows
            ]

            return QuestionListResponse(
                questions=items,
                next_cursor=next_cursor,
                has_more=has_more,
            )

        except SQLAlchemyError as e:
            logger.error("Database error listing questions: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve questions. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def increment_view_count(self, question_id: UUID) -> bool:
        """
        Add one view to a question. Runs as a FastAPI background task.

        Returns:
            True if a row was updated; False if the question is gone or the
            database stayed unavailable through every retry (logged).
        """
        try:
            return await self._increment_with_retry(question_id)
        except OperationalError as e:
            logger.error(
                "Giving up on view count for question %s after %d attempts: %s",
                question_id,
                settings.retry_max_attempts,
                str(e),
            )
            return False

    @retry(
        retry=retry_if_exception_type(OperationalError),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _increment_with_retry(self, question_id: UUID) -> bool:
        """Single atomic UPDATE; no read-modify-write."""
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(Question)
                    .where(Question.id == question_id)
                    .values(view_count=Question.view_count + 1)
                    .execution_options(synchronize_session=False)
                )
            return result.rowcount > 0


question_service = QuestionService()
