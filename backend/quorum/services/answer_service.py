"""
Quorum Backend - Answer Service (Business Logic Orchestrator)
=============================================================

What:  Answer submission, ordered answer listing, and the HTTP-facing
       vote/accept flows.
How:   Binds a SqlAlchemyVoteStore to the request session, delegates the
       vote/accept rules to VoteCoordinator, then emits notifications in the
       same transaction.
Who:   Called by the answers and questions route handlers.

Orchestration Flow (POST /api/questions/{id}/accept):
    ┌──────────┐    ┌──────────────────┐    ┌────────────────┐    ┌──────────┐
    │  Route   │───▶│ VoteCoordinator  │───▶│ SqlVoteStore   │───▶│  notify  │
    │ (caller) │    │ (rules)          │    │ (3 writes)     │    │ (if new) │
    └──────────┘    └──────────────────┘    └────────────────┘    └──────────┘

    Any exception rolls back the whole request (get_db_session), so a failed
    notification never leaves a half-applied acceptance behind.
"""

import logging
from typing import Dict, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from quorum.exceptions import (
    DatabaseError,
    NotFoundError,
    QuorumError,
    UnauthenticatedError,
)
from quorum.models.answer import Answer
from quorum.models.profile import Profile
from quorum.models.question import Question
from quorum.models.vote import Vote, VoteDirection
from quorum.schemas.answer import AnswerListResponse, AnswerResponse
from quorum.schemas.common import AuthorSummary
from quorum.schemas.vote import AcceptResult, VoteResult
from quorum.services.notification_service import notification_service
from quorum.services.sql_vote_store import SqlAlchemyVoteStore
from quorum.services.vote_coordinator import vote_coordinator

logger = logging.getLogger(__name__)


def _to_response(answer: Answer, user_vote: Optional[str] = None) -> AnswerResponse:
    return AnswerResponse(
        id=answer.id,
        question_id=answer.question_id,
        content=answer.content,
        author=AuthorSummary.model_validate(answer.author),
        vote_score=answer.vote_score,
        is_accepted=answer.is_accepted,
        user_vote=VoteDirection(user_vote) if user_vote else None,
        created_at=answer.created_at,
        updated_at=answer.updated_at,
    )


class AnswerService:
    """
    Business logic layer for answers.

    Responsibilities:
        - submit_answer(): post an answer and notify the question author
        - list_answers(): display-ordered answers with the viewer's votes
        - cast_vote(): coordinator vote flow over the SQL store
        - accept_answer(): coordinator accept flow plus notification

    Error Handling Strategy:
        QuorumError subclasses propagate unchanged. Other database failures
        are logged and wrapped in DatabaseError.
    """

    async def submit_answer(
        self,
        db: AsyncSession,
        author_id: Optional[UUID],
        question_id: UUID,
        content: str,
    ) -> AnswerResponse:
        """
        Raises:
            UnauthenticatedError: no caller
            NotFoundError: question or the caller's profile is missing
        """
        if author_id is None:
            raise UnauthenticatedError(message="Please sign in to answer")

        try:
            question = await db.get(Question, question_id)
            if question is None:
                raise NotFoundError(resource="question", resource_id=str(question_id))

            author = await db.get(Profile, author_id)
            if author is None:
                raise NotFoundError(resource="profile", resource_id=str(author_id))

            answer = Answer(content=content, question_id=question_id, author_id=author_id)
            answer.author = author
            db.add(answer)
            await db.flush()
            logger.info("Answer %s posted on question %s by %s", answer.id, question_id, author_id)

            if question.author_id != author_id:
                await notification_service.notify(
                    db,
                    user_id=question.author_id,
                    type="new_answer",
                    title="New answer to your question",
                    message=f'{author.display_name} answered "{question.title}"',
                    question_id=question_id,
                    answer_id=answer.id,
                )

            return _to_response(answer)

        except QuorumError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error posting answer on %s: %s", question_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not post your answer. Please try again.",
                context={"question_id": str(question_id)},
            )

    async def list_answers(
        self,
        db: AsyncSession,
        question_id: UUID,
        viewer_id: Optional[UUID] = None,
    ) -> AnswerListResponse:
        """
        Answers of a question, accepted first, then by vote_score, then oldest first.

        Query plan:
            SELECT answers ... WHERE question_id = :q
            ORDER BY is_accepted DESC, vote_score DESC, created_at ASC
            → idx_answers_question_id narrows to one question
            plus one IN query for the viewer's votes
        """
        try:
            exists = await db.execute(select(Question.id).where(Question.id == question_id))
            if exists.scalar_one_or_none() is None:
                raise NotFoundError(resource="question", resource_id=str(question_id))

            result = await db.execute(
                select(Answer)
                .options(selectinload(Answer.author))
                .where(Answer.question_id == question_id)
                .order_by(
                    Answer.is_accepted.desc(),
                    Answer.vote_score.desc(),
                    Answer.created_at.asc(),
                )
                .execution_options(populate_existing=True)
            )
            answers = list(result.scalars().all())

            user_votes: Dict[UUID, str] = {}
            if viewer_id is not None and answers:
                votes = await db.execute(
                    select(Vote.answer_id, Vote.vote_type).where(
                        Vote.user_id == viewer_id,
                        Vote.answer_id.in_([a.id for a in answers]),
                    )
                )
                user_votes = {answer_id: vote_type for answer_id, vote_type in votes.all()}

            return AnswerListResponse(
                answers=[_to_response(a, user_votes.get(a.id)) for a in answers],
                total_count=len(answers),
            )

        except QuorumError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error listing answers for %s: %s", question_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not load answers. Please try again.",
                context={"question_id": str(question_id)},
            )

    async def cast_vote(
        self,
        db: AsyncSession,
        voter_id: Optional[UUID],
        answer_id: UUID,
        direction: VoteDirection,
    ) -> VoteResult:
        try:
            return await vote_coordinator.cast_vote(
                SqlAlchemyVoteStore(db), voter_id, answer_id, direction
            )
        except QuorumError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error voting on %s: %s", answer_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not record your vote. Please try again.",
                context={"answer_id": str(answer_id)},
            )

    async def accept_answer(
        self,
        db: AsyncSession,
        caller_id: Optional[UUID],
        question_id: UUID,
        answer_id: UUID,
    ) -> AcceptResult:
        """
        Accept an answer and tell its author, unless they accepted their own.

        The notification is only sent when the acceptance actually moved.
        """
        store = SqlAlchemyVoteStore(db)
        try:
            result = await vote_coordinator.accept_answer(store, caller_id, question_id, answer_id)

            if result.changed:
                answer = await store.get_answer(answer_id)
                question = await store.get_question(question_id)
                if answer.author_id != caller_id:
                    await notification_service.notify(
                        db,
                        user_id=answer.author_id,
                        type="answer_accepted",
                        title="Your answer was accepted",
                        message=f'Your answer to "{question.title}" was accepted',
                        question_id=question_id,
                        answer_id=answer_id,
                    )
            return result

        except QuorumError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error accepting %s on %s: %s", answer_id, question_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not accept the answer. Please try again.",
                context={"question_id": str(question_id), "answer_id": str(answer_id)},
            )


answer_service = AnswerService()
