"""
Quorum Backend - SQLAlchemy Vote Store
======================================

What:  VoteStore implementation over the request's AsyncSession.
How:   Every write is a single SQL statement; nothing is committed here.
       get_db_session commits the whole request or rolls it back.
Who:   Constructed per request by AnswerService and handed to VoteCoordinator.

Score maintenance:
    After each vote insert/update/delete the answer's vote_score is
    recomputed by one statement:

        UPDATE answers
           SET vote_score = (SELECT COALESCE(SUM(CASE vote_type
                                                 WHEN 'up' THEN 1
                                                 WHEN 'down' THEN -1 END), 0)
                               FROM votes WHERE answer_id = :id)
         WHERE id = :id

    The score is always a function of the vote rows, never a client delta.

Conflict translation:
    IntegrityError (duplicate vote, second accepted answer) and zero-row
    updates/deletes become ConflictError.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.exceptions import ConflictError
from quorum.models.answer import Answer
from quorum.models.question import Question
from quorum.models.vote import Vote, VoteDirection
from quorum.services.vote_store import VoteStore

logger = logging.getLogger(__name__)


class SqlAlchemyVoteStore(VoteStore):
    """VoteStore bound to one AsyncSession (one request, one transaction)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ── Lookups ───────────────────────────────────────────────────────────

    async def get_answer(self, answer_id: UUID, for_update: bool = False) -> Optional[Answer]:
        query = select(Answer).where(Answer.id == answer_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def get_question(
        self, question_id: UUID, for_update: bool = False
    ) -> Optional[Question]:
        query = select(Question).where(Question.id == question_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    # ── Votes ─────────────────────────────────────────────────────────────

    async def find_vote(self, voter_id: UUID, answer_id: UUID) -> Optional[Vote]:
        result = await self.db.execute(
            select(Vote)
            .where(Vote.user_id == voter_id, Vote.answer_id == answer_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create_vote(
        self, voter_id: UUID, answer_id: UUID, direction: VoteDirection
    ) -> None:
        vote = Vote(user_id=voter_id, answer_id=answer_id, vote_type=direction.value)
        self.db.add(vote)
        try:
            await self.db.flush()
        except IntegrityError as e:
            logger.warning(
                "Duplicate vote by %s on answer %s: %s", voter_id, answer_id, e.orig
            )
            raise ConflictError(
                message="Your vote was already recorded. Refresh and try again.",
                context={"answer_id": str(answer_id)},
            ) from e
        await self._refresh_vote_score(answer_id)

    async def update_vote(self, vote_id: UUID, direction: VoteDirection) -> None:
        answer_id = await self._vote_answer_id(vote_id)
        result = await self.db.execute(
            update(Vote)
            .where(Vote.id == vote_id)
            .values(vote_type=direction.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictError(context={"vote_id": str(vote_id)})
        await self._refresh_vote_score(answer_id)

    async def delete_vote(self, vote_id: UUID) -> None:
        answer_id = await self._vote_answer_id(vote_id)
        result = await self.db.execute(
            delete(Vote)
            .where(Vote.id == vote_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictError(context={"vote_id": str(vote_id)})
        await self._refresh_vote_score(answer_id)

    async def _vote_answer_id(self, vote_id: UUID) -> UUID:
        result = await self.db.execute(select(Vote.answer_id).where(Vote.id == vote_id))
        answer_id = result.scalar_one_or_none()
        if answer_id is None:
            raise ConflictError(context={"vote_id": str(vote_id)})
        return answer_id

    async def get_answer_vote_score(self, answer_id: UUID) -> int:
        # Column query: bypasses any stale Answer instance in the identity map
        result = await self.db.execute(
            select(Answer.vote_score).where(Answer.id == answer_id)
        )
        return result.scalar_one()

    async def _refresh_vote_score(self, answer_id: UUID) -> None:
        """Recompute vote_score from the votes table in a single statement."""
        score = (
            select(
                func.coalesce(
                    func.sum(
                        case(
                            (Vote.vote_type == VoteDirection.UP.value, 1),
                            (Vote.vote_type == VoteDirection.DOWN.value, -1),
                            else_=0,
                        )
                    ),
                    0,
                )
            )
            .where(Vote.answer_id == answer_id)
            .scalar_subquery()
        )
        await self.db.execute(
            update(Answer)
            .where(Answer.id == answer_id)
            .values(vote_score=score)
            .execution_options(synchronize_session=False)
        )

    # ── Acceptance ────────────────────────────────────────────────────────

    async def set_answer_accepted(self, answer_id: UUID, accepted: bool) -> None:
        try:
            await self.db.execute(
                update(Answer)
                .where(Answer.id == answer_id)
                .values(is_accepted=accepted)
                .execution_options(synchronize_session=False)
            )
        except IntegrityError as e:
            # uq_answers_one_accepted_per_question: another accept won the race
            logger.warning("Concurrent accept detected for answer %s: %s", answer_id, e.orig)
            raise ConflictError(
                message="Another answer was accepted at the same time. Refresh and try again.",
                context={"answer_id": str(answer_id)},
            ) from e

    async def clear_accepted_for_question(
        self, question_id: UUID, except_answer_id: Optional[UUID]
    ) -> None:
        query = update(Answer).where(
            Answer.question_id == question_id,
            Answer.is_accepted.is_(True),
        )
        if except_answer_id is not None:
            query = query.where(Answer.id != except_answer_id)
        await self.db.execute(
            query.values(is_accepted=False).execution_options(synchronize_session=False)
        )

    async def set_question_accepted_answer(
        self, question_id: UUID, answer_id: Optional[UUID]
    ) -> None:
        result = await self.db.execute(
            update(Question)
            .where(Question.id == question_id)
            .values(accepted_answer_id=answer_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictError(context={"question_id": str(question_id)})
