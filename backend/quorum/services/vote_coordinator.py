"""
Quorum Backend - Vote/Acceptance Coordinator
============================================

What:  Enforces one vote per (voter, answer) and one accepted answer per
       question, and keeps the derived vote_score / is_accepted state in step.
How:   Short read-then-write sequences against a VoteStore. The store's
       transaction makes each sequence atomic; the coordinator itself holds
       no state and never retries.
Who:   AnswerService (HTTP flows) and the test suite (with an in-memory store).

cast_vote, three-way branch on the caller's existing vote:

    existing vote     requested     action        outcome
    ─────────────     ─────────     ──────        ─────────
    none              up|down       create        created
    up                up            delete        retracted
    down              down          delete        retracted
    up                down          flip          switched
    down              up            flip          switched

accept_answer:
    caller must be the question author (Forbidden otherwise, checked before
    any write), answer must belong to the question (NotFound otherwise).
    Target already accepted → no-op. Otherwise, in this order:
        1. clear is_accepted on every other answer of the question
        2. set is_accepted on the target
        3. point question.accepted_answer_id at the target
    Clearing first keeps the one-accepted-per-question index satisfied at
    every statement boundary.
"""

import logging
from typing import Optional
from uuid import UUID

from quorum.exceptions import ForbiddenError, NotFoundError, UnauthenticatedError
from quorum.models.vote import VoteDirection
from quorum.schemas.vote import AcceptResult, VoteOutcome, VoteResult
from quorum.services.vote_store import VoteStore

logger = logging.getLogger(__name__)


class VoteCoordinator:
    """
    Stateless coordinator for voting and answer acceptance.

    Error Handling Strategy:
        Every failure surfaces to the caller as a typed QuorumError:
        UnauthenticatedError, ForbiddenError, NotFoundError, and
        ConflictError (raised by the store on concurrent modification).
    """

    async def cast_vote(
        self,
        store: VoteStore,
        voter_id: Optional[UUID],
        answer_id: UUID,
        direction: VoteDirection,
    ) -> VoteResult:
        """
        Record, retract, or switch the caller's vote on an answer.

        Args:
            store: Data access bound to the caller's transaction
            voter_id: Authenticated caller, or None
            answer_id: Answer being voted on
            direction: VoteDirection.UP or VoteDirection.DOWN

        Returns:
            VoteResult with the outcome, the caller's vote after the call
            (None when retracted), and the answer's fresh vote_score.

        Raises:
            UnauthenticatedError: voter_id missing
            NotFoundError: answer does not exist
            ConflictError: the vote row changed underneath us
        """
        if voter_id is None:
            raise UnauthenticatedError(message="Please sign in to vote")

        direction = VoteDirection(direction)

        # Locks the answer row so concurrent voters on it serialize
        answer = await store.get_answer(answer_id, for_update=True)
        if answer is None:
            raise NotFoundError(resource="answer", resource_id=str(answer_id))

        existing = await store.find_vote(voter_id, answer_id)

        if existing is None:
            await store.create_vote(voter_id, answer_id, direction)
            outcome = VoteOutcome.CREATED
            user_vote: Optional[VoteDirection] = direction
        elif VoteDirection(existing.vote_type) is direction:
            await store.delete_vote(existing.id)
            outcome = VoteOutcome.RETRACTED
            user_vote = None
        else:
            await store.update_vote(existing.id, direction)
            outcome = VoteOutcome.SWITCHED
            user_vote = direction

        vote_score = await store.get_answer_vote_score(answer_id)
        logger.info(
            "Vote %s by %s on answer %s (%s), score now %d",
            outcome.value, voter_id, answer_id, direction.value, vote_score,
        )

        return VoteResult(
            answer_id=answer_id,
            outcome=outcome,
            user_vote=user_vote,
            vote_score=vote_score,
        )

    async def accept_answer(
        self,
        store: VoteStore,
        question_author_id: Optional[UUID],
        question_id: UUID,
        answer_id: UUID,
    ) -> AcceptResult:
        """
        Make answer_id the single accepted answer of question_id.

        Idempotent: accepting the current holder again changes nothing and
        returns changed=False.

        Raises:
            UnauthenticatedError: no caller
            NotFoundError: question missing, or answer missing / not in question
            ForbiddenError: caller is not the question's author
            ConflictError: a concurrent accept won (raised by the store)
        """
        if question_author_id is None:
            raise UnauthenticatedError(message="Please sign in to accept an answer")

        question = await store.get_question(question_id, for_update=True)
        if question is None:
            raise NotFoundError(resource="question", resource_id=str(question_id))

        if question.author_id != question_author_id:
            logger.warning(
                "User %s tried to accept an answer on question %s owned by %s",
                question_author_id, question_id, question.author_id,
            )
            raise ForbiddenError(
                message="Only the question's author can accept an answer",
                action="accept_answer",
            )

        answer = await store.get_answer(answer_id)
        if answer is None or answer.question_id != question_id:
            raise NotFoundError(resource="answer", resource_id=str(answer_id))

        previous = question.accepted_answer_id
        if previous == answer_id and answer.is_accepted:
            logger.debug("Answer %s already accepted on question %s", answer_id, question_id)
            return AcceptResult(
                question_id=question_id,
                accepted_answer_id=answer_id,
                previous_answer_id=previous,
                changed=False,
            )

        await store.clear_accepted_for_question(question_id, except_answer_id=answer_id)
        await store.set_answer_accepted(answer_id, True)
        await store.set_question_accepted_answer(question_id, answer_id)

        logger.info(
            "Question %s accepted answer %s (previously %s)", question_id, answer_id, previous
        )
        return AcceptResult(
            question_id=question_id,
            accepted_answer_id=answer_id,
            previous_answer_id=previous,
            changed=True,
        )


# ── Singleton Instance ────────────────────────────────────────────────────
vote_coordinator = VoteCoordinator()
