"""
Quorum Backend - Abstract Vote Store Interface
==============================================

What:  The data-access contract the vote/acceptance coordinator depends on.
How:   Concrete stores inherit from VoteStore and implement every method.
       SqlAlchemyVoteStore (sql_vote_store.py) backs it with the request's
       AsyncSession; the test suite backs it with plain dicts.
Who:   Called only by VoteCoordinator.

Contract:
    - All writes a coordinator call makes through one store instance belong
      to one transaction owned by the caller; the store never commits.
    - Vote writes keep `get_answer_vote_score()` equal to up minus down for
      the answer, as observed by the next read in the same transaction.
    - Writes that find their target row gone, or that collide with a
      uniqueness rule, raise ConflictError.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from quorum.models.vote import VoteDirection


class VoteStore(ABC):
    """
    Abstract interface for vote and acceptance persistence.

    Returned records only need the attributes the coordinator reads:
        vote:      id, vote_type
        answer:    id, question_id, author_id, is_accepted
        question:  id, author_id, accepted_answer_id
    """

    # ── Lookups ───────────────────────────────────────────────────────────

    @abstractmethod
    async def get_answer(self, answer_id: UUID, for_update: bool = False) -> Optional[Any]:
        """
        Fetch an answer, or None.

        With for_update=True the answer row stays locked until the
        transaction ends, so concurrent votes on one answer serialize.
        """
        ...

    @abstractmethod
    async def get_question(self, question_id: UUID, for_update: bool = False) -> Optional[Any]:
        """Fetch a question, or None. for_update locks it like get_answer."""
        ...

    # ── Votes ─────────────────────────────────────────────────────────────

    @abstractmethod
    async def find_vote(self, voter_id: UUID, answer_id: UUID) -> Optional[Any]:
        """The caller's vote on the answer, or None."""
        ...

    @abstractmethod
    async def create_vote(
        self, voter_id: UUID, answer_id: UUID, direction: VoteDirection
    ) -> None:
        """Insert a vote. Raises ConflictError if the pair already has one."""
        ...

    @abstractmethod
    async def update_vote(self, vote_id: UUID, direction: VoteDirection) -> None:
        """Flip an existing vote. Raises ConflictError if it no longer exists."""
        ...

    @abstractmethod
    async def delete_vote(self, vote_id: UUID) -> None:
        """Remove a vote. Raises ConflictError if it no longer exists."""
        ...

    @abstractmethod
    async def get_answer_vote_score(self, answer_id: UUID) -> int:
        """Current up-minus-down score for the answer."""
        ...

    # ── Acceptance ────────────────────────────────────────────────────────

    @abstractmethod
    async def set_answer_accepted(self, answer_id: UUID, accepted: bool) -> None:
        ...

    @abstractmethod
    async def clear_accepted_for_question(
        self, question_id: UUID, except_answer_id: Optional[UUID]
    ) -> None:
        """Set is_accepted = False on every answer of the question but one."""
        ...

    @abstractmethod
    async def set_question_accepted_answer(
        self, question_id: UUID, answer_id: Optional[UUID]
    ) -> None:
        ...
