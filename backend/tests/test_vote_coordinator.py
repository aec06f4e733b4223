"""
Quorum Backend - Vote Coordinator Unit Tests
============================================

What:  Voting and acceptance rules, run against the in-memory FakeVoteStore.

What we test:
    ✅ Toggle: same direction twice removes the vote
    ✅ Switch: opposite direction flips the vote (score moves by 2)
    ✅ Score always equals up-votes minus down-votes
    ✅ Acceptance exclusivity and idempotence
    ✅ Unauthenticated / Forbidden / NotFound leave state untouched
"""

from uuid import uuid4

import pytest

from quorum.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthenticatedError,
)
from quorum.models.vote import VoteDirection
from quorum.schemas.vote import VoteOutcome
from quorum.services.vote_coordinator import VoteCoordinator

UP = VoteDirection.UP
DOWN = VoteDirection.DOWN


def expected_score(store, answer_id):
    return sum(
        1 if v.vote_type == "up" else -1
        for v in store.votes.values()
        if v.answer_id == answer_id
    )


class TestCastVote:
    """Three-way vote toggle."""

    def setup_method(self):
        self.coordinator = VoteCoordinator()

    @pytest.fixture(autouse=True)
    def _answer(self, fake_store):
        self.store = fake_store
        self.question = fake_store.add_question(author_id=uuid4())
        self.answer = fake_store.add_answer(self.question.id)
        self.voter = uuid4()

    async def vote(self, direction, voter=None):
        return await self.coordinator.cast_vote(
            self.store, voter or self.voter, self.answer.id, direction
        )

    @pytest.mark.asyncio
    async def test_first_vote_creates(self):
        result = await self.vote(UP)

        assert result.outcome == VoteOutcome.CREATED
        assert result.user_vote == UP
        assert result.vote_score == 1
        assert len(self.store.votes) == 1

    @pytest.mark.asyncio
    async def test_up_then_up_retracts(self):
        await self.vote(UP)
        result = await self.vote(UP)

        assert result.outcome == VoteOutcome.RETRACTED
        assert result.user_vote is None
        assert result.vote_score == 0
        assert self.store.votes == {}

    @pytest.mark.asyncio
    async def test_down_then_down_retracts(self):
        await self.vote(DOWN)
        result = await self.vote(DOWN)

        assert result.vote_score == 0
        assert await self.store.find_vote(self.voter, self.answer.id) is None

    @pytest.mark.asyncio
    async def test_up_then_down_switches(self):
        """Score drops by 2 from +1 to -1; still exactly one vote row."""
        first = await self.vote(UP)
        result = await self.vote(DOWN)

        assert result.outcome == VoteOutcome.SWITCHED
        assert result.user_vote == DOWN
        assert result.vote_score == first.vote_score - 2 == -1
        votes = list(self.store.votes.values())
        assert len(votes) == 1
        assert votes[0].vote_type == "down"

    @pytest.mark.asyncio
    async def test_toggle_returns_to_prior_score(self):
        """Up then up is a no-op relative to the state before the first up."""
        other = uuid4()
        await self.vote(DOWN, voter=other)
        before = self.answer.vote_score

        await self.vote(UP)
        await self.vote(UP)

        assert self.answer.vote_score == before == -1
        assert await self.store.find_vote(self.voter, self.answer.id) is None

    @pytest.mark.asyncio
    async def test_scenario_three_voters(self):
        """2 up + 1 down = 1; third user up = 2; first up-voter switches = 0."""
        u1, u2, u3, u4 = (uuid4() for _ in range(4))

        await self.vote(UP, voter=u1)
        await self.vote(UP, voter=u2)
        result = await self.vote(DOWN, voter=u3)
        assert result.vote_score == 1

        result = await self.vote(UP, voter=u4)
        assert result.vote_score == 2

        result = await self.vote(DOWN, voter=u1)
        assert result.outcome == VoteOutcome.SWITCHED
        assert result.vote_score == 0

    @pytest.mark.asyncio
    async def test_score_matches_votes_after_every_call(self):
        voters = [uuid4() for _ in range(3)]
        sequence = [
            (0, UP), (1, DOWN), (2, UP), (0, DOWN), (1, DOWN), (2, UP), (0, DOWN), (1, UP),
        ]
        for index, direction in sequence:
            result = await self.vote(direction, voter=voters[index])
            assert result.vote_score == expected_score(self.store, self.answer.id)
            assert self.answer.vote_score == result.vote_score

    @pytest.mark.asyncio
    async def test_at_most_one_vote_per_user(self):
        for direction in (UP, DOWN, DOWN, UP, DOWN):
            await self.vote(direction)
            mine = [v for v in self.store.votes.values() if v.user_id == self.voter]
            assert len(mine) <= 1

    @pytest.mark.asyncio
    async def test_accepts_plain_string_direction(self):
        result = await self.vote("down")
        assert result.user_vote == DOWN

    @pytest.mark.asyncio
    async def test_anonymous_vote_rejected(self):
        with pytest.raises(UnauthenticatedError):
            await self.coordinator.cast_vote(self.store, None, self.answer.id, UP)
        assert self.store.calls == []

    @pytest.mark.asyncio
    async def test_unknown_answer(self):
        with pytest.raises(NotFoundError) as exc_info:
            await self.coordinator.cast_vote(self.store, self.voter, uuid4(), UP)
        assert exc_info.value.resource == "answer"
        assert self.store.calls == []

    @pytest.mark.asyncio
    async def test_store_conflict_propagates(self):
        """A vote that vanished between read and delete surfaces as Conflict."""
        await self.vote(UP)
        original_delete = self.store.delete_vote

        async def racing_delete(vote_id):
            self.store.votes.pop(vote_id)
            await original_delete(vote_id)

        self.store.delete_vote = racing_delete

        with pytest.raises(ConflictError) as exc_info:
            await self.vote(UP)
        assert exc_info.value.retry_after == 1


class TestAcceptAnswer:
    """Single accepted answer per question."""

    def setup_method(self):
        self.coordinator = VoteCoordinator()

    @pytest.fixture(autouse=True)
    def _question(self, fake_store):
        self.store = fake_store
        self.author = uuid4()
        self.question = fake_store.add_question(author_id=self.author)
        self.a1 = fake_store.add_answer(self.question.id)
        self.a2 = fake_store.add_answer(self.question.id)

    async def accept(self, answer_id, caller=None):
        return await self.coordinator.accept_answer(
            self.store, caller or self.author, self.question.id, answer_id
        )

    def accepted(self):
        return [a.id for a in self.store.answers.values() if a.is_accepted]

    @pytest.mark.asyncio
    async def test_accept_sets_flag_and_pointer(self):
        result = await self.accept(self.a1.id)

        assert result.changed is True
        assert result.accepted_answer_id == self.a1.id
        assert result.previous_answer_id is None
        assert self.accepted() == [self.a1.id]
        assert self.question.accepted_answer_id == self.a1.id

    @pytest.mark.asyncio
    async def test_accepting_another_moves_acceptance(self):
        await self.accept(self.a1.id)
        result = await self.accept(self.a2.id)

        assert result.previous_answer_id == self.a1.id
        assert self.a1.is_accepted is False
        assert self.a2.is_accepted is True
        assert self.accepted() == [self.a2.id]
        assert self.question.accepted_answer_id == self.a2.id

    @pytest.mark.asyncio
    async def test_accepting_same_answer_again_is_noop(self):
        await self.accept(self.a1.id)
        writes_after_first = len(self.store.calls)

        result = await self.accept(self.a1.id)

        assert result.changed is False
        assert result.accepted_answer_id == self.a1.id
        assert len(self.store.calls) == writes_after_first
        assert self.a1.is_accepted is True
        assert self.a2.is_accepted is False
        assert self.question.accepted_answer_id == self.a1.id

    @pytest.mark.asyncio
    async def test_pointer_without_flag_is_repaired(self):
        """Pointer already set but flag missing: the accept runs in full."""
        self.question.accepted_answer_id = self.a1.id

        result = await self.accept(self.a1.id)

        assert result.changed is True
        assert self.a1.is_accepted is True

    @pytest.mark.asyncio
    async def test_non_author_is_forbidden_and_nothing_changes(self):
        await self.accept(self.a1.id)
        writes = len(self.store.calls)

        with pytest.raises(ForbiddenError) as exc_info:
            await self.accept(self.a2.id, caller=uuid4())

        assert exc_info.value.action == "accept_answer"
        assert len(self.store.calls) == writes
        assert self.accepted() == [self.a1.id]
        assert self.question.accepted_answer_id == self.a1.id

    @pytest.mark.asyncio
    async def test_anonymous_accept_rejected(self):
        with pytest.raises(UnauthenticatedError):
            await self.coordinator.accept_answer(self.store, None, self.question.id, self.a1.id)
        assert self.store.calls == []

    @pytest.mark.asyncio
    async def test_unknown_question(self):
        with pytest.raises(NotFoundError) as exc_info:
            await self.coordinator.accept_answer(self.store, self.author, uuid4(), self.a1.id)
        assert exc_info.value.resource == "question"

    @pytest.mark.asyncio
    async def test_unknown_answer(self):
        with pytest.raises(NotFoundError) as exc_info:
            await self.accept(uuid4())
        assert exc_info.value.resource == "answer"
        assert self.store.calls == []

    @pytest.mark.asyncio
    async def test_answer_from_another_question(self):
        other_question = self.store.add_question(author_id=self.author)
        stray = self.store.add_answer(other_question.id)

        with pytest.raises(NotFoundError):
            await self.accept(stray.id)
        assert stray.is_accepted is False
        assert self.question.accepted_answer_id is None

    @pytest.mark.asyncio
    async def test_writes_run_clear_then_set_then_point(self):
        await self.accept(self.a2.id)

        assert [call[0] for call in self.store.calls] == [
            "clear_accepted_for_question",
            "set_answer_accepted",
            "set_question_accepted_answer",
        ]

    @pytest.mark.asyncio
    async def test_acceptance_does_not_touch_scores(self):
        await self.coordinator.cast_vote(self.store, uuid4(), self.a1.id, UP)
        await self.accept(self.a2.id)

        assert self.a1.vote_score == 1
        assert self.a2.vote_score == 0
