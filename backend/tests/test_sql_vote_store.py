"""
Quorum Backend - SQL Vote Store Tests
=====================================

What:  SqlAlchemyVoteStore and VoteCoordinator against a real (SQLite) schema.
How:   aiosqlite in-memory database from conftest, seeded with one question
       and two answers.

What we test:
    ✅ vote_score is recomputed from the votes table after each write
    ✅ The (user, answer) unique constraint surfaces as ConflictError
    ✅ The one-accepted-answer index surfaces as ConflictError
    ✅ Accept moves the flag and the question pointer together
"""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from quorum.exceptions import ConflictError
from quorum.models.answer import Answer
from quorum.models.question import Question
from quorum.models.vote import Vote, VoteDirection
from quorum.services.sql_vote_store import SqlAlchemyVoteStore
from quorum.services.vote_coordinator import vote_coordinator


async def vote_rows(session, answer_id):
    result = await session.execute(select(func.count(Vote.id)).where(Vote.answer_id == answer_id))
    return result.scalar_one()


class TestScoreRecompute:

    @pytest.mark.asyncio
    async def test_create_update_delete_keep_score_in_sync(self, db_session, seeded):
        store = SqlAlchemyVoteStore(db_session)
        answer_id = seeded.answer_bob.id

        await store.create_vote(seeded.carol.id, answer_id, VoteDirection.UP)
        await store.create_vote(seeded.dave.id, answer_id, VoteDirection.UP)
        assert await store.get_answer_vote_score(answer_id) == 2

        vote = await store.find_vote(seeded.dave.id, answer_id)
        await store.update_vote(vote.id, VoteDirection.DOWN)
        assert await store.get_answer_vote_score(answer_id) == 0

        vote = await store.find_vote(seeded.carol.id, answer_id)
        await store.delete_vote(vote.id)
        assert await store.get_answer_vote_score(answer_id) == -1
        assert await vote_rows(db_session, answer_id) == 1

    @pytest.mark.asyncio
    async def test_scenario_through_coordinator(self, db_session, seeded):
        """2 up + 1 down = 1; third up = 2; first up-voter switches = 0."""
        store = SqlAlchemyVoteStore(db_session)
        answer_id = seeded.answer_carol.id
        cast = vote_coordinator.cast_vote

        await cast(store, seeded.alice.id, answer_id, VoteDirection.UP)
        await cast(store, seeded.bob.id, answer_id, VoteDirection.UP)
        result = await cast(store, seeded.carol.id, answer_id, VoteDirection.DOWN)
        assert result.vote_score == 1

        result = await cast(store, seeded.dave.id, answer_id, VoteDirection.UP)
        assert result.vote_score == 2

        result = await cast(store, seeded.alice.id, answer_id, VoteDirection.DOWN)
        assert result.vote_score == 0
        assert await vote_rows(db_session, answer_id) == 4

        answer = await store.get_answer(answer_id)
        assert answer.vote_score == 0

    @pytest.mark.asyncio
    async def test_toggle_leaves_no_row(self, db_session, seeded):
        store = SqlAlchemyVoteStore(db_session)
        answer_id = seeded.answer_bob.id

        await vote_coordinator.cast_vote(store, seeded.dave.id, answer_id, VoteDirection.UP)
        result = await vote_coordinator.cast_vote(store, seeded.dave.id, answer_id, VoteDirection.UP)

        assert result.vote_score == 0
        assert await store.find_vote(seeded.dave.id, answer_id) is None
        assert await vote_rows(db_session, answer_id) == 0

    @pytest.mark.asyncio
    async def test_scores_are_per_answer(self, db_session, seeded):
        store = SqlAlchemyVoteStore(db_session)

        await store.create_vote(seeded.dave.id, seeded.answer_bob.id, VoteDirection.UP)
        await store.create_vote(seeded.dave.id, seeded.answer_carol.id, VoteDirection.DOWN)

        assert await store.get_answer_vote_score(seeded.answer_bob.id) == 1
        assert await store.get_answer_vote_score(seeded.answer_carol.id) == -1


class TestStoreConflicts:

    @pytest.mark.asyncio
    async def test_duplicate_vote_is_conflict(self, session_factory, seeded):
        async with session_factory() as session:
            store = SqlAlchemyVoteStore(session)
            await store.create_vote(seeded.dave.id, seeded.answer_bob.id, VoteDirection.UP)
            await session.commit()

        async with session_factory() as session:
            store = SqlAlchemyVoteStore(session)
            with pytest.raises(ConflictError):
                await store.create_vote(seeded.dave.id, seeded.answer_bob.id, VoteDirection.DOWN)
            await session.rollback()

    @pytest.mark.asyncio
    async def test_vanished_vote_is_conflict(self, db_session, seeded):
        store = SqlAlchemyVoteStore(db_session)

        with pytest.raises(ConflictError):
            await store.update_vote(uuid4(), VoteDirection.UP)
        with pytest.raises(ConflictError):
            await store.delete_vote(uuid4())

    @pytest.mark.asyncio
    async def test_second_accepted_answer_is_conflict(self, db_session, seeded):
        """Setting a flag without clearing the other one trips the partial unique index."""
        store = SqlAlchemyVoteStore(db_session)

        await store.set_answer_accepted(seeded.answer_bob.id, True)
        with pytest.raises(ConflictError):
            await store.set_answer_accepted(seeded.answer_carol.id, True)

    @pytest.mark.asyncio
    async def test_pointer_on_missing_question_is_conflict(self, db_session, seeded):
        store = SqlAlchemyVoteStore(db_session)

        with pytest.raises(ConflictError):
            await store.set_question_accepted_answer(uuid4(), seeded.answer_bob.id)


class TestAcceptance:

    @pytest.mark.asyncio
    async def test_accept_then_switch(self, session_factory, seeded):
        async with session_factory() as session:
            store = SqlAlchemyVoteStore(session)
            await vote_coordinator.accept_answer(
                store, seeded.alice.id, seeded.question.id, seeded.answer_bob.id
            )
            result = await vote_coordinator.accept_answer(
                store, seeded.alice.id, seeded.question.id, seeded.answer_carol.id
            )
            await session.commit()

        assert result.previous_answer_id == seeded.answer_bob.id

        async with session_factory() as session:
            accepted = (
                await session.execute(select(Answer.id).where(Answer.is_accepted.is_(True)))
            ).scalars().all()
            pointer = (
                await session.execute(
                    select(Question.accepted_answer_id).where(Question.id == seeded.question.id)
                )
            ).scalar_one()

        assert accepted == [seeded.answer_carol.id]
        assert pointer == seeded.answer_carol.id

    @pytest.mark.asyncio
    async def test_reaccept_is_noop(self, db_session, seeded):
        store = SqlAlchemyVoteStore(db_session)
        args = (store, seeded.alice.id, seeded.question.id, seeded.answer_bob.id)

        first = await vote_coordinator.accept_answer(*args)
        second = await vote_coordinator.accept_answer(*args)

        assert first.changed is True
        assert second.changed is False
        answer = await store.get_answer(seeded.answer_bob.id)
        assert answer.is_accepted is True

    @pytest.mark.asyncio
    async def test_clear_respects_exception(self, db_session, seeded):
        store = SqlAlchemyVoteStore(db_session)
        await store.set_answer_accepted(seeded.answer_bob.id, True)

        await store.clear_accepted_for_question(seeded.question.id, except_answer_id=seeded.answer_bob.id)
        assert (await store.get_answer(seeded.answer_bob.id)).is_accepted is True

        await store.clear_accepted_for_question(seeded.question.id, except_answer_id=None)
        assert (await store.get_answer(seeded.answer_bob.id)).is_accepted is False
