"""
Quorum Backend - Test Configuration (conftest.py)
=================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: AsyncMock session for pure unit tests
    ├── fake_store: in-memory VoteStore for coordinator rules
    ├── db_engine: aiosqlite in-memory engine with every table created
    │   ├── session_factory: async_sessionmaker bound to it
    │   ├── db_session: one open session
    │   └── seeded: profiles, a category, tags, a question and two answers
    └── test_client: HTTPX AsyncClient with get_db_session pointed at db_engine
"""

import os

# Override settings for testing BEFORE any quorum imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["LOG_LEVEL"] = "WARNING"

from dataclasses import dataclass  # noqa: E402
from datetime import datetime, timedelta  # noqa: E402
from types import SimpleNamespace  # noqa: E402
from typing import Dict, Optional  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402
from uuid import UUID, uuid4  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from quorum.database import Base, get_db_session  # noqa: E402
from quorum.exceptions import ConflictError  # noqa: E402
from quorum.models.answer import Answer  # noqa: E402
from quorum.models.notification import Notification  # noqa: E402, F401
from quorum.models.profile import Profile  # noqa: E402
from quorum.models.question import Question  # noqa: E402
from quorum.models.taxonomy import Category, Tag  # noqa: E402
from quorum.models.vote import Vote, VoteDirection  # noqa: E402, F401
from quorum.services.vote_store import VoteStore  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# In-memory VoteStore
# ══════════════════════════════════════════════════════════════════════════

@dataclass
class FakeVote:
    id: UUID
    user_id: UUID
    answer_id: UUID
    vote_type: str


class FakeVoteStore(VoteStore):
    """
    Dict-backed VoteStore. Score is recomputed from the vote dict after every
    write, the same way the SQL store does it.

    `calls` records every write so tests can assert nothing was touched.
    """

    def __init__(self):
        self.questions: Dict[UUID, SimpleNamespace] = {}
        self.answers: Dict[UUID, SimpleNamespace] = {}
        self.votes: Dict[UUID, FakeVote] = {}
        self.calls: list = []

    # ── Seeding helpers ───────────────────────────────────────────────────

    def add_question(self, author_id: UUID, question_id: Optional[UUID] = None) -> SimpleNamespace:
        question = SimpleNamespace(
            id=question_id or uuid4(), author_id=author_id, accepted_answer_id=None
        )
        self.questions[question.id] = question
        return question

    def add_answer(self, question_id: UUID, author_id: Optional[UUID] = None) -> SimpleNamespace:
        answer = SimpleNamespace(
            id=uuid4(),
            question_id=question_id,
            author_id=author_id or uuid4(),
            vote_score=0,
            is_accepted=False,
        )
        self.answers[answer.id] = answer
        return answer

    # ── VoteStore ─────────────────────────────────────────────────────────

    async def get_answer(self, answer_id, for_update=False):
        return self.answers.get(answer_id)

    async def get_question(self, question_id, for_update=False):
        return self.questions.get(question_id)

    async def find_vote(self, voter_id, answer_id):
        for vote in self.votes.values():
            if vote.user_id == voter_id and vote.answer_id == answer_id:
                return vote
        return None

    async def create_vote(self, voter_id, answer_id, direction):
        self.calls.append(("create_vote", voter_id, answer_id, direction))
        if await self.find_vote(voter_id, answer_id) is not None:
            raise ConflictError()
        vote = FakeVote(uuid4(), voter_id, answer_id, VoteDirection(direction).value)
        self.votes[vote.id] = vote
        self._refresh(answer_id)

    async def update_vote(self, vote_id, direction):
        self.calls.append(("update_vote", vote_id, direction))
        vote = self.votes.get(vote_id)
        if vote is None:
            raise ConflictError()
        vote.vote_type = VoteDirection(direction).value
        self._refresh(vote.answer_id)

    async def delete_vote(self, vote_id):
        self.calls.append(("delete_vote", vote_id))
        vote = self.votes.pop(vote_id, None)
        if vote is None:
            raise ConflictError()
        self._refresh(vote.answer_id)

    async def get_answer_vote_score(self, answer_id):
        return self.answers[answer_id].vote_score

    async def set_answer_accepted(self, answer_id, accepted):
        self.calls.append(("set_answer_accepted", answer_id, accepted))
        self.answers[answer_id].is_accepted = accepted

    async def clear_accepted_for_question(self, question_id, except_answer_id):
        self.calls.append(("clear_accepted_for_question", question_id, except_answer_id))
        for answer in self.answers.values():
            if answer.question_id == question_id and answer.id != except_answer_id:
                answer.is_accepted = False

    async def set_question_accepted_answer(self, question_id, answer_id):
        self.calls.append(("set_question_accepted_answer", question_id, answer_id))
        self.questions[question_id].accepted_answer_id = answer_id

    def _refresh(self, answer_id):
        score = 0
        for vote in self.votes.values():
            if vote.answer_id == answer_id:
                score += 1 if vote.vote_type == "up" else -1
        self.answers[answer_id].vote_score = score


# ══════════════════════════════════════════════════════════════════════════
# Unit Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Mock async database session.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = row
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.get = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def fake_store():
    return FakeVoteStore()


# ══════════════════════════════════════════════════════════════════════════
# SQLite Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite; StaticPool keeps one connection so every session sees the same data."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seeded(session_factory) -> SimpleNamespace:
    """
    Committed baseline data:

        alice asks `question` (category "Programming", tags python + fastapi)
        bob writes `answer_bob`, carol writes `answer_carol`
        dave has no content yet
    """
    base = datetime(2024, 3, 1, 12, 0, 0)

    def profile(name: str) -> Profile:
        return Profile(
            id=uuid4(),
            email=f"{name}@example.com",
            display_name=name.title(),
            avatar_seed=name,
        )

    alice, bob, carol, dave = (profile(n) for n in ("alice", "bob", "carol", "dave"))
    category = Category(id=uuid4(), name="Programming", slug="programming")
    other_category = Category(id=uuid4(), name="Databases", slug="databases")
    python = Tag(id=uuid4(), name="Python", slug="python", usage_count=1)
    fastapi = Tag(id=uuid4(), name="FastAPI", slug="fastapi", usage_count=1)
    sql = Tag(id=uuid4(), name="SQL", slug="sql", usage_count=0)

    question = Question(
        id=uuid4(),
        title="How do async sessions work?",
        content="I keep getting MissingGreenlet errors when loading relations.",
        category_id=category.id,
        author_id=alice.id,
        created_at=base,
        updated_at=base,
    )
    question.tags = [python, fastapi]

    answer_bob = Answer(
        id=uuid4(),
        content="Use selectinload for every relationship you read.",
        question_id=question.id,
        author_id=bob.id,
        created_at=base + timedelta(minutes=5),
        updated_at=base + timedelta(minutes=5),
    )
    answer_carol = Answer(
        id=uuid4(),
        content="Set lazy='raise' so mistakes fail loudly in tests.",
        question_id=question.id,
        author_id=carol.id,
        created_at=base + timedelta(minutes=10),
        updated_at=base + timedelta(minutes=10),
    )

    async with session_factory() as session:
        session.add_all([
            alice, bob, carol, dave,
            category, other_category, python, fastapi, sql,
            question, answer_bob, answer_carol,
        ])
        await session.commit()

    return SimpleNamespace(
        alice=alice,
        bob=bob,
        carol=carol,
        dave=dave,
        category=category,
        other_category=other_category,
        python=python,
        fastapi=fastapi,
        sql=sql,
        question=question,
        answer_bob=answer_bob,
        answer_carol=answer_carol,
    )


@pytest_asyncio.fixture
async def test_client(session_factory, monkeypatch):
    """
    HTTPX AsyncClient talking to the app through ASGITransport. Each request
    gets its own session on the test database, committed or rolled back the
    way get_db_session does it.

    Usage:
        response = await test_client.get("/health")
    """
    from quorum.main import app
    from quorum.services.question_service import question_service

    # View counts are written by a background task with its own session
    monkeypatch.setattr(question_service, "session_factory", session_factory)

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
