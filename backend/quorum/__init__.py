"""
Quorum Backend - Application Package
====================================

What: Q&A community backend (questions, answers, votes, tags, notifications).
Who:  Imported by uvicorn (`quorum.main:app`), Alembic, and pytest.

Layering:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (Business Logic)         │  ← vote coordinator, question/answer flows
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

Authentication and row-level security belong to the hosted backend in front
of this service; the caller identity arrives as the `X-User-ID` header.
"""

__version__ = "1.0.0"
