"""
Scriptly Backend — Application Package Initializer
===================================================

What: Marks the `scriptly` directory as a Python package.
Why:  Enables module imports like `from scriptly.config import settings`.
Who:  Used by uvicorn, Alembic and pytest.

Architecture Note:
    The backend follows a layered architecture:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, auth dependencies
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← policy, lead consistency,
    │                                     │    tutorial workflow, vouching
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Authorization rules live in `services.policy` as pure predicates, so
    every service asks the same questions the same way and the rules can be
    tested without a database.
"""

__version__ = "1.0.0"
