"""
Homepage Backend — Application Package Initializer
==================================================

What:  Marks the `homepage_api` directory as a Python package.
Who:   Imported by uvicorn (`homepage_api.main:app`), Alembic, and pytest.

Architecture Note:
    Every endpoint is an independent leaf handler, layered the same way:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │     Services (Behavior & Caches)    │  ← notes, paint, lastfm, letterboxd
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │  Database / Upstream HTTP (I/O)     │  ← async sessions, httpx client
    └─────────────────────────────────────┘

    The handlers share nothing except the database engine, the outbound
    HTTP client, and one lock-guarded cache per upstream service.
"""

__version__ = "1.0.0"
