"""
Volunteer API — Application Package Initializer
================================================

What: Marks the `volunteer_api` directory as a Python package.
Why:  Enables module imports like `from volunteer_api.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by pytest and uvicorn.

Architecture Note:
    The backend is a thin CRUD layer behind a strict request pipeline:

    ┌─────────────────────────────────────┐
    │  Middleware pipeline (admission)    │  ← headers, origin, rate, body, sanitize
    ├─────────────────────────────────────┤
    │           Routes (API Layer)        │  ← handler groups, verified disjoint
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← auth tokens, files, records, push
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Every failure, whichever layer raises it, leaves the process as the same
    JSON envelope: {"success": false, "message": ..., "errors"?: [...]}.
"""

__version__ = "1.0.0"
