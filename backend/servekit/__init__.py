"""
Servekit — Application Package
===============================

What: Scaffolding for REST and socket-event services on FastAPI + SQLAlchemy.
Why:  Every endpoint follows one shape: validate params/query/body, call a
      handler override, answer with a uniform JSON envelope.
Who:  Imported by uvicorn (`servekit.main:app`), Alembic and pytest.

Layering:

    ┌─────────────────────────────────────┐
    │   Routes (controller subclasses)    │  ← one class per endpoint/event
    ├─────────────────────────────────────┤
    │   Core (MasterController, builders) │  ← validation + response shaping
    ├─────────────────────────────────────┤
    │   Repositories                      │  ← query helpers per model
    ├─────────────────────────────────────┤
    │   Models & Schemas                  │  ← SQLAlchemy ORM + pydantic
    ├─────────────────────────────────────┤
    │   Database                          │  ← async engine and sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
