"""
Breviago Backend — Application Package
=======================================

What: Acronym vault API — users store, look up, share and organize acronyms.
How:  Layered the same way everywhere in the package:

    ┌─────────────────────────────────────┐
    │  Middleware (auth, logging, limits) │  ← per-request cross-cutting concerns
    ├─────────────────────────────────────┤
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │    Services (Business Logic/AuthZ)  │  ← rules, permission checks, tokens
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
