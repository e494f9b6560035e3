"""
Agora Backend: Application Package
===================================

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Ownership, cascades, files
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database  │  Upload volume        │  ← two stores, fail independently
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
