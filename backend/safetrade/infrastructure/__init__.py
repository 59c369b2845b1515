"""Infrastructure Layer — database access and cross-cutting concerns.

Invariants:
    - Infrastructure never imports from core/ domain logic (errors excepted)
    - All SQLAlchemy failures mapped to DatabaseError

Design Decisions:
    - Thin wrappers over SQLAlchemy async primitives (single responsibility)
"""
