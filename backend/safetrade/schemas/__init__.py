"""Schemas Layer — Pydantic models at the boundary with the (external) web layer.

Invariants:
    - Schemas validate and normalize; they never touch the database
"""
