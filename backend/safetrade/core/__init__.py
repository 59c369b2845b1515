"""Core Layer — pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, infrastructure/, models/ or db/
    - All functions are pure and deterministic (clocks and randomness injected or isolated)

Design Decisions:
    - Functional core separated from imperative shell: the state machine and the
      vault rules are tested exhaustively without a database
"""
