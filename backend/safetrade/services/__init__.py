"""Services Layer — imperative shell around the pure core.

Invariants:
    - Every mutation runs inside infrastructure.database.atomic (one transaction per call)
    - Row locks are taken before any core enforce_* check runs
    - Services receive an async_sessionmaker; they never reach for the db_manager singleton

Design Decisions:
    - One service per aggregate (escrow session, vault slots, vault cases, tokens)
      for locality
"""
