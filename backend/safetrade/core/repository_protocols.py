"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - IO needed by core-adjacent helpers is accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Clock as a plain callable: services take clock=utc_now, tests pass a frozen lambda
"""

from datetime import datetime, timezone
from typing import Callable, Protocol

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenRegistry(Protocol):
    """Lookup used by unique-token generation, implemented by shell."""
    async def token_exists(self, token: str) -> bool: ...
