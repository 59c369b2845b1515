"""Error Hierarchy — typed, categorized exceptions for all SafeTrade failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces the REST envelope consumed by the web layer
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with SafeTradeError base: callers catch one type and map http_status
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - Allocator errors are raised inside the transaction context so the rollback
      happens before the caller sees them
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    AUTHORIZATION = "authorization"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    session_id: str | None = None
    item_id: str | None = None
    slot_id: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class SafeTradeError(Exception):
    """Base exception for all SafeTrade errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "session_id": self.context.session_id,
                    "item_id": self.context.item_id,
                    "slot_id": self.context.slot_id,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class ResourceNotFoundError(SafeTradeError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class InvalidTokenError(SafeTradeError):
    """Scanned token is malformed (length or alphabet)."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Invalid token", "INVALID_TOKEN", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )


class InvalidTransitionError(SafeTradeError):
    """State machine denied the requested status change."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            reason, "INVALID_TRANSITION", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 400,
        )


class RoleNotPermittedError(SafeTradeError):
    """Actor role may not perform the transition or action."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            reason, "ROLE_NOT_PERMITTED", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 403,
        )


class InvalidStateError(SafeTradeError):
    """Status precondition on an item, slot or case failed."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_STATE", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 400,
        )


class OwnershipMismatchError(SafeTradeError):
    """Shop is not authorized for the item or the case."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "OWNERSHIP_MISMATCH", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.ERROR, context, 403,
        )


class SlotConflictError(SafeTradeError):
    """Occupancy precondition failed (base for occupied/not-occupied)."""
    def __init__(self, message: str, code: str, context: ErrorContext | None = None):
        super().__init__(
            message, code, ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class SlotOccupiedError(SlotConflictError):
    def __init__(self, slot_code: str, context: ErrorContext | None = None):
        super().__init__(
            f"Slot {slot_code} is already occupied", "SLOT_OCCUPIED", context,
        )
        self.slot_code = slot_code


class SlotNotOccupiedError(SlotConflictError):
    def __init__(self, slot_code: str, context: ErrorContext | None = None):
        super().__init__(
            f"Slot {slot_code} is not occupied", "SLOT_NOT_OCCUPIED", context,
        )
        self.slot_code = slot_code


# ─── Infrastructure Errors (500-level) ──────────────────────────

class TokenGenerationExhaustedError(SafeTradeError):
    """Every token candidate collided with an existing row."""
    def __init__(self, attempts: int, context: ErrorContext | None = None):
        super().__init__(
            f"Failed to generate unique QR token after {attempts} attempts",
            "TOKEN_GENERATION_EXHAUSTED", ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.attempts = attempts


class DatabaseError(SafeTradeError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
