"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - SessionId, ItemId, SlotId, CaseId wrap UUIDs; use them instead of bare UUID in domain logic
    - ShopId and ActorId are opaque strings owned by the identity layer
    - All valid states encoded as Enums; no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: stored as their value in String columns, JSON-serializable in audit metadata
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

SessionId = NewType("SessionId", UUID)
ItemId = NewType("ItemId", UUID)
SlotId = NewType("SlotId", UUID)
CaseId = NewType("CaseId", UUID)

ShopId = NewType("ShopId", str)
ActorId = NewType("ActorId", str)


# ─── Escrow ──────────────────────────────────────────────────────

class EscrowSessionStatus(str, Enum):
    """Escrow session lifecycle, stored in to escrow_sessions.status."""
    CREATED = "CREATED"
    BOOKED = "BOOKED"
    CHECKIN_PENDING = "CHECKIN_PENDING"
    CHECKED_IN = "CHECKED_IN"
    VERIFICATION_IN_PROGRESS = "VERIFICATION_IN_PROGRESS"
    VERIFICATION_PASSED = "VERIFICATION_PASSED"
    VERIFICATION_FAILED = "VERIFICATION_FAILED"
    RELEASE_REQUESTED = "RELEASE_REQUESTED"
    RELEASE_APPROVED = "RELEASE_APPROVED"
    COMPLETED = "COMPLETED"
    DISPUTED = "DISPUTED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class UserRole(str, Enum):
    """Actor roles supplied by the identity layer."""
    BUYER = "BUYER"
    SELLER = "SELLER"
    MERCHANT = "MERCHANT"
    ADMIN = "ADMIN"
    MODERATOR = "MODERATOR"
    SYSTEM = "SYSTEM"


class SessionAction(str, Enum):
    """Named business actions layered over raw status transitions."""
    CHECK_IN = "CHECK_IN"
    START_VERIFICATION = "START_VERIFICATION"
    PASS_VERIFICATION = "PASS_VERIFICATION"
    FAIL_VERIFICATION = "FAIL_VERIFICATION"
    REQUEST_RELEASE = "REQUEST_RELEASE"
    APPROVE_RELEASE = "APPROVE_RELEASE"
    EXTEND_SESSION = "EXTEND_SESSION"
    CLOSE_SESSION = "CLOSE_SESSION"


# ─── Vault ───────────────────────────────────────────────────────

class VaultCaseStatus(str, Enum):
    IN_HUB = "IN_HUB"
    IN_SHOP_ACTIVE = "IN_SHOP_ACTIVE"
    RETIRED = "RETIRED"


class VaultSlotStatus(str, Enum):
    FREE = "FREE"
    OCCUPIED = "OCCUPIED"


class VaultItemStatus(str, Enum):
    """Vault item lifecycle; the allocator only moves ASSIGNED_TO_SHOP <-> IN_CASE."""
    PENDING_REVIEW = "PENDING_REVIEW"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    ASSIGNED_TO_SHOP = "ASSIGNED_TO_SHOP"
    IN_CASE = "IN_CASE"
    LISTED_ONLINE = "LISTED_ONLINE"
    RESERVED = "RESERVED"
    SOLD = "SOLD"
    RETURNED = "RETURNED"


class VaultAuditAction(str, Enum):
    CASE_CREATED = "CASE_CREATED"
    ITEM_MOVED_TO_SLOT = "ITEM_MOVED_TO_SLOT"
    ITEM_REMOVED_FROM_SLOT = "ITEM_REMOVED_FROM_SLOT"
    SLOT_FREED = "SLOT_FREED"
