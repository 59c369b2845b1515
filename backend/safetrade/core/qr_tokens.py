"""QR Token Formats — generation and parsing of check-in, slot and item tokens.

Invariants:
    - Check-in tokens: escrow_ck_{base36 epoch-ms}_{32 hex chars} (128 random bits)
    - Slot tokens: VAULT_SLOT_{caseId}_{slotCode}_{16 hex chars}
    - Item tokens: VAULT_ITEM_{itemId}_{16 hex chars}
    - Randomness comes from the secrets module only
    - Uniqueness against the store is NOT checked here (see services/check_in_tokens.py)

Design Decisions:
    - Time-ordering prefix aids sorting and debugging; the random suffix defeats guessing
    - Clock passed in as epoch-ms so generation is reproducible in tests apart from entropy
"""

import re
import secrets
import time

CHECK_IN_PREFIX = "escrow_ck"
SLOT_PREFIX = "VAULT_SLOT"
ITEM_PREFIX = "VAULT_ITEM"
CHECK_IN_RANDOM_BYTES = 16
SLOT_RANDOM_BYTES = 8
ITEM_RANDOM_BYTES = 8
MAX_TOKEN_LENGTH = 128

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_TOKEN_CHARS = re.compile(r"^[A-Za-z0-9_-]+$")
CHECK_IN_TOKEN_PATTERN = re.compile(r"^escrow_ck_[0-9a-z]+_[0-9a-f]{32}$")


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 encoding requires a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_qr_token(now_ms: int | None = None) -> str:
    """Check-in token for an escrow session."""
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    random_hex = secrets.token_hex(CHECK_IN_RANDOM_BYTES)
    return f"{CHECK_IN_PREFIX}_{to_base36(now_ms)}_{random_hex}"


def is_check_in_token(token: str) -> bool:
    return bool(CHECK_IN_TOKEN_PATTERN.match(token))


def is_well_formed_token(token: str) -> bool:
    """Scan-endpoint sanity check: bounded length, URL-safe alphabet."""
    return 0 < len(token) <= MAX_TOKEN_LENGTH and bool(_TOKEN_CHARS.match(token))


def generate_slot_qr_token(case_id: str, slot_code: str) -> str:
    random_hex = secrets.token_hex(SLOT_RANDOM_BYTES)
    return f"{SLOT_PREFIX}_{case_id}_{slot_code}_{random_hex}"


def parse_slot_qr_token(token: str) -> dict | None:
    """Return {"case_id", "slot_code"} or None when the token is not a slot token."""
    parts = token.split("_")
    if len(parts) != 5 or parts[0] != "VAULT" or parts[1] != "SLOT":
        return None
    return {"case_id": parts[2], "slot_code": parts[3]}


def generate_item_qr_token(item_id: str) -> str:
    random_hex = secrets.token_hex(ITEM_RANDOM_BYTES)
    return f"{ITEM_PREFIX}_{item_id}_{random_hex}"


def parse_item_qr_token(token: str) -> dict | None:
    """Return {"item_id"} or None when the token is not an item token."""
    parts = token.split("_")
    if len(parts) != 4 or parts[0] != "VAULT" or parts[1] != "ITEM":
        return None
    return {"item_id": parts[2]}


def slot_code_for(index: int) -> str:
    """1-based slot index -> S01, S02, ..."""
    return f"S{index:02d}"
