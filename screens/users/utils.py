# screens/users/utils.py
from __future__ import annotations
import re
import secrets

RESERVED_USERNAMES = ("admin", "root", "support", "help", "test", "system")


def is_valid_email(s: str) -> bool:
    """Validate email format."""
    return bool(re.match(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", s or ""))


def validate_username(username: str) -> tuple[bool, str]:
    """
    Validate username against policy:
    - Pattern: ^[a-z][a-z0-9._-]{2,29}$
    - Reserved words: admin, root, support, help, test, system

    Returns: (is_valid, error_message)
    """
    if (username or "").lower() in RESERVED_USERNAMES:
        return False, f"Username '{username}' is reserved."
    if not re.match(r"^[a-z][a-z0-9._-]{2,29}$", username or ""):
        return False, "Username must start with a lowercase letter, 3-30 chars, only lowercase letters, digits, ., _, -"
    return True, ""


def generate_initial_password(full_name: str) -> str:
    """
    {first5lower}{lastinitiallower}@{4digits}

    Example: "Priya Sharma" -> "priyas@1234"
    """
    parts = (full_name or "").strip().split()
    digits = f"{secrets.randbelow(10000):04d}"
    if not parts:
        return f"temp@{digits}"
    first_part = parts[0].lower()[:5]
    last_initial = parts[-1][0].lower() if len(parts) > 1 else ""
    return f"{first_part}{last_initial}@{digits}"


def mask_phone(value: str, mask_char: str = "*") -> str:
    """Keep the last four digits of a phone number."""
    value = value or ""
    if len(value) <= 4:
        return value
    return mask_char * (len(value) - 4) + value[-4:]
