"""
Shared validators and money helpers
"""
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

TWO_PLACES = Decimal("0.01")

PASSWORD_SPECIAL_CHARS = "@$!%*?&#^()_-+=."


def validate_password_strength(password: str) -> Optional[str]:
    """
    Checks the password policy.
    Returns an error message, or None when the password is acceptable:
    - at least 8 characters
    - one uppercase letter
    - one digit
    - one special character
    """
    if len(password) < 8:
        return "Password must be at least 8 characters long"
    if not re.search(r"[A-Z]", password):
        return "Password must contain at least one uppercase letter"
    if not re.search(r"\d", password):
        return "Password must contain at least one number"
    if not any(ch in PASSWORD_SPECIAL_CHARS for ch in password):
        return "Password must contain at least one special character"
    return None


def validate_phone(phone: str) -> bool:
    """
    Accepts international or local numbers: optional leading +,
    7 to 15 digits once spaces, dashes, dots and parentheses are removed.
    """
    cleaned = re.sub(r'[\s\-\(\)\.]', '', phone)
    return re.match(r'^\+?[0-9]{7,15}$', cleaned) is not None


def money(value) -> Decimal:
    """Round half-up to two decimal places."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
