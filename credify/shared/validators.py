"""Shared validation utilities"""

import re
from typing import Optional

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def is_email(value: Optional[str]) -> bool:
    """Check email format (local@domain.tld)"""
    if not value:
        return False
    return EMAIL_PATTERN.match(value.strip()) is not None


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Stripped email address

    Raises:
        ValueError: If email format is invalid
    """
    if not is_email(email):
        raise ValueError("Valid email required")
    return email.strip()


def validate_min_length(value: str, min_length: int, message: str) -> str:
    """Strip surrounding whitespace and require at least ``min_length`` characters"""
    value = value.strip()
    if len(value) < min_length:
        raise ValueError(message)
    return value


def validate_not_empty(value: str, message: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(message)
    return value


def validate_phone(phone: str, min_length: int = 7) -> str:
    """
    Validate a phone number loosely: international formats vary, so only
    the trimmed length is checked.

    Raises:
        ValueError: If the phone number is too short
    """
    return validate_min_length(phone, min_length, "Phone required")
