"""Pure validation rules applied to user creation requests."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any

import email_validator
from email_validator import EmailNotValidError, validate_email

# PBX tenants often live on private names; email-validator rejects these
# special-use domains unless they are removed from its module-level list.
PRIVATE_DOMAIN_NAMES = ("local", "localhost", "test")
email_validator.SPECIAL_USE_DOMAIN_NAMES[:] = [
    name for name in email_validator.SPECIAL_USE_DOMAIN_NAMES if name not in PRIVATE_DOMAIN_NAMES
]

USER_STATUSES = frozenset(
    {
        "Available",
        "Available (On Demand)",
        "On Break",
        "Do Not Disturb",
        "Logged Out",
    }
)

USERNAME_FORMATS = ("any", "email", "no_email")

_DIGIT = re.compile(r"\d")
_LOWERCASE = re.compile(r"[a-z]")
_UPPERCASE = re.compile(r"[A-Z]")
_SPECIAL = re.compile(r"\W")


def is_valid_email(value: str) -> bool:
    """Return ``True`` when ``value`` is a syntactically valid email address."""
    try:
        validate_email(value, check_deliverability=False, globally_deliverable=False)
    except EmailNotValidError:
        return False
    return True


def username_matches_format(username: str, username_format: str | None) -> bool:
    """Check ``username`` against the configured ``users.username_format`` policy.

    ``email`` requires the username to be an address, ``no_email`` forbids it.
    An empty or unrecognised format (including ``any``) accepts everything.
    """
    if username_format == "email":
        return is_valid_email(username)
    if username_format == "no_email":
        return not is_valid_email(username)
    return True


def normalize_user_status(value: str) -> str:
    """Return ``value`` if it is a known presence status, otherwise an empty string."""
    return value if value in USER_STATUSES else ""


def _as_length(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return 0
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return 0
    # a fractional minimum still rejects anything shorter than it
    return max(math.ceil(value), 0)


@dataclass(slots=True, frozen=True)
class PasswordPolicy:
    """Password strength requirements for a tenant."""

    length: int = 12
    number: bool = False
    lowercase: bool = False
    uppercase: bool = False
    special: bool = False

    @classmethod
    def from_settings(cls, settings: Any) -> "PasswordPolicy":
        """Build a policy from a settings provider exposing ``get(category, key, default)``."""
        return cls(
            length=_as_length(settings.get("users", "password_length", 12)),
            number=bool(settings.get("users", "password_number", False)),
            lowercase=bool(settings.get("users", "password_lowercase", False)),
            uppercase=bool(settings.get("users", "password_uppercase", False)),
            special=bool(settings.get("users", "password_special", False)),
        )

    def violations(self, password: str) -> list[str]:
        """Return a message for every requirement ``password`` fails to meet."""
        errors: list[str] = []
        if self.length > 0 and len(password) < self.length:
            errors.append(f"Password must be at least {self.length} characters")
        if self.number and not _DIGIT.search(password):
            errors.append("Password must contain at least one number")
        if self.lowercase and not _LOWERCASE.search(password):
            errors.append("Password must contain at least one lowercase letter")
        if self.uppercase and not _UPPERCASE.search(password):
            errors.append("Password must contain at least one uppercase letter")
        if self.special and not _SPECIAL.search(password):
            errors.append("Password must contain at least one special character")
        return errors
