"""Input validation for tenancy and SMTP domain administration."""

import re
from typing import Optional

# Same pattern the admin UI applies client-side.
DOMAIN_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9-_.]+\.[a-zA-Z]{2,}$")
UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_domain_name(domain: Optional[str]) -> Optional[str]:
    """
    Validate an SMTP domain as entered by an admin.

    Returns:
        Error message, or None when the domain is acceptable
    """
    if not domain:
        return "Domain is required"
    if "@" in domain:
        return 'Domain should not include @ symbol (e.g., use "example.com" not "@example.com")'
    if not DOMAIN_PATTERN.fullmatch(domain):
        return "Invalid domain format (e.g., example.com)"
    return None


def is_uuid(value: Optional[str]) -> bool:
    return bool(value) and UUID_PATTERN.fullmatch(value) is not None


def is_email(value: Optional[str]) -> bool:
    return bool(value) and EMAIL_PATTERN.fullmatch(value) is not None
