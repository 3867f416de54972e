"""Syntactic checks shared by the schemas and the services."""

import ipaddress
import re

EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
)


def is_email(value: str) -> bool:
    return EMAIL_PATTERN.match(value) is not None


def is_ip_address(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def mask_email(value: str) -> str:
    """``alice@example.com`` -> ``a***@example.com`` for log lines."""
    local, sep, domain = value.partition("@")
    if not sep:
        return "***"
    return f"{local[:1]}***@{domain}"
