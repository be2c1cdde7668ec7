"""Input validation for the interactive prompts. Pure functions, no side effects."""

import os
import re

_URL_PATTERN = re.compile(r"^https?://")
# Digit-count check only: octets above 255 are accepted.
_IPV4_PATTERN = re.compile(r"^[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}$")
_PORT_PATTERN = re.compile(r"^[0-9]+$")


def validate_url(value: str) -> bool:
    """Scheme check only: http:// or https://."""
    return bool(_URL_PATTERN.match(value))


def validate_ipv4(value: str) -> bool:
    return _IPV4_PATTERN.fullmatch(value) is not None


def validate_port(value: str) -> bool:
    if not _PORT_PATTERN.fullmatch(value):
        return False
    return 1 <= int(value) <= 65535


def expand_key_path(value: str) -> str:
    return os.path.expanduser(value)


def validate_key_path(value: str) -> bool:
    """True when the tilde-expanded path names an existing regular file."""
    return bool(value) and os.path.isfile(expand_key_path(value))


def validate_deployment_name(value: str) -> bool:
    """Non-empty, not ``.`` or ``..`` and free of path separators."""
    return bool(value) and value not in (".", "..") and "/" not in value
