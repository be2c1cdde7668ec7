"""Keep the access token out of the terminal and the run log."""

import logging
import os
import re

# Tokens may also arrive through the environment instead of the prompt.
TOKEN_ENV_VARS = ("GIT_TOKEN", "GITHUB_TOKEN")

MIN_SECRET_LENGTH = 4

MASK = "***"

# scheme://<anything>@host: user:password or a bare token in the authority
_URL_CREDENTIALS = re.compile(r"(?P<scheme>[a-zA-Z][a-zA-Z0-9+.-]*://)[^/\s@]+@")

_runtime_secrets: set[str] = set()


def register_secret(value: str) -> None:
    """Mask value in every record logged from now on."""
    if value and len(value) >= MIN_SECRET_LENGTH:
        _runtime_secrets.add(value)


def clear_secrets() -> None:
    _runtime_secrets.clear()


def known_secrets() -> list[str]:
    """Registered and environment secrets, longest first."""
    values = set(_runtime_secrets)
    for var in TOKEN_ENV_VARS:
        value = os.environ.get(var, "")
        if len(value) >= MIN_SECRET_LENGTH:
            values.add(value)
    return sorted(values, key=len, reverse=True)


def redact_secrets(text: str) -> str:
    """Replace known secrets and URL credentials in text with ``***``."""
    for secret in known_secrets():
        text = text.replace(secret, MASK)
    return _URL_CREDENTIALS.sub(lambda m: f"{m.group('scheme')}{MASK}@", text)


class SecretRedactingFilter(logging.Filter):
    """Handler filter that rewrites each record's message with secrets masked.

    The message is rendered first (``msg % args``) so secrets passed as
    arguments are caught too; the record then carries the final text and no
    args.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_secrets(message)
        if redacted != message or record.args:
            record.msg = redacted
            record.args = None
        return True
