import re
from typing import Iterable

SECRET_PLACEHOLDER = "[SECRET_REDACTED]"


def redact_pii(message: str) -> str:
    """Mask submitter addresses, client IPs and provider credentials in a log line.

    Covers Resend (`re_`) and SendGrid (`SG.`) keys, bearer JWTs, hex tokens and
    `password=` style pairs that SMTP or API error replies may echo back.
    """
    if not isinstance(message, str):
        return str(message)

    # Emails: user@example.com -> u***@example.com
    message = re.sub(
        r"[\w.+-]+@[\w.-]+\.\w+",
        lambda m: m.group()[0] + "***@" + m.group().split("@")[1],
        message,
    )

    # IPs (IPv4): 192.168.1.100 -> 192.168.1.***
    message = re.sub(
        r"\b(\d{1,3}\.\d{1,3}\.\d{1,3}\.)\d{1,3}\b", r"\1***", message
    )

    # JWT tokens: eyJ... -> [JWT_REDACTED]
    message = re.sub(
        r"eyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+",
        "[JWT_REDACTED]",
        message,
    )

    # Provider API keys: re_xxx / SG.xxx style tokens
    message = re.sub(r"\b(re|SG)[_.][A-Za-z0-9_.-]{16,}", "[API_KEY_REDACTED]", message)

    # API Keys: long hex strings (32+ chars)
    message = re.sub(r"\b[a-fA-F0-9]{32,}\b", "[API_KEY_REDACTED]", message)

    # Password values in common patterns
    message = re.sub(
        r'(password|passwd|pwd|pass|secret)["\']?\s*[:=]\s*["\']?[^"\'&\s]+',
        r"\1=[REDACTED]",
        message,
        flags=re.IGNORECASE,
    )

    return message


def redact_secrets(message: str, secrets: Iterable[str]) -> str:
    """Replace every occurrence of a known secret value in ``message``."""
    if not isinstance(message, str):
        message = str(message)
    for secret in secrets:
        if secret:
            message = message.replace(secret, SECRET_PLACEHOLDER)
    return message
