"""Error sanitization utilities to keep key material and credentials out of logs."""

import re
from typing import Any

# PEM blocks are dropped whole; a private key must never reach a log line or event
PEM_BLOCK_PATTERN = re.compile(
    r"-----BEGIN [A-Z ]+-----.*?-----END [A-Z ]+-----",
    flags=re.DOTALL,
)

# Patterns that might expose sensitive information
SENSITIVE_PATTERNS = [
    r"access[_\s-]?key[_\s-]?id[:=\s]+([A-Z0-9]{16,20})",
    r"secret[_\s-]?access[_\s-]?key[:=\s]+([A-Za-z0-9/+=]{40})",
    r"bearer\s+([A-Za-z0-9\-_\.]+)",
    r"api[_\s-]?token[:=\s]+([A-Za-z0-9\-_]+)",
    r"arn:aws:acm:[a-z0-9\-]+:(\d{12}):",
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "access-key-id",
    "secret-access-key",
    "api-token",
    "private_key",
    "privatekey",
    "tls.key",
    "password",
    "token",
}


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove sensitive information.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = PEM_BLOCK_PATTERN.sub("[REDACTED PEM]", message)

    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(
            pattern,
            lambda m: m.group(0).replace(m.group(1), "[REDACTED]"),
            sanitized,
            flags=re.IGNORECASE,
        )

    return sanitized


def sanitize_exception(error: Exception) -> str:
    """Sanitize exception message."""
    return sanitize_error_message(str(error))


def sanitize_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """Sanitize dictionary by redacting sensitive fields.

    Args:
        data: Dictionary to sanitize
        sensitive_keys: Additional keys to redact (merged with SENSITIVE_FIELDS)

    Returns:
        Sanitized dictionary with sensitive values redacted
    """
    all_sensitive = SENSITIVE_FIELDS | (sensitive_keys or set())
    sanitized: dict[str, Any] = {}

    for key, value in data.items():
        if key.lower() in all_sensitive:
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, sensitive_keys)
        elif isinstance(value, str):
            sanitized[key] = sanitize_error_message(value)
        else:
            sanitized[key] = value

    return sanitized
