"""Helpers that keep secrets and personal data out of log output."""

import re

MAX_LOGGED_MESSAGE_LENGTH = 200

_REDACTIONS = (
    # Connection strings and URLs may embed credentials
    (re.compile(r"(postgresql|postgres|asyncpg|http|https)(\+\w+)?://\S+"), "[URL]"),
    # bcrypt hashes contain slashes, so they go before paths
    (re.compile(r"\$2[abxy]\$\d{2}\$[./A-Za-z0-9]{53}"), "[HASH]"),
    # Filesystem paths
    (re.compile(r"['\"]?(/[\w./\-]+|[A-Z]:\\[^\s'\"]+)['\"]?"), "[PATH]"),
    (re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+"), "[EMAIL]"),
    # JWTs and API keys
    (re.compile(r"[\w\-]{32,}"), "[TOKEN]"),
)


def sanitize_exception_message(error: Exception) -> str:
    """Render an exception for logging without sensitive details.

    URLs, filesystem paths, email addresses, password hashes and long
    token-like strings are replaced by placeholders, and the result is
    truncated.

    Args:
        error: The exception to sanitize

    Returns:
        Sanitized error message suitable for production logs
    """
    message = str(error) or type(error).__name__
    for pattern, placeholder in _REDACTIONS:
        message = pattern.sub(placeholder, message)
    if len(message) > MAX_LOGGED_MESSAGE_LENGTH:
        message = message[:MAX_LOGGED_MESSAGE_LENGTH - 3] + "..."
    return message
