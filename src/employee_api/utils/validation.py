"""Input sanitization for query parameters that reach SQL filters."""

import re

MAX_SEARCH_LENGTH = 100
MAX_DEPARTMENT_LENGTH = 50

# Letters, digits, spaces and the punctuation department names may use
SAFE_DEPARTMENT_PATTERN = re.compile(r"^[\w\s&\-]+$", re.UNICODE)


def sanitize_search(search: str | None, max_length: int = MAX_SEARCH_LENGTH) -> str | None:
    """Trim a free-text search term.

    Statement separators and comment markers are removed; queries are
    parameterized regardless.

    Args:
        search: Raw search string
        max_length: Maximum allowed length

    Returns:
        Sanitized search string, or None if nothing is left
    """
    if search is None:
        return None
    search = search[:max_length].replace(";", "").replace("--", "")
    return search.strip() or None


def sanitize_department(
    department: str | None, max_length: int = MAX_DEPARTMENT_LENGTH
) -> str | None:
    """Normalize a department filter, dropping values no department could have."""
    if department is None:
        return None
    department = department[:max_length].strip()
    if not department or not SAFE_DEPARTMENT_PATTERN.match(department):
        return None
    return department


def escape_like_wildcards(value: str) -> str:
    """Escape SQL LIKE wildcards so they match literally.

    Example:
        >>> escape_like_wildcards("50%_off")
        '50\\\\%\\\\_off'
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
