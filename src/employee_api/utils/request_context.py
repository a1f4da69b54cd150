"""Client metadata extraction for audit logging."""

from fastapi import Request

UNKNOWN_CLIENT = "unknown"


def get_client_ip(request: Request) -> str:
    """Extract client IP from request.

    Proxy headers win over the socket peer: the first ``X-Forwarded-For``
    entry, then ``X-Real-IP``.

    Args:
        request: FastAPI request object

    Returns:
        Client IP address, or "unknown" when none is available
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return UNKNOWN_CLIENT


def get_user_agent(request: Request) -> str | None:
    """Return the User-Agent header, or None when absent or blank."""
    user_agent = request.headers.get("user-agent", "").strip()
    return user_agent or None
