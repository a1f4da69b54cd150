"""Authentication and authorization utilities."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from employee_api.config import get_settings
from employee_api.models.domain.user_role import UserRole


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated caller as described by the access token."""

    id: UUID
    username: str
    role: UserRole

    def has_permission(self, permission: str) -> bool:
        return self.role.has_permission(permission)

    def can_access_salary(self) -> bool:
        return self.role.can_access_salary()


def create_access_token(user_id: UUID, username: str, role: UserRole) -> tuple[str, int]:
    """Create a JWT access token.

    Args:
        user_id: User UUID
        username: Username
        role: User role

    Returns:
        Tuple of (token, lifetime in seconds)
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    lifetime = timedelta(hours=settings.jwt_expiration_hours)

    payload = {
        "sub": str(user_id),
        "username": username,
        "role": role.value,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "exp": now + lifetime,
        "iat": now,
    }

    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return token, int(lifetime.total_seconds())


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token.

    Args:
        token: JWT token string

    Returns:
        Token payload

    Raises:
        HTTPException: If token is invalid or expired
    """
    settings = get_settings()

    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        ) from e


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(HTTPBearer(auto_error=False))] = None,
) -> CurrentUser:
    """Get the current authenticated user from JWT token.

    Raises:
        HTTPException: If authentication fails
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )

    payload = decode_token(credentials.credentials)
    try:
        return CurrentUser(
            id=UUID(payload["sub"]),
            username=payload["username"],
            role=UserRole(payload["role"]),
        )
    except (KeyError, ValueError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        ) from e


def require_permission(permission: str) -> Callable[..., Awaitable[CurrentUser]]:
    """Build a dependency that requires the caller's role to grant a permission.

    Args:
        permission: Permission code (use Permission constants)

    Returns:
        FastAPI dependency returning the current user
    """

    async def check_permission(
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
    ) -> CurrentUser:
        if not current_user.has_permission(permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return check_permission
