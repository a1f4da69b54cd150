"""User DTOs."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from employee_api.models.domain.user import User
from employee_api.models.domain.user_role import UserRole


class UserCreate(BaseModel):
    """DTO for creating a user (admin only)."""

    username: str = Field(max_length=50)
    email: EmailStr
    password: str = Field(max_length=128)
    role: UserRole = UserRole.VIEWER


class UserUpdate(BaseModel):
    """Partial user profile update; only fields present are applied."""

    username: str | None = Field(default=None, max_length=50)
    email: EmailStr | None = None
    role: UserRole | None = None

    def to_changes(self) -> dict[str, Any]:
        """Return the fields the client actually sent."""
        return {name: value for name, value in self if name in self.model_fields_set}


class PasswordResetRequest(BaseModel):
    """Administrative password reset."""

    new_password: str = Field(max_length=128)


class UserResponse(BaseModel):
    """User response DTO; never carries the password hash."""

    id: UUID
    username: str
    email: str
    role: UserRole
    is_active: bool
    is_online: bool
    last_login: datetime | None = None
    last_seen: str
    permissions: list[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            role=user.role,
            is_active=user.is_active,
            is_online=user.is_online(),
            last_login=user.last_login,
            last_seen=user.last_seen(),
            permissions=sorted(user.role.permissions()),
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class UserMutationResponse(BaseModel):
    """User after a change, with any side effects that failed."""

    user: UserResponse
    warnings: list[str] = Field(default_factory=list)


class UserListResponse(BaseModel):
    """User list response DTO."""

    items: list[UserResponse]
    total: int
    page: int
    page_size: int
    has_next: bool = False
    has_prev: bool = False
