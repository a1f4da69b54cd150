"""Authentication DTOs."""

from pydantic import BaseModel, Field

from employee_api.models.dto.user import UserResponse


class LoginRequest(BaseModel):
    """Username and password login."""

    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1, max_length=128)


class TokenResponse(BaseModel):
    """Token response DTO."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse
    warnings: list[str] = Field(default_factory=list)


class PasswordChangeRequest(BaseModel):
    """Password change for the current user."""

    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(max_length=128)
