"""Data Transfer Objects package."""

from employee_api.models.dto.auth import LoginRequest, PasswordChangeRequest, TokenResponse
from employee_api.models.dto.employee import (
    EmployeeCreate,
    EmployeeListResponse,
    EmployeeResponse,
    EmployeeUpdate,
)
from employee_api.models.dto.user import UserCreate, UserResponse, UserUpdate

__all__ = [
    "LoginRequest",
    "PasswordChangeRequest",
    "TokenResponse",
    "EmployeeCreate",
    "EmployeeUpdate",
    "EmployeeResponse",
    "EmployeeListResponse",
    "UserCreate",
    "UserUpdate",
    "UserResponse",
]
