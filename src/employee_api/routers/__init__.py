"""API routers package."""

from employee_api.routers import audit, auth, employees, users

__all__ = [
    "audit",
    "auth",
    "employees",
    "users",
]
