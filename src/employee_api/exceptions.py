"""Domain-specific exceptions for the employee API.

These exceptions provide a clean separation between domain/service-layer
errors and HTTP responses, avoiding string matching in routers.
"""

from typing import Any


class EmployeeAPIError(Exception):
    """Base exception for all employee API errors."""

    def __init__(self, message: str = "An error occurred", details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# =============================================================================
# Validation Errors (400)
# =============================================================================


class ValidationError(EmployeeAPIError):
    """Raised when a field or value object fails validation."""

    def __init__(self, message: str, field: str | None = None) -> None:
        details = {"field": field} if field else {}
        super().__init__(message, details)
        self.field = field


# =============================================================================
# Resource Not Found Errors (404)
# =============================================================================


class NotFoundError(EmployeeAPIError):
    """Base class for resource not found errors."""

    pass


class EmployeeNotFoundError(NotFoundError):
    """Raised when an employee cannot be found."""

    def __init__(self, employee_id: Any = None) -> None:
        details = {"employee_id": str(employee_id)} if employee_id else {}
        super().__init__("Employee not found", details)


class UserNotFoundError(NotFoundError):
    """Raised when a user cannot be found."""

    def __init__(self, user_id: Any = None) -> None:
        details = {"user_id": str(user_id)} if user_id else {}
        super().__init__("User not found", details)


# =============================================================================
# Conflict Errors (409)
# =============================================================================


class ConflictError(EmployeeAPIError):
    """Base class for resource conflict errors."""

    pass


class EmailAlreadyExistsError(ConflictError):
    """Raised when an email address is already in use."""

    def __init__(self, email: str | None = None) -> None:
        details = {"email": email} if email else {}
        super().__init__("Email already exists", details)


class UsernameAlreadyExistsError(ConflictError):
    """Raised when a username is already taken."""

    def __init__(self, username: str | None = None) -> None:
        details = {"username": username} if username else {}
        super().__init__("Username already exists", details)


class ManagerNotFoundError(ConflictError):
    """Raised when a referenced manager does not exist."""

    def __init__(self, manager_id: Any = None) -> None:
        details = {"manager_id": str(manager_id)} if manager_id else {}
        super().__init__("Manager not found", details)


class EmployeeHasDirectReportsError(ConflictError):
    """Raised when deleting an employee that still manages others."""

    def __init__(self, employee_id: Any = None, report_count: int = 0) -> None:
        details: dict[str, Any] = {}
        if employee_id:
            details["employee_id"] = str(employee_id)
        if report_count:
            details["report_count"] = report_count
        super().__init__("Employee has direct reports", details)


class CircularManagementError(ConflictError):
    """Raised when a manager assignment would create a reporting cycle."""

    def __init__(self, employee_id: Any = None, manager_id: Any = None) -> None:
        details: dict[str, Any] = {}
        if employee_id:
            details["employee_id"] = str(employee_id)
        if manager_id:
            details["manager_id"] = str(manager_id)
        super().__init__("Manager assignment would create a circular reporting chain", details)


# =============================================================================
# State Transition Errors (409)
# =============================================================================


class StateTransitionError(EmployeeAPIError):
    """Base class for invalid aggregate state changes."""

    pass


class InvalidStatusTransitionError(StateTransitionError):
    """Raised when an employee status change is not permitted."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            f"invalid status transition from {current} to {target}",
            {"from": current, "to": target},
        )


class TerminatedEmployeeError(StateTransitionError):
    """Raised when mutating a field that is locked after termination."""

    def __init__(self, attribute: str) -> None:
        super().__init__(
            f"cannot update {attribute} for terminated employees",
            {"attribute": attribute},
        )


class UserStateError(StateTransitionError):
    """Raised when activating an active user or deactivating an inactive one."""

    pass


# =============================================================================
# Authentication Errors (401 / 403)
# =============================================================================


class AuthenticationError(EmployeeAPIError):
    """Base class for authentication failures."""

    pass


class InvalidCredentialsError(AuthenticationError):
    """Raised for an unknown username or a wrong password alike."""

    def __init__(self) -> None:
        super().__init__("Invalid credentials")


class UserNotActiveError(AuthenticationError):
    """Raised when a correctly authenticated account is deactivated."""

    def __init__(self) -> None:
        super().__init__("Account is disabled")


# =============================================================================
# Infrastructure Errors
# =============================================================================


class RepositoryError(EmployeeAPIError):
    """Raised when a persistence operation fails."""

    pass


class DuplicateRecordError(RepositoryError):
    """Raised when a unique constraint rejects a write."""

    def __init__(self, field: str | None = None, value: Any = None) -> None:
        details: dict[str, Any] = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__("Duplicate record", details)
        self.field = field


class EventDispatchError(EmployeeAPIError):
    """Raised when one or more event handlers fail."""

    def __init__(self, errors: list[Exception]) -> None:
        super().__init__(
            f"event dispatch had {len(errors)} errors",
            {"errors": [str(e) for e in errors]},
        )
        self.errors = errors
