"""Employee status enum and transition rules."""

from enum import StrEnum

from employee_api.exceptions import InvalidStatusTransitionError, ValidationError


class EmployeeStatus(StrEnum):
    """Employment status.

    TERMINATED is terminal. ACTIVE and ON_LEAVE may move to any status,
    including themselves.
    """

    ACTIVE = "ACTIVE"
    TERMINATED = "TERMINATED"
    ON_LEAVE = "ON_LEAVE"

    @property
    def display_name(self) -> str:
        """Human readable status name."""
        return self.value.replace("_", " ").title()

    def can_change_to(self, target: "EmployeeStatus | str") -> bool:
        """Check whether a transition to the target status is permitted."""
        if self is EmployeeStatus.TERMINATED:
            return False
        return target in all_statuses()

    def validate_transition(self, target: "EmployeeStatus | str") -> None:
        """Raise if the transition to the target status is not permitted.

        Raises:
            InvalidStatusTransitionError: If the transition is rejected
        """
        if not self.can_change_to(target):
            raise InvalidStatusTransitionError(self.value, str(target))


def all_statuses() -> tuple[EmployeeStatus, ...]:
    """Return every employee status."""
    return tuple(EmployeeStatus)


def parse_employee_status(value: str) -> EmployeeStatus:
    """Parse a status name case-insensitively.

    Args:
        value: Raw status string

    Returns:
        Matching EmployeeStatus

    Raises:
        ValidationError: If the value names no status
    """
    normalized = value.strip().upper()
    try:
        return EmployeeStatus(normalized)
    except ValueError:
        raise ValidationError(f"invalid employee status: {value}", field="status") from None
