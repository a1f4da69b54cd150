"""Employee aggregate and its field validators."""

from collections.abc import Mapping
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from employee_api.constants.validation import (
    DAYS_PER_YEAR,
    DEPARTMENT_EXTRA_CHARS,
    DEPARTMENT_MAX_LENGTH,
    DEPARTMENT_MIN_LENGTH,
    EMAIL_MAX_LENGTH,
    EMAIL_PATTERN,
    HIRE_DATE_MAX_YEARS,
    NAME_EXTRA_CHARS,
    NAME_MAX_LENGTH,
    NAME_MIN_LENGTH,
    PHONE_MAX_LENGTH,
    PHONE_PATTERN,
    POSITION_EXTRA_CHARS,
    POSITION_MAX_LENGTH,
    POSITION_MIN_LENGTH,
    SALARY_MAX,
)
from employee_api.exceptions import TerminatedEmployeeError, ValidationError
from employee_api.models.domain.address import Address
from employee_api.models.domain.employee_status import EmployeeStatus

# Fields an employee update may touch, in snapshot order
UPDATABLE_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "department",
    "position",
    "salary",
    "manager_id",
    "address",
)

# Fields locked once the employee is terminated
_TERMINATION_LOCKED = {"salary": "salary", "position": "position", "department": "position"}


# =============================================================================
# Field validators
# =============================================================================


def _as_text(value: Any, label: str) -> str:
    """Return a raw input value stripped, rejecting anything that is not text."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{label} must be text", field=label.replace(" ", "_"))
    return value.strip()


def _validate_text(
    value: str | None,
    label: str,
    min_length: int,
    max_length: int,
    extra_chars: frozenset[str],
) -> str:
    value = _as_text(value, label)
    if not value:
        raise ValidationError(f"{label} is required", field=label.replace(" ", "_"))
    if len(value) < min_length:
        raise ValidationError(
            f"{label} must be at least {min_length} characters long", field=label.replace(" ", "_")
        )
    if len(value) > max_length:
        raise ValidationError(
            f"{label} cannot exceed {max_length} characters", field=label.replace(" ", "_")
        )
    for char in value:
        if not (char.isalpha() or char.isspace() or char in extra_chars):
            raise ValidationError(
                f"{label} contains invalid characters", field=label.replace(" ", "_")
            )
    return value


def validate_name(value: str | None, label: str) -> str:
    """Validate a first or last name and return it trimmed."""
    return _validate_text(value, label, NAME_MIN_LENGTH, NAME_MAX_LENGTH, NAME_EXTRA_CHARS)


def validate_department(value: str | None) -> str:
    """Validate a department name and return it trimmed."""
    return _validate_text(
        value, "department", DEPARTMENT_MIN_LENGTH, DEPARTMENT_MAX_LENGTH, DEPARTMENT_EXTRA_CHARS
    )


def validate_position(value: str | None) -> str:
    """Validate a position title and return it trimmed."""
    return _validate_text(
        value, "position", POSITION_MIN_LENGTH, POSITION_MAX_LENGTH, POSITION_EXTRA_CHARS
    )


def validate_email(value: str | None) -> str:
    """Validate an email address and return it trimmed and lowercased.

    Args:
        value: Raw email address

    Returns:
        Normalized email address

    Raises:
        ValidationError: If the address is missing, too long or malformed
    """
    value = _as_text(value, "email")
    if not value:
        raise ValidationError("email is required", field="email")
    if len(value) > EMAIL_MAX_LENGTH:
        raise ValidationError(
            f"email cannot exceed {EMAIL_MAX_LENGTH} characters", field="email"
        )
    if not EMAIL_PATTERN.match(value):
        raise ValidationError("email format is invalid", field="email")
    return value.lower()


def validate_phone(value: str | None) -> str | None:
    """Validate an optional phone number; blank values become None."""
    value = _as_text(value, "phone")
    if not value:
        return None
    if len(value) > PHONE_MAX_LENGTH:
        raise ValidationError(
            f"phone cannot exceed {PHONE_MAX_LENGTH} characters", field="phone"
        )
    if not PHONE_PATTERN.match(value):
        raise ValidationError("phone format is invalid", field="phone")
    return value


def _years_before(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        # 29 February in a non-leap target year
        return day.replace(year=day.year - years, day=28)


def validate_hire_date(value: date | None, today: date | None = None) -> date:
    """Validate a hire date against the current day.

    Args:
        value: Hire date
        today: Reference day (defaults to the current UTC day)

    Returns:
        The hire date

    Raises:
        ValidationError: If missing, in the future or more than 50 years back
    """
    if value is None:
        raise ValidationError("hire date is required", field="hire_date")
    today = today or datetime.now(timezone.utc).date()
    if value > today:
        raise ValidationError("hire date cannot be in the future", field="hire_date")
    if value < _years_before(today, HIRE_DATE_MAX_YEARS):
        raise ValidationError(
            f"hire date cannot be more than {HIRE_DATE_MAX_YEARS} years in the past",
            field="hire_date",
        )
    return value


def validate_salary(value: Decimal | int | float | str | None) -> Decimal:
    """Validate a salary and return it as a Decimal.

    Raises:
        ValidationError: If negative, zero, above the ceiling or not a number
    """
    if value is None or isinstance(value, bool):
        raise ValidationError("salary is required", field="salary")
    try:
        salary = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise ValidationError("salary must be a number", field="salary") from None
    if not salary.is_finite():
        raise ValidationError("salary must be a number", field="salary")
    if salary < 0:
        raise ValidationError("salary cannot be negative", field="salary")
    if salary == 0:
        raise ValidationError("salary is required", field="salary")
    if salary > SALARY_MAX:
        raise ValidationError(f"salary cannot exceed ${SALARY_MAX:,}", field="salary")
    return salary


def _normalize_address(value: Any) -> Address | None:
    if value is None:
        return None
    if not isinstance(value, Address):
        value = Address.model_validate(value)
    return None if value.is_empty() else value


# =============================================================================
# Aggregate
# =============================================================================


class Employee(BaseModel):
    """Employee aggregate root.

    Every field is validated on construction, and each mutation method
    validates its input before touching state. Rehydrating from storage
    passes ``context={"trusted": True}`` so the wall-clock bounds on
    ``hire_date`` are not re-applied to historical records.
    """

    id: UUID = Field(default_factory=uuid4)
    first_name: str
    last_name: str
    email: str
    phone: str | None = None
    department: str
    position: str
    hire_date: date
    salary: Decimal
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    manager_id: UUID | None = None
    address: Address | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        """Pydantic config."""

        from_attributes = True

    @field_validator("first_name", mode="before")
    @classmethod
    def check_first_name(cls, value: Any) -> str:
        return validate_name(value, "first name")

    @field_validator("last_name", mode="before")
    @classmethod
    def check_last_name(cls, value: Any) -> str:
        return validate_name(value, "last name")

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, value: Any) -> str:
        return validate_email(value)

    @field_validator("phone", mode="before")
    @classmethod
    def check_phone(cls, value: Any) -> str | None:
        return validate_phone(value)

    @field_validator("department", mode="before")
    @classmethod
    def check_department(cls, value: Any) -> str:
        return validate_department(value)

    @field_validator("position", mode="before")
    @classmethod
    def check_position(cls, value: Any) -> str:
        return validate_position(value)

    @field_validator("hire_date")
    @classmethod
    def check_hire_date(cls, value: date, info: ValidationInfo) -> date:
        if info.context and info.context.get("trusted"):
            return value
        return validate_hire_date(value)

    @field_validator("salary", mode="before")
    @classmethod
    def check_salary(cls, value: Any) -> Decimal:
        return validate_salary(value)

    @field_validator("address", mode="before")
    @classmethod
    def check_address(cls, value: Any) -> Address | None:
        return _normalize_address(value)

    @model_validator(mode="after")
    def check_manager(self) -> "Employee":
        if self.manager_id is not None and self.manager_id == self.id:
            raise ValidationError("employee cannot be their own manager", field="manager_id")
        return self

    @classmethod
    def create(
        cls,
        first_name: str,
        last_name: str,
        email: str,
        department: str,
        position: str,
        hire_date: date,
        salary: Decimal | int | float,
        phone: str | None = None,
        manager_id: UUID | None = None,
        address: Address | None = None,
    ) -> "Employee":
        """Create a new active employee.

        Raises:
            ValidationError: If any field is invalid
        """
        now = datetime.now(timezone.utc)
        return cls(
            id=uuid4(),
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone=phone,
            department=department,
            position=position,
            hire_date=hire_date,
            salary=salary,
            status=EmployeeStatus.ACTIVE,
            manager_id=manager_id,
            address=address,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def is_active(self) -> bool:
        return self.status is EmployeeStatus.ACTIVE

    def is_terminated(self) -> bool:
        return self.status is EmployeeStatus.TERMINATED

    def is_on_leave(self) -> bool:
        return self.status is EmployeeStatus.ON_LEAVE

    def has_manager(self) -> bool:
        return self.manager_id is not None

    def can_be_managed_by(self, manager_id: UUID) -> bool:
        """Check whether the given employee is this employee's manager."""
        return self.manager_id is not None and self.manager_id == manager_id

    def years_of_service(self, today: date | None = None) -> float:
        """Fractional years since the hire date, using 365.25-day years."""
        today = today or datetime.now(timezone.utc).date()
        return (today - self.hire_date).days / DAYS_PER_YEAR

    def tenure_string(self, today: date | None = None) -> str:
        """Human readable tenure, in months below one year."""
        years = self.years_of_service(today)
        if years < 1:
            months = int(years * 12)
            return f"{months} month{'' if months == 1 else 's'}"
        return f"{years:.1f} year{'' if int(years) == 1 else 's'}"

    def snapshot(self) -> dict[str, Any]:
        """Capture the employee's fields for audit logging."""
        return {
            "id": str(self.id),
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "department": self.department,
            "position": self.position,
            "hire_date": self.hire_date.isoformat(),
            "salary": float(self.salary),
            "status": self.status.value,
            "manager_id": str(self.manager_id) if self.manager_id else None,
            "address": self.address.to_dict() if self.address else None,
        }

    def clone(self) -> "Employee":
        """Return an independent copy."""
        return self.model_copy(deep=True)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def _touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)

    def change_status(self, status: EmployeeStatus | str) -> None:
        """Move the employee to a new status.

        Raises:
            InvalidStatusTransitionError: If the employee is terminated or
                the target is not a known status
        """
        self.status.validate_transition(status)
        self.status = EmployeeStatus(status)
        self._touch()

    def update_salary(self, salary: Decimal | int | float) -> None:
        """Set a new salary.

        Raises:
            ValidationError: If the salary is out of range
            TerminatedEmployeeError: If the employee is terminated
        """
        new_salary = validate_salary(salary)
        if self.is_terminated():
            raise TerminatedEmployeeError("salary")
        self.salary = new_salary
        self._touch()

    def update_contact_info(self, email: str, phone: str | None) -> None:
        """Replace email and phone."""
        new_email = validate_email(email)
        new_phone = validate_phone(phone)
        self.email = new_email
        self.phone = new_phone
        self._touch()

    def update_position(self, position: str, department: str) -> None:
        """Replace position and department.

        Raises:
            ValidationError: If either value is invalid
            TerminatedEmployeeError: If the employee is terminated
        """
        new_position = validate_position(position)
        new_department = validate_department(department)
        if self.is_terminated():
            raise TerminatedEmployeeError("position")
        self.position = new_position
        self.department = new_department
        self._touch()

    def update_address(self, address: Address | Mapping[str, Any] | None) -> None:
        """Replace the address; an empty address clears it."""
        self.address = _normalize_address(address)
        self._touch()

    def set_manager(self, manager_id: UUID | None) -> None:
        """Assign or clear the manager.

        Raises:
            ValidationError: If the employee would manage themselves
        """
        if manager_id is not None and manager_id == self.id:
            raise ValidationError("employee cannot be their own manager", field="manager_id")
        self.manager_id = manager_id
        self._touch()

    def apply_changes(self, changes: Mapping[str, Any]) -> list[str]:
        """Apply a partial update atomically.

        All supplied values are validated together before anything is
        assigned, so a rejected update leaves the employee untouched.

        Args:
            changes: Field name to new value, for updatable fields only

        Returns:
            Names of the fields whose value actually changed

        Raises:
            ValidationError: If a value is invalid or the field is unknown
            TerminatedEmployeeError: If a locked field changes on a
                terminated employee
        """
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"unknown employee fields: {', '.join(sorted(unknown))}")

        candidate = Employee.model_validate(
            {**self.model_dump(), **changes},
            context={"trusted": True},
        )

        changed = [
            name for name in UPDATABLE_FIELDS
            if name in changes and getattr(candidate, name) != getattr(self, name)
        ]
        if self.is_terminated():
            for name in changed:
                if name in _TERMINATION_LOCKED:
                    raise TerminatedEmployeeError(_TERMINATION_LOCKED[name])

        for name in changed:
            setattr(self, name, getattr(candidate, name))
        if changed:
            self._touch()
        return changed
