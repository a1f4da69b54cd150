"""Audit log record and value comparison helpers."""

import ipaddress
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from employee_api.constants.validation import (
    CHANGE_SUMMARY_MAX_FIELDS,
    IP_ADDRESS_MAX_LENGTH,
    OPERATION_MAX_LENGTH,
    OPERATION_PATTERN,
    USER_AGENT_MAX_LENGTH,
)
from employee_api.exceptions import ValidationError


class AuditOperation:
    """Standard audit operation names."""

    # Employee
    EMPLOYEE_CREATE = "employee:create"
    EMPLOYEE_UPDATE = "employee:update"
    EMPLOYEE_DELETE = "employee:delete"
    EMPLOYEE_CHANGE_STATUS = "employee:change_status"
    EMPLOYEE_UPDATE_SALARY = "employee:update_salary"
    EMPLOYEE_UPDATE_POSITION = "employee:update_position"
    EMPLOYEE_UPDATE_ADDRESS = "employee:update_address"
    EMPLOYEE_SET_MANAGER = "employee:set_manager"

    # User
    USER_CREATE = "user:create"
    USER_UPDATE = "user:update"
    USER_DELETE = "user:delete"
    USER_LOGIN = "user:login"
    USER_LOGOUT = "user:logout"
    USER_PASSWORD_CHANGE = "user:password_change"
    USER_PASSWORD_RESET = "user:password_reset"
    USER_ACTIVATE = "user:activate"
    USER_DEACTIVATE = "user:deactivate"

    # System
    SYSTEM_ACTION = "system:action"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _as_decimal(value: int | float | Decimal) -> Decimal:
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def values_equal(a: Any, b: Any) -> bool:
    """Compare two snapshot values by type.

    Numbers compare by numeric value (``50000 == 50000.0``), booleans only
    equal booleans, UUIDs equal their canonical string form, and mappings
    and sequences compare element by element.
    """
    if a is None or b is None:
        return a is None and b is None
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if _is_number(a) and _is_number(b):
        if isinstance(a, float) and a != a or isinstance(b, float) and b != b:
            return False
        return _as_decimal(a) == _as_decimal(b)
    if isinstance(a, UUID) or isinstance(b, UUID):
        return str(a).lower() == str(b).lower()
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        return a.keys() == b.keys() and all(values_equal(a[key], b[key]) for key in a)
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, str) and isinstance(b, str):
        return str(a) == str(b)
    # date and datetime never compare equal to each other
    return type(a) is type(b) and a == b


def join_fields(fields: Sequence[str]) -> str:
    """Join field names as English prose ("a, b, and c")."""
    if not fields:
        return ""
    if len(fields) == 1:
        return fields[0]
    if len(fields) == 2:
        return f"{fields[0]} and {fields[1]}"
    return ", ".join(fields[:-1]) + f", and {fields[-1]}"


def _summarize(fields: Sequence[str], empty: str) -> str:
    if not fields:
        return empty
    if len(fields) <= CHANGE_SUMMARY_MAX_FIELDS:
        return join_fields(fields)
    head = join_fields(fields[:CHANGE_SUMMARY_MAX_FIELDS])
    return f"{head} and {len(fields) - CHANGE_SUMMARY_MAX_FIELDS} more"


class AuditLog(BaseModel):
    """Immutable record of one mutating operation.

    ``employee_id`` is the subject of the operation (the user's id for user
    operations) and ``user_id`` is the actor. At least one of the value
    snapshots must be non-empty.
    """

    id: UUID = Field(default_factory=uuid4)
    employee_id: UUID
    operation: str
    user_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    old_values: dict[str, Any] = Field(default_factory=dict)
    new_values: dict[str, Any] = Field(default_factory=dict)
    ip_address: str
    user_agent: str | None = None

    class Config:
        """Pydantic config."""

        from_attributes = True
        frozen = True

    @field_validator("operation")
    @classmethod
    def check_operation(cls, value: str) -> str:
        if not value:
            raise ValidationError("operation cannot be empty", field="operation")
        if len(value) > OPERATION_MAX_LENGTH:
            raise ValidationError(
                f"operation cannot exceed {OPERATION_MAX_LENGTH} characters", field="operation"
            )
        if not OPERATION_PATTERN.match(value):
            raise ValidationError("operation contains invalid characters", field="operation")
        return value

    @field_validator("user_id")
    @classmethod
    def check_user_id(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValidationError("user ID cannot be empty", field="user_id")
        return value

    @field_validator("ip_address")
    @classmethod
    def check_ip_address(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValidationError("IP address cannot be empty", field="ip_address")
        if len(value) > IP_ADDRESS_MAX_LENGTH:
            raise ValidationError("invalid IP address: IP address is too long", field="ip_address")
        try:
            ipaddress.ip_address(value)
        except ValueError:
            raise ValidationError(
                "invalid IP address: IP address format is invalid", field="ip_address"
            ) from None
        return value

    @field_validator("user_agent")
    @classmethod
    def check_user_agent(cls, value: str | None) -> str | None:
        if value and len(value) > USER_AGENT_MAX_LENGTH:
            raise ValidationError(
                f"user agent cannot exceed {USER_AGENT_MAX_LENGTH} characters", field="user_agent"
            )
        return value or None

    @field_validator("old_values", "new_values", mode="before")
    @classmethod
    def default_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @model_validator(mode="after")
    def check_values(self) -> "AuditLog":
        if not self.old_values and not self.new_values:
            raise ValidationError("at least one of old values or new values must be provided")
        return self

    # -------------------------------------------------------------------------
    # Classification
    # -------------------------------------------------------------------------

    def is_creation(self) -> bool:
        return not self.old_values and bool(self.new_values)

    def is_deletion(self) -> bool:
        return bool(self.old_values) and not self.new_values

    def is_update(self) -> bool:
        return bool(self.old_values) and bool(self.new_values)

    # -------------------------------------------------------------------------
    # Diffing
    # -------------------------------------------------------------------------

    def get_changed_fields(self) -> list[str]:
        """List keys whose value differs, plus keys only present in new values."""
        changed = [
            field for field, old in self.old_values.items()
            if field in self.new_values and not values_equal(old, self.new_values[field])
        ]
        changed.extend(field for field in self.new_values if field not in self.old_values)
        return changed

    def get_field_change(self, field: str) -> tuple[Any, Any, bool]:
        """Return ``(old, new, changed)`` for a single field."""
        in_old = field in self.old_values
        in_new = field in self.new_values
        if not in_old and not in_new:
            return None, None, False
        if not in_old:
            return None, self.new_values[field], True
        if not in_new:
            return self.old_values[field], None, True
        old, new = self.old_values[field], self.new_values[field]
        return old, new, not values_equal(old, new)

    def get_change_summary(self) -> str:
        """One-line description such as ``"Updated: salary and status"``."""
        if not self.old_values:
            return f"Created: {_summarize(list(self.new_values), 'no fields')}"
        if not self.new_values:
            return f"Deleted: {_summarize(list(self.old_values), 'no fields')}"
        return f"Updated: {_summarize(self.get_changed_fields(), 'no changes')}"

    def to_json(self) -> str:
        return self.model_dump_json()
