"""Domain events.

Every event shares one envelope (:class:`DomainEvent`) and carries a
kind-specific payload. The payload union is discriminated on ``kind`` so
handlers can ``match`` on the payload class and stored events rehydrate into
the right type.
"""

from datetime import datetime, timezone
from enum import StrEnum
from typing import Annotated, Any, Literal, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from employee_api.models.domain.audit_log import AuditLog
from employee_api.models.domain.employee import Employee
from employee_api.models.domain.employee_status import EmployeeStatus

EVENT_VERSION = 1


class EventKind(StrEnum):
    """Dot-namespaced event type names."""

    EMPLOYEE_CREATED = "employee.created"
    EMPLOYEE_UPDATED = "employee.updated"
    EMPLOYEE_DELETED = "employee.deleted"
    EMPLOYEE_STATUS_CHANGED = "employee.status_changed"
    EMPLOYEE_SALARY_CHANGED = "employee.salary_changed"
    USER_CREATED = "user.created"
    USER_LOGGED_IN = "user.logged_in"
    USER_PASSWORD_CHANGED = "user.password_changed"
    AUDIT_LOG_CREATED = "audit_log.created"


class _Payload(BaseModel):
    class Config:
        """Pydantic config."""

        frozen = True


class EmployeeCreated(_Payload):
    kind: Literal[EventKind.EMPLOYEE_CREATED] = EventKind.EMPLOYEE_CREATED
    employee_id: UUID
    first_name: str
    last_name: str
    email: str
    department: str
    position: str
    salary: float
    status: EmployeeStatus
    has_manager: bool
    has_address: bool


class EmployeeUpdated(_Payload):
    kind: Literal[EventKind.EMPLOYEE_UPDATED] = EventKind.EMPLOYEE_UPDATED
    employee_id: UUID
    changed_fields: tuple[str, ...]
    first_name: str
    last_name: str
    email: str
    department: str
    position: str
    salary: float
    status: EmployeeStatus


class EmployeeDeleted(_Payload):
    kind: Literal[EventKind.EMPLOYEE_DELETED] = EventKind.EMPLOYEE_DELETED
    employee_id: UUID
    old_data: dict[str, Any]


class EmployeeStatusChanged(_Payload):
    kind: Literal[EventKind.EMPLOYEE_STATUS_CHANGED] = EventKind.EMPLOYEE_STATUS_CHANGED
    employee_id: UUID
    old_status: EmployeeStatus
    new_status: EmployeeStatus
    changed_by: str


class EmployeeSalaryChanged(_Payload):
    kind: Literal[EventKind.EMPLOYEE_SALARY_CHANGED] = EventKind.EMPLOYEE_SALARY_CHANGED
    employee_id: UUID
    old_salary: float
    new_salary: float
    change_type: Literal["increase", "decrease", "same"]
    change_amount: float
    change_percent: float
    changed_by: str


class UserCreated(_Payload):
    kind: Literal[EventKind.USER_CREATED] = EventKind.USER_CREATED
    user_id: UUID
    username: str
    email: str
    role: str
    created_by: str


class UserLoggedIn(_Payload):
    kind: Literal[EventKind.USER_LOGGED_IN] = EventKind.USER_LOGGED_IN
    user_id: UUID
    username: str
    ip_address: str
    user_agent: str | None = None


class UserPasswordChanged(_Payload):
    kind: Literal[EventKind.USER_PASSWORD_CHANGED] = EventKind.USER_PASSWORD_CHANGED
    user_id: UUID
    username: str
    changed_by: str
    method: Literal["change", "reset"]


class AuditLogCreated(_Payload):
    kind: Literal[EventKind.AUDIT_LOG_CREATED] = EventKind.AUDIT_LOG_CREATED
    audit_log_id: UUID
    employee_id: UUID
    operation: str
    user_id: str
    ip_address: str
    is_creation: bool
    is_deletion: bool
    is_update: bool
    changed_fields: tuple[str, ...]


EventPayload = Annotated[
    Union[
        EmployeeCreated,
        EmployeeUpdated,
        EmployeeDeleted,
        EmployeeStatusChanged,
        EmployeeSalaryChanged,
        UserCreated,
        UserLoggedIn,
        UserPasswordChanged,
        AuditLogCreated,
    ],
    Field(discriminator="kind"),
]


class DomainEvent(BaseModel):
    """Immutable envelope around an event payload."""

    id: UUID = Field(default_factory=uuid4)
    aggregate_id: UUID
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: int = EVENT_VERSION
    payload: EventPayload

    class Config:
        """Pydantic config."""

        from_attributes = True
        frozen = True

    @property
    def type(self) -> EventKind:
        return self.payload.kind

    @property
    def data(self) -> dict[str, Any]:
        """Payload as a JSON-compatible mapping, without the kind tag."""
        return self.payload.model_dump(mode="json", exclude={"kind"})

    @classmethod
    def from_record(
        cls,
        id: UUID,
        aggregate_id: UUID,
        event_type: str,
        data: dict[str, Any],
        timestamp: datetime,
        version: int = EVENT_VERSION,
    ) -> "DomainEvent":
        """Rebuild an event from its stored columns."""
        return cls(
            id=id,
            aggregate_id=aggregate_id,
            timestamp=timestamp,
            version=version,
            payload={**data, "kind": EventKind(event_type)},
        )


# =============================================================================
# Event constructors
# =============================================================================


def employee_created(employee: Employee) -> DomainEvent:
    return DomainEvent(
        aggregate_id=employee.id,
        payload=EmployeeCreated(
            employee_id=employee.id,
            first_name=employee.first_name,
            last_name=employee.last_name,
            email=employee.email,
            department=employee.department,
            position=employee.position,
            salary=float(employee.salary),
            status=employee.status,
            has_manager=employee.has_manager(),
            has_address=employee.address is not None,
        ),
    )


def employee_updated(employee: Employee, changed_fields: list[str]) -> DomainEvent:
    return DomainEvent(
        aggregate_id=employee.id,
        payload=EmployeeUpdated(
            employee_id=employee.id,
            changed_fields=tuple(changed_fields),
            first_name=employee.first_name,
            last_name=employee.last_name,
            email=employee.email,
            department=employee.department,
            position=employee.position,
            salary=float(employee.salary),
            status=employee.status,
        ),
    )


def employee_deleted(employee_id: UUID, old_data: dict[str, Any]) -> DomainEvent:
    return DomainEvent(
        aggregate_id=employee_id,
        payload=EmployeeDeleted(employee_id=employee_id, old_data=old_data),
    )


def employee_status_changed(
    employee_id: UUID,
    old_status: EmployeeStatus,
    new_status: EmployeeStatus,
    changed_by: str,
) -> DomainEvent:
    return DomainEvent(
        aggregate_id=employee_id,
        payload=EmployeeStatusChanged(
            employee_id=employee_id,
            old_status=old_status,
            new_status=new_status,
            changed_by=changed_by,
        ),
    )


def employee_salary_changed(
    employee_id: UUID,
    old_salary: float,
    new_salary: float,
    changed_by: str,
) -> DomainEvent:
    """Build a salary change event with its direction and relative delta.

    ``old_salary`` is always positive for a valid employee, so the
    percentage is well defined.
    """
    change_amount = new_salary - old_salary
    if change_amount > 0:
        change_type = "increase"
    elif change_amount < 0:
        change_type = "decrease"
    else:
        change_type = "same"
    return DomainEvent(
        aggregate_id=employee_id,
        payload=EmployeeSalaryChanged(
            employee_id=employee_id,
            old_salary=old_salary,
            new_salary=new_salary,
            change_type=change_type,
            change_amount=change_amount,
            change_percent=change_amount / old_salary * 100,
            changed_by=changed_by,
        ),
    )


def user_created(user_id: UUID, username: str, email: str, role: str, created_by: str) -> DomainEvent:
    return DomainEvent(
        aggregate_id=user_id,
        payload=UserCreated(
            user_id=user_id,
            username=username,
            email=email,
            role=role,
            created_by=created_by,
        ),
    )


def user_logged_in(
    user_id: UUID,
    username: str,
    ip_address: str,
    user_agent: str | None,
) -> DomainEvent:
    return DomainEvent(
        aggregate_id=user_id,
        payload=UserLoggedIn(
            user_id=user_id,
            username=username,
            ip_address=ip_address,
            user_agent=user_agent,
        ),
    )


def user_password_changed(
    user_id: UUID,
    username: str,
    changed_by: str,
    method: Literal["change", "reset"],
) -> DomainEvent:
    return DomainEvent(
        aggregate_id=user_id,
        payload=UserPasswordChanged(
            user_id=user_id,
            username=username,
            changed_by=changed_by,
            method=method,
        ),
    )


def audit_log_created(audit_log: AuditLog) -> DomainEvent:
    return DomainEvent(
        aggregate_id=audit_log.id,
        payload=AuditLogCreated(
            audit_log_id=audit_log.id,
            employee_id=audit_log.employee_id,
            operation=audit_log.operation,
            user_id=audit_log.user_id,
            ip_address=audit_log.ip_address,
            is_creation=audit_log.is_creation(),
            is_deletion=audit_log.is_deletion(),
            is_update=audit_log.is_update(),
            changed_fields=tuple(audit_log.get_changed_fields()),
        ),
    )
