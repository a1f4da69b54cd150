"""Employee DTOs."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from employee_api.models.domain.employee import Employee
from employee_api.models.domain.employee_status import EmployeeStatus


class AddressPayload(BaseModel):
    """Postal address as sent by clients; blank fields mean "no address"."""

    street: str = Field(default="", max_length=200)
    city: str = Field(default="", max_length=100)
    state: str = Field(default="", max_length=50)
    postal_code: str = Field(default="", max_length=20)
    country: str = Field(default="", max_length=100)


class EmployeeCreate(BaseModel):
    """DTO for creating an employee."""

    first_name: str = Field(max_length=100, description="Given name")
    last_name: str = Field(max_length=100, description="Family name")
    email: EmailStr = Field(description="Work email address, unique across employees")
    phone: str | None = Field(default=None, max_length=40, description="Phone number")
    department: str = Field(max_length=100, description="Department name")
    position: str = Field(max_length=100, description="Job title")
    hire_date: date = Field(description="First day of employment")
    salary: Decimal = Field(description="Annual salary")
    manager_id: UUID | None = Field(default=None, description="Manager's employee ID")
    address: AddressPayload | None = Field(default=None, description="Postal address")


class EmployeeUpdate(BaseModel):
    """Partial employee update.

    Only fields present in the request are applied. Sending ``null`` for
    ``phone``, ``manager_id`` or ``address`` clears the value.
    """

    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=40)
    department: str | None = Field(default=None, max_length=100)
    position: str | None = Field(default=None, max_length=100)
    salary: Decimal | None = None
    manager_id: UUID | None = None
    address: AddressPayload | None = None

    def to_changes(self) -> dict[str, Any]:
        """Return the fields the client actually sent."""
        return {
            name: (value.model_dump() if isinstance(value, AddressPayload) else value)
            for name, value in self
            if name in self.model_fields_set
        }


class StatusChangeRequest(BaseModel):
    """Employee status change."""

    status: str = Field(max_length=20, description="ACTIVE, ON_LEAVE or TERMINATED")


class SalaryUpdateRequest(BaseModel):
    """Employee salary change."""

    salary: Decimal


class PositionUpdateRequest(BaseModel):
    """Employee position and department change."""

    position: str = Field(max_length=100)
    department: str = Field(max_length=100)


class ManagerUpdateRequest(BaseModel):
    """Manager assignment; ``null`` removes the manager."""

    manager_id: UUID | None = None


class EmployeeResponse(BaseModel):
    """Employee response DTO.

    ``salary`` is omitted for callers whose role cannot see compensation.
    """

    id: UUID
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone: str | None = None
    department: str
    position: str
    hire_date: date
    salary: float | None = None
    status: EmployeeStatus
    manager_id: UUID | None = None
    address: AddressPayload | None = None
    tenure: str
    created_at: datetime
    updated_at: datetime

    class Config:
        """Pydantic config."""

        from_attributes = True

    @classmethod
    def from_domain(cls, employee: Employee, include_salary: bool = True) -> "EmployeeResponse":
        return cls(
            id=employee.id,
            first_name=employee.first_name,
            last_name=employee.last_name,
            full_name=employee.full_name,
            email=employee.email,
            phone=employee.phone,
            department=employee.department,
            position=employee.position,
            hire_date=employee.hire_date,
            salary=float(employee.salary) if include_salary else None,
            status=employee.status,
            manager_id=employee.manager_id,
            address=AddressPayload(**employee.address.to_dict()) if employee.address else None,
            tenure=employee.tenure_string(),
            created_at=employee.created_at,
            updated_at=employee.updated_at,
        )


class EmployeeMutationResponse(BaseModel):
    """Employee after a change, with any side effects that failed."""

    employee: EmployeeResponse
    warnings: list[str] = Field(default_factory=list)


class EmployeeListResponse(BaseModel):
    """Employee list response DTO."""

    items: list[EmployeeResponse]
    total: int
    page: int
    page_size: int
    has_next: bool = False
    has_prev: bool = False
    next_cursor: str | None = None
    prev_cursor: str | None = None
