"""Filtering, sorting and pagination types for repository queries."""

import base64
import binascii
from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum
from typing import Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from employee_api.constants.validation import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from employee_api.exceptions import ValidationError
from employee_api.models.domain.employee_status import EmployeeStatus
from employee_api.models.domain.user_role import UserRole

T = TypeVar("T")


class SortDirection(StrEnum):
    """Sort direction."""

    ASC = "ASC"
    DESC = "DESC"


class EmployeeSortField(StrEnum):
    """Sortable employee fields."""

    ID = "id"
    NAME = "name"
    EMAIL = "email"
    DEPARTMENT = "department"
    POSITION = "position"
    HIRE_DATE = "hire_date"
    SALARY = "salary"
    STATUS = "status"
    CREATED_AT = "created_at"


class UserSortField(StrEnum):
    """Sortable user fields."""

    ID = "id"
    USERNAME = "username"
    EMAIL = "email"
    ROLE = "role"
    IS_ACTIVE = "is_active"
    CREATED_AT = "created_at"
    LAST_LOGIN = "last_login"


class AuditLogSortField(StrEnum):
    """Sortable audit log fields."""

    ID = "id"
    TIMESTAMP = "timestamp"
    OPERATION = "operation"
    USER_ID = "user_id"
    EMPLOYEE_ID = "employee_id"


class EmployeeSort(BaseModel):
    field: EmployeeSortField = EmployeeSortField.CREATED_AT
    direction: SortDirection = SortDirection.DESC


class UserSort(BaseModel):
    field: UserSortField = UserSortField.CREATED_AT
    direction: SortDirection = SortDirection.DESC


class AuditLogSort(BaseModel):
    field: AuditLogSortField = AuditLogSortField.TIMESTAMP
    direction: SortDirection = SortDirection.DESC


# =============================================================================
# Filters
# =============================================================================


class EmployeeFilter(BaseModel):
    """Employee query filter; unset fields do not constrain."""

    department: str | None = None
    status: EmployeeStatus | None = None
    manager_id: UUID | None = None
    search: str | None = None
    min_salary: Decimal | None = None
    max_salary: Decimal | None = None
    hire_date_from: date | None = None
    hire_date_to: date | None = None


class UserFilter(BaseModel):
    """User query filter; unset fields do not constrain."""

    role: UserRole | None = None
    is_active: bool | None = None
    search: str | None = None
    created_after: datetime | None = None
    created_before: datetime | None = None


class AuditLogFilter(BaseModel):
    """Audit log query filter; unset fields do not constrain."""

    employee_id: UUID | None = None
    operation: str | None = None
    user_id: str | None = None
    ip_address: str | None = None
    from_time: datetime | None = None
    to_time: datetime | None = None
    operations: list[str] = Field(default_factory=list)


# =============================================================================
# Pagination
# =============================================================================


def encode_cursor(offset: int) -> str:
    """Encode a result position as an opaque cursor."""
    return base64.urlsafe_b64encode(f"offset:{offset}".encode()).decode()


def decode_cursor(cursor: str) -> int:
    """Decode a cursor produced by :func:`encode_cursor`.

    Raises:
        ValidationError: If the cursor is malformed
    """
    try:
        raw = base64.urlsafe_b64decode(cursor.encode()).decode()
        prefix, _, value = raw.partition(":")
        offset = int(value)
    except (binascii.Error, UnicodeDecodeError, ValueError):
        raise ValidationError("invalid cursor", field="cursor") from None
    if prefix != "offset" or offset < 0:
        raise ValidationError("invalid cursor", field="cursor")
    return offset


class Pagination(BaseModel):
    """Page-number or cursor pagination.

    Page mode uses ``page``/``page_size``. Cursor mode sets ``cursor`` (a
    position returned in a previous :class:`Page`) and ignores ``page``.
    """

    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    cursor: str | None = None

    class Config:
        """Pydantic config."""

        frozen = True

    @model_validator(mode="before")
    @classmethod
    def clamp(cls, values: dict) -> dict:
        if not isinstance(values, dict):
            return values
        values = dict(values)
        page = int(values.get("page") or 1)
        page_size = int(values.get("page_size") or DEFAULT_PAGE_SIZE)
        if page_size < 1:
            page_size = DEFAULT_PAGE_SIZE
        values["page"] = max(page, 1)
        values["page_size"] = min(page_size, MAX_PAGE_SIZE)
        return values

    @classmethod
    def of(cls, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> "Pagination":
        return cls(page=page, page_size=page_size)

    @classmethod
    def after(cls, cursor: str | None, page_size: int = DEFAULT_PAGE_SIZE) -> "Pagination":
        return cls(cursor=cursor or encode_cursor(0), page_size=page_size)

    @property
    def is_cursor(self) -> bool:
        return self.cursor is not None

    @property
    def offset(self) -> int:
        if self.cursor is not None:
            return decode_cursor(self.cursor)
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size


class Page(BaseModel, Generic[T]):
    """One page of query results."""

    items: list[T]
    total: int
    page: int
    page_size: int
    has_next: bool
    has_prev: bool
    next_cursor: str | None = None
    prev_cursor: str | None = None

    @classmethod
    def build(cls, items: list[T], total: int, pagination: Pagination) -> "Page[T]":
        """Assemble a page from a slice of results and the total count."""
        offset = pagination.offset
        has_next = offset + len(items) < total
        has_prev = offset > 0
        next_cursor = prev_cursor = None
        if pagination.is_cursor:
            if has_next:
                next_cursor = encode_cursor(offset + len(items))
            if has_prev:
                prev_cursor = encode_cursor(max(offset - pagination.page_size, 0))
            page = offset // pagination.page_size + 1
        else:
            page = pagination.page
        return cls(
            items=items,
            total=total,
            page=page,
            page_size=pagination.page_size,
            has_next=has_next,
            has_prev=has_prev,
            next_cursor=next_cursor,
            prev_cursor=prev_cursor,
        )
