"""In-memory repository implementations.

Used by the test suite and for running the API without a database. Each
repository stores deep copies so callers never share state with the store,
and enforces the same unique constraints as the database schema.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any, TypeVar
from uuid import UUID

from pydantic import BaseModel

from employee_api.exceptions import DuplicateRecordError, EmployeeNotFoundError, UserNotFoundError
from employee_api.models.domain.audit_log import AuditLog
from employee_api.models.domain.employee import Employee
from employee_api.models.domain.events import DomainEvent, EventKind
from employee_api.models.domain.query import (
    AuditLogFilter,
    AuditLogSort,
    EmployeeFilter,
    EmployeeSort,
    EmployeeSortField,
    Page,
    Pagination,
    SortDirection,
    UserFilter,
    UserSort,
)
from employee_api.models.domain.user import User
from employee_api.repositories.ports import (
    AuditLogRepository,
    EmployeeRepository,
    EventStoreRepository,
    UserRepository,
)

M = TypeVar("M", bound=BaseModel)


def _copy(model: M) -> M:
    return model.model_copy(deep=True)


def _sorted(items: Iterable[M], key: Callable[[M], Any], direction: SortDirection) -> list[M]:
    # None sorts last in both directions
    present = [item for item in items if key(item) is not None]
    missing = [item for item in items if key(item) is None]
    present.sort(key=key, reverse=direction is SortDirection.DESC)
    return present + missing


def _paginate(items: list[M], pagination: Pagination | None) -> Page[M]:
    pagination = pagination or Pagination()
    offset = pagination.offset
    window = [_copy(item) for item in items[offset:offset + pagination.limit]]
    return Page.build(window, len(items), pagination)


# =============================================================================
# Employees
# =============================================================================


def _employee_sort_key(field: EmployeeSortField) -> Callable[[Employee], Any]:
    if field is EmployeeSortField.NAME:
        return lambda e: (e.first_name.lower(), e.last_name.lower())
    if field in (EmployeeSortField.EMAIL, EmployeeSortField.DEPARTMENT, EmployeeSortField.POSITION):
        return lambda e: getattr(e, field.value).lower()
    if field is EmployeeSortField.ID:
        return lambda e: str(e.id)
    return lambda e: getattr(e, field.value)


def _matches_employee(employee: Employee, filter: EmployeeFilter) -> bool:
    if filter.department and employee.department.lower() != filter.department.lower():
        return False
    if filter.status and employee.status != filter.status:
        return False
    if filter.manager_id and employee.manager_id != filter.manager_id:
        return False
    if filter.min_salary is not None and employee.salary < filter.min_salary:
        return False
    if filter.max_salary is not None and employee.salary > filter.max_salary:
        return False
    if filter.hire_date_from and employee.hire_date < filter.hire_date_from:
        return False
    if filter.hire_date_to and employee.hire_date > filter.hire_date_to:
        return False
    if filter.search:
        term = filter.search.lower()
        haystack = (employee.first_name, employee.last_name, employee.email, employee.full_name)
        if not any(term in value.lower() for value in haystack):
            return False
    return True


class InMemoryEmployeeRepository(EmployeeRepository):
    """Employee repository backed by a dict."""

    def __init__(self) -> None:
        self._items: dict[UUID, Employee] = {}
        self._lock = asyncio.Lock()

    def _check_unique(self, employee: Employee) -> None:
        for other in self._items.values():
            if other.id != employee.id and other.email == employee.email:
                raise DuplicateRecordError("email", employee.email)

    async def create(self, employee: Employee) -> Employee:
        async with self._lock:
            if employee.id in self._items:
                raise DuplicateRecordError("id", employee.id)
            self._check_unique(employee)
            self._items[employee.id] = _copy(employee)
        return _copy(employee)

    async def get_by_id(self, employee_id: UUID) -> Employee | None:
        employee = self._items.get(employee_id)
        return _copy(employee) if employee else None

    async def update(self, employee: Employee) -> Employee:
        async with self._lock:
            if employee.id not in self._items:
                raise EmployeeNotFoundError(employee.id)
            self._check_unique(employee)
            self._items[employee.id] = _copy(employee)
        return _copy(employee)

    async def delete(self, employee_id: UUID) -> bool:
        async with self._lock:
            return self._items.pop(employee_id, None) is not None

    async def find_by_email(self, email: str) -> Employee | None:
        email = email.lower()
        for employee in self._items.values():
            if employee.email == email:
                return _copy(employee)
        return None

    async def find_by_manager_id(self, manager_id: UUID) -> list[Employee]:
        reports = [e for e in self._items.values() if e.manager_id == manager_id]
        return [_copy(e) for e in _sorted(reports, _employee_sort_key(EmployeeSortField.NAME), SortDirection.ASC)]

    def _query(self, filter: EmployeeFilter | None) -> list[Employee]:
        filter = filter or EmployeeFilter()
        return [e for e in self._items.values() if _matches_employee(e, filter)]

    async def list(
        self,
        filter: EmployeeFilter | None = None,
        sort: EmployeeSort | None = None,
        pagination: Pagination | None = None,
    ) -> Page[Employee]:
        sort = sort or EmployeeSort()
        items = _sorted(self._query(filter), _employee_sort_key(sort.field), sort.direction)
        return _paginate(items, pagination)

    async def count(self, filter: EmployeeFilter | None = None) -> int:
        return len(self._query(filter))

    async def exists_by_id(self, employee_id: UUID) -> bool:
        return employee_id in self._items

    async def exists_by_email(self, email: str, exclude_id: UUID | None = None) -> bool:
        email = email.lower()
        return any(
            e.email == email and e.id != exclude_id for e in self._items.values()
        )

    async def create_many(self, employees: list[Employee]) -> list[Employee]:
        async with self._lock:
            emails = [e.email for e in employees]
            duplicates = [email for email, n in Counter(emails).items() if n > 1]
            if duplicates:
                raise DuplicateRecordError("email", duplicates[0])
            for employee in employees:
                if employee.id in self._items:
                    raise DuplicateRecordError("id", employee.id)
                self._check_unique(employee)
            for employee in employees:
                self._items[employee.id] = _copy(employee)
        return [_copy(e) for e in employees]

    async def update_many(self, employees: list[Employee]) -> list[Employee]:
        async with self._lock:
            for employee in employees:
                if employee.id not in self._items:
                    raise EmployeeNotFoundError(employee.id)
                self._check_unique(employee)
            for employee in employees:
                self._items[employee.id] = _copy(employee)
        return [_copy(e) for e in employees]

    async def delete_many(self, employee_ids: list[UUID]) -> int:
        async with self._lock:
            return sum(self._items.pop(i, None) is not None for i in employee_ids)


# =============================================================================
# Users
# =============================================================================


def _matches_user(user: User, filter: UserFilter) -> bool:
    if filter.role and user.role != filter.role:
        return False
    if filter.is_active is not None and user.is_active != filter.is_active:
        return False
    if filter.created_after and user.created_at < filter.created_after:
        return False
    if filter.created_before and user.created_at > filter.created_before:
        return False
    if filter.search:
        term = filter.search.lower()
        if term not in user.username.lower() and term not in user.email.lower():
            return False
    return True


class InMemoryUserRepository(UserRepository):
    """User repository backed by a dict."""

    def __init__(self) -> None:
        self._items: dict[UUID, User] = {}
        self._lock = asyncio.Lock()

    def _check_unique(self, user: User) -> None:
        for other in self._items.values():
            if other.id == user.id:
                continue
            if other.username.lower() == user.username.lower():
                raise DuplicateRecordError("username", user.username)
            if other.email == user.email:
                raise DuplicateRecordError("email", user.email)

    async def create(self, user: User) -> User:
        async with self._lock:
            if user.id in self._items:
                raise DuplicateRecordError("id", user.id)
            self._check_unique(user)
            self._items[user.id] = _copy(user)
        return _copy(user)

    async def get_by_id(self, user_id: UUID) -> User | None:
        user = self._items.get(user_id)
        return _copy(user) if user else None

    async def update(self, user: User) -> User:
        async with self._lock:
            if user.id not in self._items:
                raise UserNotFoundError(user.id)
            self._check_unique(user)
            self._items[user.id] = _copy(user)
        return _copy(user)

    async def delete(self, user_id: UUID) -> bool:
        async with self._lock:
            return self._items.pop(user_id, None) is not None

    async def find_by_username(self, username: str) -> User | None:
        username = username.lower()
        for user in self._items.values():
            if user.username.lower() == username:
                return _copy(user)
        return None

    async def find_by_email(self, email: str) -> User | None:
        email = email.lower()
        for user in self._items.values():
            if user.email == email:
                return _copy(user)
        return None

    def _query(self, filter: UserFilter | None) -> list[User]:
        filter = filter or UserFilter()
        return [u for u in self._items.values() if _matches_user(u, filter)]

    async def list(
        self,
        filter: UserFilter | None = None,
        sort: UserSort | None = None,
        pagination: Pagination | None = None,
    ) -> Page[User]:
        sort = sort or UserSort()
        field = sort.field.value
        if field in ("username", "email"):
            key: Callable[[User], Any] = lambda u: getattr(u, field).lower()
        elif field == "id":
            key = lambda u: str(u.id)
        else:
            key = lambda u: getattr(u, field)
        items = _sorted(self._query(filter), key, sort.direction)
        return _paginate(items, pagination)

    async def count(self, filter: UserFilter | None = None) -> int:
        return len(self._query(filter))

    async def exists_by_id(self, user_id: UUID) -> bool:
        return user_id in self._items

    async def exists_by_username(self, username: str, exclude_id: UUID | None = None) -> bool:
        username = username.lower()
        return any(
            u.username.lower() == username and u.id != exclude_id for u in self._items.values()
        )

    async def exists_by_email(self, email: str, exclude_id: UUID | None = None) -> bool:
        email = email.lower()
        return any(u.email == email and u.id != exclude_id for u in self._items.values())

    async def update_last_login(self, user_id: UUID, at: datetime) -> None:
        async with self._lock:
            user = self._items.get(user_id)
            if user is not None:
                user.last_login = at

    async def get_inactive_users(self, since: datetime) -> list[User]:
        inactive = [
            u for u in self._items.values() if u.last_login is None or u.last_login < since
        ]
        return [_copy(u) for u in _sorted(inactive, lambda u: u.username.lower(), SortDirection.ASC)]

    async def create_many(self, users: list[User]) -> list[User]:
        async with self._lock:
            staged: dict[UUID, User] = {}
            for user in users:
                if user.id in self._items or user.id in staged:
                    raise DuplicateRecordError("id", user.id)
                self._check_unique(user)
                for other in staged.values():
                    if other.username.lower() == user.username.lower():
                        raise DuplicateRecordError("username", user.username)
                    if other.email == user.email:
                        raise DuplicateRecordError("email", user.email)
                staged[user.id] = _copy(user)
            self._items.update(staged)
        return [_copy(u) for u in users]


# =============================================================================
# Audit logs
# =============================================================================


def _matches_audit_log(log: AuditLog, filter: AuditLogFilter) -> bool:
    if filter.employee_id and log.employee_id != filter.employee_id:
        return False
    if filter.operation and log.operation != filter.operation:
        return False
    if filter.operations and log.operation not in filter.operations:
        return False
    if filter.user_id and log.user_id != filter.user_id:
        return False
    if filter.ip_address and log.ip_address != filter.ip_address:
        return False
    if filter.from_time and log.timestamp < filter.from_time:
        return False
    if filter.to_time and log.timestamp > filter.to_time:
        return False
    return True


class InMemoryAuditLogRepository(AuditLogRepository):
    """Append-only audit log store backed by a list."""

    def __init__(self) -> None:
        self._items: list[AuditLog] = []
        self._lock = asyncio.Lock()

    @property
    def records(self) -> list[AuditLog]:
        """Stored audit logs in insertion order."""
        return list(self._items)

    async def create(self, audit_log: AuditLog) -> AuditLog:
        async with self._lock:
            if any(existing.id == audit_log.id for existing in self._items):
                raise DuplicateRecordError("id", audit_log.id)
            self._items.append(audit_log)
        return audit_log

    async def get_by_id(self, audit_log_id: UUID) -> AuditLog | None:
        for log in self._items:
            if log.id == audit_log_id:
                return log
        return None

    def _query(self, filter: AuditLogFilter | None) -> list[AuditLog]:
        filter = filter or AuditLogFilter()
        return [log for log in self._items if _matches_audit_log(log, filter)]

    async def list(
        self,
        filter: AuditLogFilter | None = None,
        sort: AuditLogSort | None = None,
        pagination: Pagination | None = None,
    ) -> Page[AuditLog]:
        sort = sort or AuditLogSort()
        field = sort.field.value
        if field in ("id", "employee_id"):
            key: Callable[[AuditLog], Any] = lambda log: str(getattr(log, field))
        else:
            key = lambda log: getattr(log, field)
        items = _sorted(self._query(filter), key, sort.direction)
        return _paginate(items, pagination)

    async def count(self, filter: AuditLogFilter | None = None) -> int:
        return len(self._query(filter))

    async def get_user_activity(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[AuditLog]:
        logs = self._query(AuditLogFilter(user_id=user_id, from_time=start, to_time=end))
        return _sorted(logs, lambda log: log.timestamp, SortDirection.DESC)

    async def get_operations_summary(self, start: datetime, end: datetime) -> dict[str, int]:
        logs = self._query(AuditLogFilter(from_time=start, to_time=end))
        return dict(Counter(log.operation for log in logs))

    async def create_many(self, audit_logs: list[AuditLog]) -> list[AuditLog]:
        async with self._lock:
            self._items.extend(audit_logs)
        return list(audit_logs)

    async def delete_older_than(self, cutoff: datetime) -> int:
        async with self._lock:
            kept = [log for log in self._items if log.timestamp >= cutoff]
            removed = len(self._items) - len(kept)
            self._items = kept
        return removed


# =============================================================================
# Events
# =============================================================================


class InMemoryEventStore(EventStoreRepository):
    """Append-only event store backed by a list; sequence numbers start at 1."""

    def __init__(self) -> None:
        self._events: list[DomainEvent] = []
        self._lock = asyncio.Lock()

    @property
    def events(self) -> list[DomainEvent]:
        """Stored events in append order."""
        return list(self._events)

    async def save_event(self, event: DomainEvent) -> None:
        async with self._lock:
            if any(existing.id == event.id for existing in self._events):
                raise DuplicateRecordError("id", event.id)
            self._events.append(event)

    async def get_events_by_aggregate_id(self, aggregate_id: UUID) -> list[DomainEvent]:
        return [e for e in self._events if e.aggregate_id == aggregate_id]

    async def get_events_by_type(
        self, kind: EventKind, pagination: Pagination | None = None
    ) -> Page[DomainEvent]:
        pagination = pagination or Pagination()
        matching = [e for e in self._events if e.type == kind]
        window = matching[pagination.offset:pagination.offset + pagination.limit]
        return Page.build(window, len(matching), pagination)

    async def get_events_by_time_range(
        self, start: datetime, end: datetime
    ) -> list[DomainEvent]:
        return [e for e in self._events if start <= e.timestamp <= end]

    async def get_events_after(self, sequence: int, limit: int = 100) -> list[tuple[int, DomainEvent]]:
        return [
            (index, event)
            for index, event in enumerate(self._events, start=1)
            if index > sequence
        ][:limit]
