"""Repository interfaces the services depend on.

Adapters live alongside: SQLAlchemy-backed repositories for PostgreSQL and
in-memory repositories for tests and database-less runs. Adapters raise
:class:`~employee_api.exceptions.DuplicateRecordError` when a unique
constraint rejects a write.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from uuid import UUID

from employee_api.models.domain.audit_log import AuditLog
from employee_api.models.domain.employee import Employee
from employee_api.models.domain.events import DomainEvent, EventKind
from employee_api.models.domain.query import (
    AuditLogFilter,
    AuditLogSort,
    EmployeeFilter,
    EmployeeSort,
    Page,
    Pagination,
    UserFilter,
    UserSort,
)
from employee_api.models.domain.user import User


class EmployeeRepository(ABC):
    """Persistence port for employees."""

    @abstractmethod
    async def create(self, employee: Employee) -> Employee:
        """Persist a new employee."""

    @abstractmethod
    async def get_by_id(self, employee_id: UUID) -> Employee | None:
        """Fetch an employee, or None if absent."""

    @abstractmethod
    async def update(self, employee: Employee) -> Employee:
        """Persist changes to an existing employee.

        Raises:
            EmployeeNotFoundError: If the employee no longer exists
            DuplicateRecordError: If the email is taken
        """

    @abstractmethod
    async def delete(self, employee_id: UUID) -> bool:
        """Delete an employee; returns False if it did not exist."""

    @abstractmethod
    async def find_by_email(self, email: str) -> Employee | None:
        """Fetch an employee by email (case-insensitive)."""

    @abstractmethod
    async def find_by_manager_id(self, manager_id: UUID) -> list[Employee]:
        """List the direct reports of a manager."""

    @abstractmethod
    async def list(
        self,
        filter: EmployeeFilter | None = None,
        sort: EmployeeSort | None = None,
        pagination: Pagination | None = None,
    ) -> Page[Employee]:
        """Query employees."""

    @abstractmethod
    async def count(self, filter: EmployeeFilter | None = None) -> int:
        """Count employees matching a filter."""

    @abstractmethod
    async def exists_by_id(self, employee_id: UUID) -> bool:
        """Check whether an employee exists."""

    @abstractmethod
    async def exists_by_email(self, email: str, exclude_id: UUID | None = None) -> bool:
        """Check whether an email is taken, optionally ignoring one employee."""

    @abstractmethod
    async def create_many(self, employees: list[Employee]) -> list[Employee]:
        """Persist several new employees at once."""

    @abstractmethod
    async def update_many(self, employees: list[Employee]) -> list[Employee]:
        """Persist changes to several employees at once."""

    @abstractmethod
    async def delete_many(self, employee_ids: list[UUID]) -> int:
        """Delete several employees; returns how many existed."""


class UserRepository(ABC):
    """Persistence port for users."""

    @abstractmethod
    async def create(self, user: User) -> User:
        """Persist a new user."""

    @abstractmethod
    async def get_by_id(self, user_id: UUID) -> User | None:
        """Fetch a user, or None if absent."""

    @abstractmethod
    async def update(self, user: User) -> User:
        """Persist changes to an existing user.

        Raises:
            UserNotFoundError: If the user no longer exists
            DuplicateRecordError: If the username or email is taken
        """

    @abstractmethod
    async def delete(self, user_id: UUID) -> bool:
        """Delete a user; returns False if it did not exist."""

    @abstractmethod
    async def find_by_username(self, username: str) -> User | None:
        """Fetch a user by username (case-insensitive)."""

    @abstractmethod
    async def find_by_email(self, email: str) -> User | None:
        """Fetch a user by email (case-insensitive)."""

    @abstractmethod
    async def list(
        self,
        filter: UserFilter | None = None,
        sort: UserSort | None = None,
        pagination: Pagination | None = None,
    ) -> Page[User]:
        """Query users."""

    @abstractmethod
    async def count(self, filter: UserFilter | None = None) -> int:
        """Count users matching a filter."""

    @abstractmethod
    async def exists_by_id(self, user_id: UUID) -> bool:
        """Check whether a user exists."""

    @abstractmethod
    async def exists_by_username(self, username: str, exclude_id: UUID | None = None) -> bool:
        """Check whether a username is taken, optionally ignoring one user."""

    @abstractmethod
    async def exists_by_email(self, email: str, exclude_id: UUID | None = None) -> bool:
        """Check whether an email is taken, optionally ignoring one user."""

    @abstractmethod
    async def update_last_login(self, user_id: UUID, at: datetime) -> None:
        """Record a login time without rewriting the whole user."""

    @abstractmethod
    async def get_inactive_users(self, since: datetime) -> list[User]:
        """List users who have not logged in since the given time."""

    @abstractmethod
    async def create_many(self, users: list[User]) -> list[User]:
        """Persist several new users at once."""


class AuditLogRepository(ABC):
    """Append-only persistence port for audit logs."""

    @abstractmethod
    async def create(self, audit_log: AuditLog) -> AuditLog:
        """Persist an audit log."""

    @abstractmethod
    async def get_by_id(self, audit_log_id: UUID) -> AuditLog | None:
        """Fetch an audit log, or None if absent."""

    @abstractmethod
    async def list(
        self,
        filter: AuditLogFilter | None = None,
        sort: AuditLogSort | None = None,
        pagination: Pagination | None = None,
    ) -> Page[AuditLog]:
        """Query audit logs."""

    @abstractmethod
    async def count(self, filter: AuditLogFilter | None = None) -> int:
        """Count audit logs matching a filter."""

    @abstractmethod
    async def get_user_activity(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[AuditLog]:
        """List an actor's audit logs in a time range, newest first."""

    @abstractmethod
    async def get_operations_summary(self, start: datetime, end: datetime) -> dict[str, int]:
        """Count audit logs per operation in a time range."""

    @abstractmethod
    async def create_many(self, audit_logs: list[AuditLog]) -> list[AuditLog]:
        """Persist several audit logs at once."""

    @abstractmethod
    async def delete_older_than(self, cutoff: datetime) -> int:
        """Purge audit logs older than the cutoff (retention)."""


class EventStoreRepository(ABC):
    """Append-only persistence port for domain events."""

    @abstractmethod
    async def save_event(self, event: DomainEvent) -> None:
        """Append an event."""

    @abstractmethod
    async def get_events_by_aggregate_id(self, aggregate_id: UUID) -> list[DomainEvent]:
        """List an aggregate's events, oldest first."""

    @abstractmethod
    async def get_events_by_type(
        self, kind: EventKind, pagination: Pagination | None = None
    ) -> Page[DomainEvent]:
        """List events of one kind, oldest first."""

    @abstractmethod
    async def get_events_by_time_range(
        self, start: datetime, end: datetime
    ) -> list[DomainEvent]:
        """List events within a time range, oldest first."""

    @abstractmethod
    async def get_events_after(self, sequence: int, limit: int = 100) -> list[tuple[int, DomainEvent]]:
        """Replay events stored after a sequence number."""
