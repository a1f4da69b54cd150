"""Repository package.

Ports are defined in :mod:`employee_api.repositories.ports`; SQLAlchemy
adapters back them with PostgreSQL and :mod:`employee_api.repositories.memory`
keeps everything in process.
"""

from employee_api.repositories.audit_repository import SqlAuditLogRepository
from employee_api.repositories.employee_repository import SqlEmployeeRepository
from employee_api.repositories.event_store_repository import SqlEventStore
from employee_api.repositories.memory import (
    InMemoryAuditLogRepository,
    InMemoryEmployeeRepository,
    InMemoryEventStore,
    InMemoryUserRepository,
)
from employee_api.repositories.user_repository import SqlUserRepository

__all__ = [
    "SqlEmployeeRepository",
    "SqlUserRepository",
    "SqlAuditLogRepository",
    "SqlEventStore",
    "InMemoryEmployeeRepository",
    "InMemoryUserRepository",
    "InMemoryAuditLogRepository",
    "InMemoryEventStore",
]
