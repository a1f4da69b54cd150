"""Centralized dependency injection factories for FastAPI.

Services are built per request on the request's database session. Tests
swap them for in-memory wiring through ``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from employee_api.database import get_db
from employee_api.models.domain.events import EventKind
from employee_api.repositories.audit_repository import SqlAuditLogRepository
from employee_api.repositories.employee_repository import SqlEmployeeRepository
from employee_api.repositories.event_store_repository import SqlEventStore
from employee_api.repositories.user_repository import SqlUserRepository
from employee_api.security.password import get_password_service
from employee_api.services.audit_service import AuditContext, AuditService
from employee_api.services.employee_service import EmployeeService
from employee_api.services.event_dispatcher import EventDispatcher, LoggingEventHandler
from employee_api.services.user_service import UserService
from employee_api.utils.request_context import get_client_ip, get_user_agent


@lru_cache
def get_event_dispatcher() -> EventDispatcher:
    """Get the process-wide dispatcher with the logging handler registered."""
    dispatcher = EventDispatcher()
    handler = LoggingEventHandler()
    for kind in EventKind:
        dispatcher.register_handler(kind, handler)
    return dispatcher


def get_audit_context(request: Request) -> AuditContext:
    """Extract the client IP and user agent recorded with audit logs."""
    return AuditContext(ip_address=get_client_ip(request), user_agent=get_user_agent(request))


# =============================================================================
# Service Factories
# =============================================================================


def get_audit_service(db: AsyncSession = Depends(get_db)) -> AuditService:
    """Get AuditService instance."""
    return AuditService(SqlAuditLogRepository(db), SqlEventStore(db), get_event_dispatcher())


def get_employee_service(
    db: AsyncSession = Depends(get_db),
    audit_service: AuditService = Depends(get_audit_service),
) -> EmployeeService:
    """Get EmployeeService instance."""
    return EmployeeService(SqlEmployeeRepository(db), audit_service)


def get_user_service(
    db: AsyncSession = Depends(get_db),
    audit_service: AuditService = Depends(get_audit_service),
) -> UserService:
    """Get UserService instance."""
    return UserService(
        SqlUserRepository(db),
        audit_service.audit_repo,
        audit_service,
        get_password_service(),
    )
