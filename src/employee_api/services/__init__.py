"""Services package."""

from employee_api.services.audit_service import AuditService
from employee_api.services.employee_service import EmployeeService
from employee_api.services.event_dispatcher import EventDispatcher
from employee_api.services.user_service import UserService

__all__ = [
    "AuditService",
    "EmployeeService",
    "EventDispatcher",
    "UserService",
]
