"""Domain models package."""

from employee_api.models.domain.address import Address
from employee_api.models.domain.audit_log import AuditLog, AuditOperation
from employee_api.models.domain.employee import Employee
from employee_api.models.domain.employee_status import EmployeeStatus
from employee_api.models.domain.events import DomainEvent, EventKind
from employee_api.models.domain.user import User
from employee_api.models.domain.user_role import Permission, UserRole

__all__ = [
    "Address",
    "AuditLog",
    "AuditOperation",
    "DomainEvent",
    "Employee",
    "EmployeeStatus",
    "EventKind",
    "Permission",
    "User",
    "UserRole",
]
