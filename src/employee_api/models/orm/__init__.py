"""SQLAlchemy ORM models package."""

from employee_api.models.orm.audit_log import AuditLogORM
from employee_api.models.orm.base import Base
from employee_api.models.orm.domain_event import DomainEventORM
from employee_api.models.orm.employee import EmployeeORM
from employee_api.models.orm.user import UserORM

__all__ = [
    "Base",
    "EmployeeORM",
    "UserORM",
    "AuditLogORM",
    "DomainEventORM",
]
