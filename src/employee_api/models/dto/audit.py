"""Audit log DTOs."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from employee_api.models.domain.audit_log import AuditLog
from employee_api.models.domain.events import DomainEvent


class AuditLogResponse(BaseModel):
    """Audit log response DTO."""

    id: UUID
    employee_id: UUID
    operation: str
    user_id: str
    timestamp: datetime
    old_values: dict[str, Any]
    new_values: dict[str, Any]
    changed_fields: list[str]
    summary: str
    ip_address: str
    user_agent: str | None = None

    @classmethod
    def from_domain(cls, audit_log: AuditLog) -> "AuditLogResponse":
        return cls(
            id=audit_log.id,
            employee_id=audit_log.employee_id,
            operation=audit_log.operation,
            user_id=audit_log.user_id,
            timestamp=audit_log.timestamp,
            old_values=audit_log.old_values,
            new_values=audit_log.new_values,
            changed_fields=audit_log.get_changed_fields(),
            summary=audit_log.get_change_summary(),
            ip_address=audit_log.ip_address,
            user_agent=audit_log.user_agent,
        )


class AuditLogListResponse(BaseModel):
    """Paginated audit log list."""

    items: list[AuditLogResponse]
    total: int
    page: int
    page_size: int
    has_next: bool = False
    has_prev: bool = False


class OperationsSummaryResponse(BaseModel):
    """Audit log counts per operation for a time range."""

    start: datetime
    end: datetime
    operations: dict[str, int]
    total: int


class DomainEventResponse(BaseModel):
    """Stored domain event."""

    id: UUID
    aggregate_id: UUID
    type: str
    timestamp: datetime
    version: int
    data: dict[str, Any]

    @classmethod
    def from_domain(cls, event: DomainEvent) -> "DomainEventResponse":
        return cls(
            id=event.id,
            aggregate_id=event.aggregate_id,
            type=event.type.value,
            timestamp=event.timestamp,
            version=event.version,
            data=event.data,
        )
