"""Audit log router."""

from datetime import datetime, timedelta, timezone
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from employee_api.config import get_settings
from employee_api.constants.validation import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from employee_api.dependencies import get_audit_service
from employee_api.models.domain.query import (
    AuditLogFilter,
    AuditLogSort,
    AuditLogSortField,
    Pagination,
    SortDirection,
)
from employee_api.models.domain.user_role import Permission
from employee_api.models.dto.audit import (
    AuditLogListResponse,
    AuditLogResponse,
    DomainEventResponse,
    OperationsSummaryResponse,
)
from employee_api.models.dto.common import PurgeResponse
from employee_api.security.auth import CurrentUser, require_permission
from employee_api.services.audit_service import AuditService

router = APIRouter()

AuditReader = Annotated[CurrentUser, Depends(require_permission(Permission.AUDIT_READ))]
Service = Annotated[AuditService, Depends(get_audit_service)]


@router.get("", response_model=AuditLogListResponse)
async def list_audit_logs(
    current_user: AuditReader,
    service: Service,
    employee_id: UUID | None = None,
    operation: str | None = Query(default=None, max_length=50),
    user_id: str | None = Query(default=None, max_length=100),
    from_time: datetime | None = None,
    to_time: datetime | None = None,
    sort_by: AuditLogSortField = AuditLogSortField.TIMESTAMP,
    sort_order: SortDirection = SortDirection.DESC,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
) -> AuditLogListResponse:
    """List audit logs with optional filters, newest first by default."""
    page_result = await service.list_audit_logs(
        AuditLogFilter(
            employee_id=employee_id,
            operation=operation,
            user_id=user_id,
            from_time=from_time,
            to_time=to_time,
        ),
        AuditLogSort(field=sort_by, direction=sort_order),
        Pagination.of(page, page_size),
    )
    return AuditLogListResponse(
        items=[AuditLogResponse.from_domain(log) for log in page_result.items],
        total=page_result.total,
        page=page_result.page,
        page_size=page_result.page_size,
        has_next=page_result.has_next,
        has_prev=page_result.has_prev,
    )


@router.get("/summary", response_model=OperationsSummaryResponse)
async def get_operations_summary(
    current_user: AuditReader,
    service: Service,
    start: datetime | None = None,
    end: datetime | None = None,
) -> OperationsSummaryResponse:
    """Count audit logs per operation (default: last 30 days)."""
    end = end or datetime.now(timezone.utc)
    start = start or end - timedelta(days=30)
    operations = await service.get_operations_summary(start, end)
    return OperationsSummaryResponse(
        start=start,
        end=end,
        operations=operations,
        total=sum(operations.values()),
    )


@router.get("/events/{aggregate_id}", response_model=list[DomainEventResponse])
async def get_aggregate_events(
    aggregate_id: UUID,
    current_user: AuditReader,
    service: Service,
) -> list[DomainEventResponse]:
    """List the stored events of one employee, user or audit log, oldest first."""
    events = await service.get_aggregate_events(aggregate_id)
    return [DomainEventResponse.from_domain(event) for event in events]


@router.post("/purge", response_model=PurgeResponse)
async def purge_expired_audit_logs(
    current_user: Annotated[CurrentUser, Depends(require_permission(Permission.SYSTEM_ADMIN))],
    service: Service,
) -> PurgeResponse:
    """Delete audit logs older than the configured retention window."""
    retention_days = get_settings().audit_retention_days
    deleted = await service.purge_expired(retention_days)
    return PurgeResponse(deleted=deleted, retention_days=retention_days)
