"""Audit log repository."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select

from employee_api.models.domain.audit_log import AuditLog
from employee_api.models.domain.query import (
    AuditLogFilter,
    AuditLogSort,
    AuditLogSortField,
    Page,
    Pagination,
    SortDirection,
)
from employee_api.models.orm.audit_log import AuditLogORM
from employee_api.repositories.base import BaseRepository, order_by
from employee_api.repositories.ports import AuditLogRepository

SORT_COLUMNS: dict[AuditLogSortField, Any] = {
    AuditLogSortField.ID: AuditLogORM.id,
    AuditLogSortField.TIMESTAMP: AuditLogORM.timestamp,
    AuditLogSortField.OPERATION: AuditLogORM.operation,
    AuditLogSortField.USER_ID: AuditLogORM.user_id,
    AuditLogSortField.EMPLOYEE_ID: AuditLogORM.employee_id,
}


def to_domain(row: AuditLogORM) -> AuditLog:
    return AuditLog.model_validate(row)


def to_row(audit_log: AuditLog) -> AuditLogORM:
    return AuditLogORM(
        id=audit_log.id,
        employee_id=audit_log.employee_id,
        operation=audit_log.operation,
        user_id=audit_log.user_id,
        timestamp=audit_log.timestamp,
        old_values=audit_log.old_values,
        new_values=audit_log.new_values,
        ip_address=audit_log.ip_address,
        user_agent=audit_log.user_agent,
    )


def build_conditions(filter: AuditLogFilter | None) -> list[Any]:
    if filter is None:
        return []
    conditions: list[Any] = []
    if filter.employee_id:
        conditions.append(AuditLogORM.employee_id == filter.employee_id)
    if filter.operation:
        conditions.append(AuditLogORM.operation == filter.operation)
    if filter.operations:
        conditions.append(AuditLogORM.operation.in_(filter.operations))
    if filter.user_id:
        conditions.append(AuditLogORM.user_id == filter.user_id)
    if filter.ip_address:
        conditions.append(AuditLogORM.ip_address == filter.ip_address)
    if filter.from_time:
        conditions.append(AuditLogORM.timestamp >= filter.from_time)
    if filter.to_time:
        conditions.append(AuditLogORM.timestamp <= filter.to_time)
    return conditions


class SqlAuditLogRepository(BaseRepository[AuditLogORM], AuditLogRepository):
    """Repository for audit log operations. Rows are never updated."""

    model = AuditLogORM

    async def create(self, audit_log: AuditLog) -> AuditLog:
        async with self._savepoint(audit_log.id):
            self.session.add(to_row(audit_log))
        return audit_log

    async def get_by_id(self, audit_log_id: UUID) -> AuditLog | None:
        row = await self._get_row(audit_log_id)
        return to_domain(row) if row else None

    async def list(
        self,
        filter: AuditLogFilter | None = None,
        sort: AuditLogSort | None = None,
        pagination: Pagination | None = None,
    ) -> Page[AuditLog]:
        sort = sort or AuditLogSort()
        pagination = pagination or Pagination()
        ordering = [
            order_by(SORT_COLUMNS[sort.field], sort.direction),
            order_by(AuditLogORM.id, SortDirection.ASC),
        ]
        rows, total = await self._fetch(build_conditions(filter), ordering, pagination)
        return Page.build([to_domain(row) for row in rows], total, pagination)

    async def count(self, filter: AuditLogFilter | None = None) -> int:
        return await self._count(build_conditions(filter))

    async def get_user_activity(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[AuditLog]:
        """Get an actor's audit logs in a time range.

        Args:
            user_id: Actor ID as recorded in the log
            start: Range start (inclusive)
            end: Range end (inclusive)

        Returns:
            Audit logs, newest first
        """
        conditions = build_conditions(
            AuditLogFilter(user_id=user_id, from_time=start, to_time=end)
        )
        result = await self.session.execute(
            select(AuditLogORM).where(*conditions).order_by(AuditLogORM.timestamp.desc())
        )
        return [to_domain(row) for row in result.scalars().all()]

    async def get_operations_summary(self, start: datetime, end: datetime) -> dict[str, int]:
        result = await self.session.execute(
            select(AuditLogORM.operation, func.count())
            .where(AuditLogORM.timestamp >= start, AuditLogORM.timestamp <= end)
            .group_by(AuditLogORM.operation)
        )
        return {operation: count for operation, count in result.all()}

    async def create_many(self, audit_logs: list[AuditLog]) -> list[AuditLog]:
        async with self._savepoint():
            self.session.add_all([to_row(audit_log) for audit_log in audit_logs])
        return list(audit_logs)

    async def delete_older_than(self, cutoff: datetime) -> int:
        async with self._savepoint():
            result = await self.session.execute(
                delete(AuditLogORM).where(AuditLogORM.timestamp < cutoff)
            )
        return result.rowcount or 0
