"""Event store repository."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select

from employee_api.models.domain.events import DomainEvent, EventKind
from employee_api.models.domain.query import Page, Pagination
from employee_api.models.orm.domain_event import DomainEventORM
from employee_api.repositories.base import BaseRepository
from employee_api.repositories.ports import EventStoreRepository


def to_domain(row: DomainEventORM) -> DomainEvent:
    return DomainEvent.from_record(
        id=row.id,
        aggregate_id=row.aggregate_id,
        event_type=row.type,
        data=row.data,
        timestamp=row.timestamp,
        version=row.version,
    )


class SqlEventStore(BaseRepository[DomainEventORM], EventStoreRepository):
    """Append-only store of domain events, ordered by sequence number."""

    model = DomainEventORM

    async def save_event(self, event: DomainEvent) -> None:
        row = DomainEventORM(
            id=event.id,
            aggregate_id=event.aggregate_id,
            type=event.type.value,
            data=event.data,
            timestamp=event.timestamp,
            version=event.version,
        )
        async with self._savepoint(event.id):
            self.session.add(row)

    async def get_events_by_aggregate_id(self, aggregate_id: UUID) -> list[DomainEvent]:
        result = await self.session.execute(
            select(DomainEventORM)
            .where(DomainEventORM.aggregate_id == aggregate_id)
            .order_by(DomainEventORM.sequence)
        )
        return [to_domain(row) for row in result.scalars().all()]

    async def get_events_by_type(
        self, kind: EventKind, pagination: Pagination | None = None
    ) -> Page[DomainEvent]:
        pagination = pagination or Pagination()
        total = await self._count([DomainEventORM.type == kind.value])
        result = await self.session.execute(
            select(DomainEventORM)
            .where(DomainEventORM.type == kind.value)
            .order_by(DomainEventORM.sequence)
            .offset(pagination.offset)
            .limit(pagination.limit)
        )
        return Page.build([to_domain(row) for row in result.scalars().all()], total, pagination)

    async def get_events_by_time_range(
        self, start: datetime, end: datetime
    ) -> list[DomainEvent]:
        result = await self.session.execute(
            select(DomainEventORM)
            .where(DomainEventORM.timestamp >= start, DomainEventORM.timestamp <= end)
            .order_by(DomainEventORM.sequence)
        )
        return [to_domain(row) for row in result.scalars().all()]

    async def get_events_after(self, sequence: int, limit: int = 100) -> list[tuple[int, DomainEvent]]:
        """Replay events stored after a sequence number.

        Args:
            sequence: Last sequence number already processed (0 for all)
            limit: Maximum events to return

        Returns:
            (sequence, event) pairs in append order
        """
        result = await self.session.execute(
            select(DomainEventORM)
            .where(DomainEventORM.sequence > sequence)
            .order_by(DomainEventORM.sequence)
            .limit(limit)
        )
        return [(row.sequence, to_domain(row)) for row in result.scalars().all()]

