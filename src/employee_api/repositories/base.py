"""Base repository with common database operations."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from employee_api.exceptions import DuplicateRecordError
from employee_api.models.domain.query import Pagination, SortDirection
from employee_api.models.orm.base import Base

T = TypeVar("T", bound=Base)

logger = logging.getLogger(__name__)

# Unique columns, checked against the violated constraint's name
UNIQUE_FIELDS = ("username", "email")


def duplicate_field(error: IntegrityError) -> str:
    """Name the unique field an integrity error was raised for.

    Args:
        error: Error raised by the driver on flush

    Returns:
        "username", "email" or "id"
    """
    # asyncpg reports the constraint on the wrapped driver exception
    driver_error = getattr(error.orig, "__cause__", None)
    constraint = getattr(driver_error, "constraint_name", None) or str(error.orig)
    constraint = constraint.lower()
    for field in UNIQUE_FIELDS:
        if field in constraint:
            return field
    return "id"


def is_unique_violation(error: IntegrityError) -> bool:
    """Check whether an integrity error is a unique constraint violation."""
    # asyncpg sqlstate 23505 is unique_violation
    sqlstate = getattr(error.orig, "sqlstate", None) or getattr(error.orig, "pgcode", None)
    if sqlstate is not None:
        return sqlstate == "23505"
    return "unique" in str(error.orig).lower() or "duplicate" in str(error.orig).lower()


def order_by(column: Any, direction: SortDirection) -> Any:
    """Build an ORDER BY clause that always puts NULLs last."""
    if direction is SortDirection.DESC:
        return column.desc().nulls_last()
    return column.asc().nulls_last()


class BaseRepository(Generic[T]):
    """Base repository with common CRUD operations."""

    model: type[T]

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    async def _get_row(self, id: UUID) -> T | None:
        result = await self.session.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def _exists(self, *conditions: Any) -> bool:
        result = await self.session.execute(
            select(func.count()).select_from(self.model).where(*conditions)
        )
        return result.scalar_one() > 0

    async def _count(self, conditions: Sequence[Any]) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(self.model).where(*conditions)
        )
        return result.scalar_one()

    async def _fetch(
        self,
        conditions: Sequence[Any],
        ordering: Sequence[Any],
        pagination: Pagination,
    ) -> tuple[list[T], int]:
        """Fetch one window of rows plus the unpaginated total.

        Args:
            conditions: WHERE clauses, combined with AND
            ordering: ORDER BY clauses
            pagination: Window to fetch

        Returns:
            Tuple of (rows, total count)
        """
        total = await self._count(conditions)
        query: Select[tuple[T]] = (
            select(self.model)
            .where(*conditions)
            .order_by(*ordering)
            .offset(pagination.offset)
            .limit(pagination.limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all()), total

    @asynccontextmanager
    async def _savepoint(self, value: Any = None) -> AsyncIterator[None]:
        """Run writes inside a SAVEPOINT, translating unique violations.

        A failed write rolls back to the savepoint only, so the rest of the
        request's transaction stays usable.

        Args:
            value: Offending value reported in the error

        Raises:
            DuplicateRecordError: If a unique constraint rejected the write
        """
        try:
            async with self.session.begin_nested():
                yield
        except IntegrityError as e:
            if not is_unique_violation(e):
                raise
            field = duplicate_field(e)
            logger.info(
                "Unique constraint rejected write on %s.%s", self.model.__tablename__, field
            )
            raise DuplicateRecordError(field, value) from e

    async def _delete_row(self, id: UUID) -> bool:
        instance = await self._get_row(id)
        if instance is None:
            return False
        async with self._savepoint():
            await self.session.delete(instance)
        return True
