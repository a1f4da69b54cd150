"""Employee repository."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, or_, select

from employee_api.exceptions import EmployeeNotFoundError
from employee_api.models.domain.address import Address
from employee_api.models.domain.employee import Employee
from employee_api.models.domain.query import (
    EmployeeFilter,
    EmployeeSort,
    EmployeeSortField,
    Page,
    Pagination,
    SortDirection,
)
from employee_api.models.orm.employee import EmployeeORM
from employee_api.repositories.base import BaseRepository, order_by
from employee_api.repositories.ports import EmployeeRepository
from employee_api.utils.validation import escape_like_wildcards

# Whitelist of sortable columns; NAME sorts on first then last name
SORT_COLUMNS: dict[EmployeeSortField, tuple[Any, ...]] = {
    EmployeeSortField.ID: (EmployeeORM.id,),
    EmployeeSortField.NAME: (EmployeeORM.first_name, EmployeeORM.last_name),
    EmployeeSortField.EMAIL: (EmployeeORM.email,),
    EmployeeSortField.DEPARTMENT: (EmployeeORM.department,),
    EmployeeSortField.POSITION: (EmployeeORM.position,),
    EmployeeSortField.HIRE_DATE: (EmployeeORM.hire_date,),
    EmployeeSortField.SALARY: (EmployeeORM.salary,),
    EmployeeSortField.STATUS: (EmployeeORM.status,),
    EmployeeSortField.CREATED_AT: (EmployeeORM.created_at,),
}

_ADDRESS_COLUMNS = ("street", "city", "state", "postal_code", "country")


def to_domain(row: EmployeeORM) -> Employee:
    """Rehydrate an employee from its row.

    Stored rows are trusted, so the hire date is not re-checked against
    today's date.
    """
    address = None
    if row.street is not None:
        address = Address(**{name: getattr(row, name) or "" for name in _ADDRESS_COLUMNS})
    return Employee.model_validate(
        {
            "id": row.id,
            "first_name": row.first_name,
            "last_name": row.last_name,
            "email": row.email,
            "phone": row.phone,
            "department": row.department,
            "position": row.position,
            "hire_date": row.hire_date,
            "salary": row.salary,
            "status": row.status,
            "manager_id": row.manager_id,
            "address": address,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        },
        context={"trusted": True},
    )


def to_columns(employee: Employee) -> dict[str, Any]:
    """Flatten an employee into column values."""
    address = employee.address.to_dict() if employee.address else {}
    return {
        "id": employee.id,
        "first_name": employee.first_name,
        "last_name": employee.last_name,
        "email": employee.email,
        "phone": employee.phone,
        "department": employee.department,
        "position": employee.position,
        "hire_date": employee.hire_date,
        "salary": employee.salary,
        "status": employee.status.value,
        "manager_id": employee.manager_id,
        "created_at": employee.created_at,
        "updated_at": employee.updated_at,
        **{name: address.get(name) for name in _ADDRESS_COLUMNS},
    }


def build_conditions(filter: EmployeeFilter | None) -> list[Any]:
    """Translate a filter into WHERE clauses.

    Args:
        filter: Employee filter, or None for no constraint

    Returns:
        List of SQLAlchemy conditions
    """
    if filter is None:
        return []
    conditions: list[Any] = []
    if filter.department:
        conditions.append(func.lower(EmployeeORM.department) == filter.department.lower())
    if filter.status:
        conditions.append(EmployeeORM.status == filter.status.value)
    if filter.manager_id:
        conditions.append(EmployeeORM.manager_id == filter.manager_id)
    if filter.min_salary is not None:
        conditions.append(EmployeeORM.salary >= filter.min_salary)
    if filter.max_salary is not None:
        conditions.append(EmployeeORM.salary <= filter.max_salary)
    if filter.hire_date_from:
        conditions.append(EmployeeORM.hire_date >= filter.hire_date_from)
    if filter.hire_date_to:
        conditions.append(EmployeeORM.hire_date <= filter.hire_date_to)
    if filter.search:
        # Escape LIKE wildcards to prevent SQL injection via pattern matching
        pattern = f"%{escape_like_wildcards(filter.search)}%"
        full_name = EmployeeORM.first_name + " " + EmployeeORM.last_name
        conditions.append(
            or_(
                EmployeeORM.first_name.ilike(pattern, escape="\\"),
                EmployeeORM.last_name.ilike(pattern, escape="\\"),
                EmployeeORM.email.ilike(pattern, escape="\\"),
                full_name.ilike(pattern, escape="\\"),
            )
        )
    return conditions


class SqlEmployeeRepository(BaseRepository[EmployeeORM], EmployeeRepository):
    """Repository for employee operations."""

    model = EmployeeORM

    async def create(self, employee: Employee) -> Employee:
        row = EmployeeORM(**to_columns(employee))
        async with self._savepoint(employee.email):
            self.session.add(row)
        return employee.clone()

    async def get_by_id(self, employee_id: UUID) -> Employee | None:
        row = await self._get_row(employee_id)
        return to_domain(row) if row else None

    async def update(self, employee: Employee) -> Employee:
        """Overwrite an employee's row.

        Raises:
            EmployeeNotFoundError: If the employee does not exist
            DuplicateRecordError: If the email is taken
        """
        row = await self._get_row(employee.id)
        if row is None:
            raise EmployeeNotFoundError(employee.id)
        async with self._savepoint(employee.email):
            for key, value in to_columns(employee).items():
                setattr(row, key, value)
        return employee.clone()

    async def delete(self, employee_id: UUID) -> bool:
        return await self._delete_row(employee_id)

    async def find_by_email(self, email: str) -> Employee | None:
        result = await self.session.execute(
            select(EmployeeORM).where(func.lower(EmployeeORM.email) == email.lower())
        )
        row = result.scalar_one_or_none()
        return to_domain(row) if row else None

    async def find_by_manager_id(self, manager_id: UUID) -> list[Employee]:
        result = await self.session.execute(
            select(EmployeeORM)
            .where(EmployeeORM.manager_id == manager_id)
            .order_by(func.lower(EmployeeORM.first_name), func.lower(EmployeeORM.last_name))
        )
        return [to_domain(row) for row in result.scalars().all()]

    async def list(
        self,
        filter: EmployeeFilter | None = None,
        sort: EmployeeSort | None = None,
        pagination: Pagination | None = None,
    ) -> Page[Employee]:
        """Query employees with filters, sorting and pagination.

        Args:
            filter: Field constraints
            sort: Sort field and direction (default: newest first)
            pagination: Page or cursor window

        Returns:
            One page of employees
        """
        sort = sort or EmployeeSort()
        pagination = pagination or Pagination()
        ordering = [order_by(column, sort.direction) for column in SORT_COLUMNS[sort.field]]
        # Stable order across pages
        ordering.append(order_by(EmployeeORM.id, SortDirection.ASC))
        rows, total = await self._fetch(build_conditions(filter), ordering, pagination)
        return Page.build([to_domain(row) for row in rows], total, pagination)

    async def count(self, filter: EmployeeFilter | None = None) -> int:
        return await self._count(build_conditions(filter))

    async def exists_by_id(self, employee_id: UUID) -> bool:
        return await self._exists(EmployeeORM.id == employee_id)

    async def exists_by_email(self, email: str, exclude_id: UUID | None = None) -> bool:
        conditions = [func.lower(EmployeeORM.email) == email.lower()]
        if exclude_id is not None:
            conditions.append(EmployeeORM.id != exclude_id)
        return await self._exists(*conditions)

    async def create_many(self, employees: list[Employee]) -> list[Employee]:
        rows = [EmployeeORM(**to_columns(employee)) for employee in employees]
        async with self._savepoint():
            self.session.add_all(rows)
        return [employee.clone() for employee in employees]

    async def update_many(self, employees: list[Employee]) -> list[Employee]:
        """Overwrite several rows in one savepoint.

        Raises:
            EmployeeNotFoundError: If any employee does not exist
            DuplicateRecordError: If an email is taken
        """
        ids = [employee.id for employee in employees]
        result = await self.session.execute(select(EmployeeORM).where(EmployeeORM.id.in_(ids)))
        rows = {row.id: row for row in result.scalars().all()}
        missing = [employee_id for employee_id in ids if employee_id not in rows]
        if missing:
            raise EmployeeNotFoundError(missing[0])
        async with self._savepoint():
            for employee in employees:
                row = rows[employee.id]
                for key, value in to_columns(employee).items():
                    setattr(row, key, value)
        return [employee.clone() for employee in employees]

    async def delete_many(self, employee_ids: list[UUID]) -> int:
        if not employee_ids:
            return 0
        async with self._savepoint():
            result = await self.session.execute(
                delete(EmployeeORM).where(EmployeeORM.id.in_(employee_ids))
            )
        return result.rowcount or 0
