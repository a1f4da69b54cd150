"""User repository."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, select, update

from employee_api.exceptions import UserNotFoundError
from employee_api.models.domain.query import (
    Page,
    Pagination,
    SortDirection,
    UserFilter,
    UserSort,
    UserSortField,
)
from employee_api.models.domain.user import User
from employee_api.models.orm.user import UserORM
from employee_api.repositories.base import BaseRepository, order_by
from employee_api.repositories.ports import UserRepository
from employee_api.utils.validation import escape_like_wildcards

SORT_COLUMNS: dict[UserSortField, Any] = {
    UserSortField.ID: UserORM.id,
    UserSortField.USERNAME: func.lower(UserORM.username),
    UserSortField.EMAIL: UserORM.email,
    UserSortField.ROLE: UserORM.role,
    UserSortField.IS_ACTIVE: UserORM.is_active,
    UserSortField.CREATED_AT: UserORM.created_at,
    UserSortField.LAST_LOGIN: UserORM.last_login,
}


def to_domain(row: UserORM) -> User:
    return User.model_validate(row)


def to_columns(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "password_hash": user.password_hash,
        "role": user.role.value,
        "is_active": user.is_active,
        "last_login": user.last_login,
        "created_at": user.created_at,
        "updated_at": user.updated_at,
    }


def build_conditions(filter: UserFilter | None) -> list[Any]:
    if filter is None:
        return []
    conditions: list[Any] = []
    if filter.role:
        conditions.append(UserORM.role == filter.role.value)
    if filter.is_active is not None:
        conditions.append(UserORM.is_active == filter.is_active)
    if filter.created_after:
        conditions.append(UserORM.created_at >= filter.created_after)
    if filter.created_before:
        conditions.append(UserORM.created_at <= filter.created_before)
    if filter.search:
        pattern = f"%{escape_like_wildcards(filter.search)}%"
        conditions.append(
            or_(
                UserORM.username.ilike(pattern, escape="\\"),
                UserORM.email.ilike(pattern, escape="\\"),
            )
        )
    return conditions


class SqlUserRepository(BaseRepository[UserORM], UserRepository):
    """Repository for API user operations."""

    model = UserORM

    async def create(self, user: User) -> User:
        row = UserORM(**to_columns(user))
        async with self._savepoint(user.username):
            self.session.add(row)
        return user.model_copy(deep=True)

    async def get_by_id(self, user_id: UUID) -> User | None:
        row = await self._get_row(user_id)
        return to_domain(row) if row else None

    async def update(self, user: User) -> User:
        """Overwrite a user's row.

        Raises:
            UserNotFoundError: If the user does not exist
            DuplicateRecordError: If the username or email is taken
        """
        row = await self._get_row(user.id)
        if row is None:
            raise UserNotFoundError(user.id)
        async with self._savepoint(user.username):
            for key, value in to_columns(user).items():
                setattr(row, key, value)
        return user.model_copy(deep=True)

    async def delete(self, user_id: UUID) -> bool:
        return await self._delete_row(user_id)

    async def find_by_username(self, username: str) -> User | None:
        result = await self.session.execute(
            select(UserORM).where(func.lower(UserORM.username) == username.lower())
        )
        row = result.scalar_one_or_none()
        return to_domain(row) if row else None

    async def find_by_email(self, email: str) -> User | None:
        result = await self.session.execute(
            select(UserORM).where(func.lower(UserORM.email) == email.lower())
        )
        row = result.scalar_one_or_none()
        return to_domain(row) if row else None

    async def list(
        self,
        filter: UserFilter | None = None,
        sort: UserSort | None = None,
        pagination: Pagination | None = None,
    ) -> Page[User]:
        sort = sort or UserSort()
        pagination = pagination or Pagination()
        ordering = [
            order_by(SORT_COLUMNS[sort.field], sort.direction),
            order_by(UserORM.id, SortDirection.ASC),
        ]
        rows, total = await self._fetch(build_conditions(filter), ordering, pagination)
        return Page.build([to_domain(row) for row in rows], total, pagination)

    async def count(self, filter: UserFilter | None = None) -> int:
        return await self._count(build_conditions(filter))

    async def exists_by_id(self, user_id: UUID) -> bool:
        return await self._exists(UserORM.id == user_id)

    async def exists_by_username(self, username: str, exclude_id: UUID | None = None) -> bool:
        conditions = [func.lower(UserORM.username) == username.lower()]
        if exclude_id is not None:
            conditions.append(UserORM.id != exclude_id)
        return await self._exists(*conditions)

    async def exists_by_email(self, email: str, exclude_id: UUID | None = None) -> bool:
        conditions = [func.lower(UserORM.email) == email.lower()]
        if exclude_id is not None:
            conditions.append(UserORM.id != exclude_id)
        return await self._exists(*conditions)

    async def update_last_login(self, user_id: UUID, at: datetime) -> None:
        """Update the login timestamp only.

        Args:
            user_id: User UUID
            at: Login time
        """
        async with self._savepoint():
            await self.session.execute(
                update(UserORM).where(UserORM.id == user_id).values(last_login=at)
            )

    async def get_inactive_users(self, since: datetime) -> list[User]:
        result = await self.session.execute(
            select(UserORM)
            .where(or_(UserORM.last_login.is_(None), UserORM.last_login < since))
            .order_by(func.lower(UserORM.username))
        )
        return [to_domain(row) for row in result.scalars().all()]

    async def create_many(self, users: list[User]) -> list[User]:
        rows = [UserORM(**to_columns(user)) for user in users]
        async with self._savepoint():
            self.session.add_all(rows)
        return [user.model_copy(deep=True) for user in users]
