"""User service for accounts, credentials and activity."""

import logging
from datetime import datetime, timezone
from typing import Literal
from uuid import UUID

from employee_api.exceptions import (
    DuplicateRecordError,
    EmailAlreadyExistsError,
    EmployeeAPIError,
    InvalidCredentialsError,
    RepositoryError,
    UserNotActiveError,
    UserNotFoundError,
    UsernameAlreadyExistsError,
)
from employee_api.models.domain.audit_log import AuditLog, AuditOperation
from employee_api.models.domain.events import user_created, user_logged_in, user_password_changed
from employee_api.models.domain.query import (
    Page,
    Pagination,
    SortDirection,
    UserFilter,
    UserSort,
    UserSortField,
)
from employee_api.models.domain.user import User
from employee_api.models.domain.user_role import UserRole
from employee_api.models.dto.user import UserCreate, UserUpdate
from employee_api.repositories.ports import AuditLogRepository, UserRepository
from employee_api.security.password import PasswordService, get_password_service
from employee_api.services.audit_service import (
    Advisory,
    AdvisoryStage,
    AuditContext,
    AuditService,
    OperationResult,
    make_advisory,
)

logger = logging.getLogger(__name__)


class UserService:
    """Service for user account operations."""

    def __init__(
        self,
        user_repo: UserRepository,
        audit_repo: AuditLogRepository,
        audit_service: AuditService,
        password_service: PasswordService | None = None,
    ) -> None:
        """Initialize service with its collaborators."""
        self.user_repo = user_repo
        self.audit_repo = audit_repo
        self.audit_service = audit_service
        self.password_service = password_service or get_password_service()

    async def _get(self, user_id: UUID) -> User:
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def _save(self, user: User, create: bool = False) -> User:
        """Persist a user, surfacing unique violations as conflicts.

        Raises:
            UsernameAlreadyExistsError: If the username is taken
            EmailAlreadyExistsError: If the email is taken
            UserNotFoundError: If the user vanished before an update
            RepositoryError: If the write fails for any other reason
        """
        operation = "create" if create else "update"
        try:
            if create:
                return await self.user_repo.create(user)
            return await self.user_repo.update(user)
        except DuplicateRecordError as e:
            if e.field == "username":
                raise UsernameAlreadyExistsError(user.username) from e
            if e.field == "email":
                raise EmailAlreadyExistsError(user.email) from e
            raise RepositoryError(
                f"Failed to {operation} user",
                {"operation": operation, "user_id": str(user.id), **e.details},
            ) from e
        except EmployeeAPIError:
            raise
        except Exception as e:
            raise RepositoryError(
                f"Failed to {operation} user",
                {"operation": operation, "user_id": str(user.id)},
            ) from e

    async def _password_changed(
        self,
        user: User,
        changed_by: str,
        method: Literal["change", "reset"],
        context: AuditContext,
    ) -> OperationResult[User]:
        operation = (
            AuditOperation.USER_PASSWORD_CHANGE if method == "change"
            else AuditOperation.USER_PASSWORD_RESET
        )
        advisories = await self.audit_service.record(
            operation,
            user.id,
            str(user.id) if changed_by == "self" else changed_by,
            context,
            new_values={"password_changed": True, "changed_by": changed_by, "method": method},
        )
        advisories += await self.audit_service.publish(
            user_password_changed(user.id, user.username, changed_by, method)
        )
        return OperationResult(user, advisories)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def create_user(
        self,
        data: UserCreate,
        actor_id: str,
        context: AuditContext,
    ) -> OperationResult[User]:
        """Create a user account.

        Args:
            data: Username, email, password and role
            actor_id: Admin creating the account
            context: Client IP and user agent

        Returns:
            The created user and any advisories

        Raises:
            UsernameAlreadyExistsError: If the username is taken
            EmailAlreadyExistsError: If the email is taken
            ValidationError: If a field is invalid or the password is weak
        """
        if await self.user_repo.exists_by_username(data.username):
            raise UsernameAlreadyExistsError(data.username)
        if await self.user_repo.exists_by_email(data.email):
            raise EmailAlreadyExistsError(data.email)

        user = User.create(
            username=data.username,
            email=data.email,
            password=data.password,
            role=data.role,
            passwords=self.password_service,
        )
        user = await self._save(user, create=True)
        logger.info("User created: id=%s role=%s", user.id, user.role)

        advisories = await self.audit_service.record(
            AuditOperation.USER_CREATE,
            user.id,
            actor_id,
            context,
            new_values=user.snapshot(),
        )
        advisories += await self.audit_service.publish(
            user_created(user.id, user.username, user.email, user.role.value, actor_id)
        )
        return OperationResult(user, advisories)

    async def authenticate_user(
        self,
        username: str,
        password: str,
        context: AuditContext,
    ) -> OperationResult[User]:
        """Verify credentials and record the login.

        The password is always checked before the account state, and an
        unknown username costs the same bcrypt work as a known one, so the
        response does not reveal which usernames exist.

        Raises:
            InvalidCredentialsError: If the username or password is wrong
            UserNotActiveError: If the credentials are right but the account
                is deactivated
        """
        user = await self.user_repo.find_by_username(username)
        if user is None:
            self.password_service.verify_dummy(password)
            logger.info("Login failed: unknown username")
            raise InvalidCredentialsError()
        if not user.verify_password(password, self.password_service):
            logger.info("Login failed: wrong password for user %s", user.id)
            raise InvalidCredentialsError()
        if not user.is_active:
            logger.info("Login rejected: user %s is deactivated", user.id)
            raise UserNotActiveError()

        previous_login = user.last_login
        now = datetime.now(timezone.utc)
        user.update_last_login(now)

        advisories: list[Advisory] = []
        try:
            await self.user_repo.update_last_login(user.id, now)
        except Exception as e:
            advisories.append(make_advisory(AdvisoryStage.LAST_LOGIN, e))

        advisories += await self.audit_service.record(
            AuditOperation.USER_LOGIN,
            user.id,
            str(user.id),
            context,
            old_values={"last_login": previous_login.isoformat() if previous_login else None},
            new_values={"last_login": now.isoformat()},
        )
        advisories += await self.audit_service.publish(
            user_logged_in(user.id, user.username, context.ip_address, context.user_agent)
        )
        return OperationResult(user, advisories)

    async def change_password(
        self,
        user_id: UUID,
        current_password: str,
        new_password: str,
        context: AuditContext,
    ) -> OperationResult[User]:
        """Change a user's own password.

        Raises:
            UserNotFoundError: If the user does not exist
            ValidationError: If the current password is wrong or the new one
                is weak
        """
        user = await self._get(user_id)
        user.change_password(current_password, new_password, self.password_service)
        user = await self._save(user)
        logger.info("Password changed: user=%s", user.id)
        return await self._password_changed(user, "self", "change", context)

    async def reset_password(
        self,
        user_id: UUID,
        new_password: str,
        admin_id: str,
        context: AuditContext,
    ) -> OperationResult[User]:
        """Set a user's password without the current one.

        Raises:
            UserNotFoundError: If the user does not exist
            ValidationError: If the new password is weak
        """
        user = await self._get(user_id)
        user.reset_password(new_password, self.password_service)
        user = await self._save(user)
        logger.info("Password reset: user=%s by=%s", user.id, admin_id)
        return await self._password_changed(user, admin_id, "reset", context)

    async def update_user_profile(
        self,
        user_id: UUID,
        update: UserUpdate,
        actor_id: str,
        context: AuditContext,
    ) -> OperationResult[User]:
        """Apply a partial profile update.

        Raises:
            UserNotFoundError: If the user does not exist
            UsernameAlreadyExistsError: If the new username is taken
            EmailAlreadyExistsError: If the new email is taken
            ValidationError: If a value is invalid
        """
        user = await self._get(user_id)
        before = user.snapshot()
        changes = update.to_changes()

        if "username" in changes:
            user.update_username(changes["username"])
        if "email" in changes:
            user.update_email(changes["email"])
        if "role" in changes:
            user.update_role(changes["role"])

        after = user.snapshot()
        changed = [name for name in ("username", "email", "role") if before[name] != after[name]]
        if not changed:
            return OperationResult(user)

        if "username" in changed and await self.user_repo.exists_by_username(
            user.username, exclude_id=user.id
        ):
            raise UsernameAlreadyExistsError(user.username)
        if "email" in changed and await self.user_repo.exists_by_email(
            user.email, exclude_id=user.id
        ):
            raise EmailAlreadyExistsError(user.email)

        user = await self._save(user)
        logger.info("User updated: id=%s fields=%s", user.id, ",".join(changed))

        advisories = await self.audit_service.record(
            AuditOperation.USER_UPDATE,
            user.id,
            actor_id,
            context,
            old_values={name: before[name] for name in changed},
            new_values={name: after[name] for name in changed},
        )
        return OperationResult(user, advisories)

    async def _set_active(
        self,
        user_id: UUID,
        active: bool,
        admin_id: str,
        context: AuditContext,
    ) -> OperationResult[User]:
        user = await self._get(user_id)
        if active:
            user.activate()
        else:
            user.deactivate()
        user = await self._save(user)
        logger.info("User %s: id=%s by=%s", "activated" if active else "deactivated", user.id, admin_id)

        advisories = await self.audit_service.record(
            AuditOperation.USER_ACTIVATE if active else AuditOperation.USER_DEACTIVATE,
            user.id,
            admin_id,
            context,
            old_values={"is_active": not active},
            new_values={"is_active": active},
        )
        return OperationResult(user, advisories)

    async def activate_user(
        self, user_id: UUID, admin_id: str, context: AuditContext
    ) -> OperationResult[User]:
        """Re-enable a deactivated account.

        Raises:
            UserNotFoundError: If the user does not exist
            UserStateError: If the user is already active
        """
        return await self._set_active(user_id, True, admin_id, context)

    async def deactivate_user(
        self, user_id: UUID, admin_id: str, context: AuditContext
    ) -> OperationResult[User]:
        """Disable an account.

        Raises:
            UserNotFoundError: If the user does not exist
            UserStateError: If the user is already inactive
        """
        return await self._set_active(user_id, False, admin_id, context)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_user_by_id(self, user_id: UUID) -> User:
        """Get a user.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        return await self._get(user_id)

    async def list_users(
        self,
        filter: UserFilter | None = None,
        sort: UserSort | None = None,
        pagination: Pagination | None = None,
    ) -> Page[User]:
        return await self.user_repo.list(filter, sort, pagination)

    async def search_users(
        self,
        term: str,
        role: UserRole | None = None,
        is_active: bool | None = None,
        pagination: Pagination | None = None,
    ) -> Page[User]:
        """Search usernames and emails, ordered by username."""
        return await self.user_repo.list(
            UserFilter(search=term, role=role, is_active=is_active),
            UserSort(field=UserSortField.USERNAME, direction=SortDirection.ASC),
            pagination,
        )

    async def get_inactive_users(self, since: datetime) -> list[User]:
        """List users who have not logged in since the given time."""
        return await self.user_repo.get_inactive_users(since)

    async def get_user_activity(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[AuditLog]:
        """List the audit logs a user produced in a time range."""
        return await self.audit_repo.get_user_activity(user_id, start, end)
