"""User aggregate."""

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from employee_api.constants.validation import (
    ONLINE_WINDOW_MINUTES,
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
    USERNAME_PATTERN,
)
from employee_api.exceptions import UserStateError, ValidationError
from employee_api.models.domain.employee import validate_email
from employee_api.models.domain.user_role import UserRole, parse_user_role
from employee_api.security.password import PasswordService, get_password_service


def validate_username(value: str | None) -> str:
    """Validate a username and return it trimmed.

    Raises:
        ValidationError: If the username breaks length or character rules
    """
    value = (value or "").strip()
    if not value:
        raise ValidationError("username is required", field="username")
    if len(value) < USERNAME_MIN_LENGTH:
        raise ValidationError(
            f"username must be at least {USERNAME_MIN_LENGTH} characters long", field="username"
        )
    if len(value) > USERNAME_MAX_LENGTH:
        raise ValidationError(
            f"username cannot exceed {USERNAME_MAX_LENGTH} characters", field="username"
        )
    if not USERNAME_PATTERN.match(value):
        raise ValidationError(
            "username can only contain letters, numbers, and underscores", field="username"
        )
    if value.startswith("_") or value.endswith("_"):
        raise ValidationError("username cannot start or end with underscore", field="username")
    return value


def coerce_role(value: Any) -> UserRole:
    """Accept a UserRole or its name."""
    if isinstance(value, UserRole):
        return value
    if isinstance(value, str):
        return parse_user_role(value)
    raise ValidationError(f"invalid user role: {value}", field="role")


def _plural(count: int) -> str:
    return "" if count == 1 else "s"


class User(BaseModel):
    """User aggregate root.

    ``password_hash`` only ever holds a bcrypt hash; plaintext passwords are
    checked for strength, hashed and discarded.
    """

    id: UUID = Field(default_factory=uuid4)
    username: str
    email: str
    password_hash: str = Field(repr=False)
    role: UserRole = UserRole.VIEWER
    is_active: bool = True
    last_login: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        """Pydantic config."""

        from_attributes = True

    @field_validator("username")
    @classmethod
    def check_username(cls, value: str) -> str:
        return validate_username(value)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return validate_email(value)

    @field_validator("role", mode="before")
    @classmethod
    def check_role(cls, value: Any) -> UserRole:
        return coerce_role(value)

    @classmethod
    def create(
        cls,
        username: str,
        email: str,
        password: str,
        role: UserRole | str = UserRole.VIEWER,
        passwords: PasswordService | None = None,
    ) -> "User":
        """Create an active user with a hashed password.

        Raises:
            ValidationError: If a field is invalid or the password is weak
        """
        passwords = passwords or get_password_service()
        username = validate_username(username)
        email = validate_email(email)
        role = coerce_role(role)

        is_valid, errors = passwords.validate_password_strength(password)
        if not is_valid:
            raise ValidationError(f"password is too weak: {errors[0]}", field="password")

        now = datetime.now(timezone.utc)
        return cls(
            id=uuid4(),
            username=username,
            email=email,
            password_hash=passwords.hash_password(password),
            role=role,
            is_active=True,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    def verify_password(self, password: str, passwords: PasswordService | None = None) -> bool:
        """Compare a password with the stored hash, ignoring account state."""
        passwords = passwords or get_password_service()
        return passwords.verify_password(password, self.password_hash)

    def authenticate(self, password: str, passwords: PasswordService | None = None) -> bool:
        """Return True only for an active account with a matching password."""
        if not self.is_active:
            return False
        return self.verify_password(password, passwords)

    def _set_password(self, new_password: str, passwords: PasswordService) -> None:
        is_valid, errors = passwords.validate_password_strength(new_password)
        if not is_valid:
            raise ValidationError(f"new password is too weak: {errors[0]}", field="password")
        self.password_hash = passwords.hash_password(new_password)
        self._touch()

    def change_password(
        self,
        current_password: str,
        new_password: str,
        passwords: PasswordService | None = None,
    ) -> None:
        """Replace the password after checking the current one.

        Raises:
            ValidationError: If the current password is wrong or the new
                one is weak
        """
        passwords = passwords or get_password_service()
        if not self.authenticate(current_password, passwords):
            raise ValidationError("current password is incorrect", field="current_password")
        self._set_password(new_password, passwords)

    def reset_password(self, new_password: str, passwords: PasswordService | None = None) -> None:
        """Replace the password without the current one (administrative)."""
        self._set_password(new_password, passwords or get_password_service())

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    def _touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)

    def update_last_login(self, at: datetime | None = None) -> None:
        now = at or datetime.now(timezone.utc)
        self.last_login = now
        self.updated_at = now

    def activate(self) -> None:
        if self.is_active:
            raise UserStateError("user is already active")
        self.is_active = True
        self._touch()

    def deactivate(self) -> None:
        if not self.is_active:
            raise UserStateError("user is already inactive")
        self.is_active = False
        self._touch()

    def update_role(self, role: UserRole | str) -> None:
        new_role = coerce_role(role)
        self.role = new_role
        self._touch()

    def update_email(self, email: str) -> None:
        new_email = validate_email(email)
        self.email = new_email
        self._touch()

    def update_username(self, username: str) -> None:
        new_username = validate_username(username)
        self.username = new_username
        self._touch()

    # -------------------------------------------------------------------------
    # Authorization
    # -------------------------------------------------------------------------

    def has_permission(self, permission: str) -> bool:
        return self.role.has_permission(permission)

    def has_any_permission(self, *permissions: str) -> bool:
        granted = self.role.permissions()
        return any(permission in granted for permission in permissions)

    def has_all_permissions(self, *permissions: str) -> bool:
        granted = self.role.permissions()
        return all(permission in granted for permission in permissions)

    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN

    def is_manager(self) -> bool:
        return self.role is UserRole.MANAGER

    def is_viewer(self) -> bool:
        return self.role is UserRole.VIEWER

    def can_access_salary(self) -> bool:
        return self.role.can_access_salary()

    def can_manage_users(self) -> bool:
        return self.role.can_manage_users()

    def can_delete_employees(self) -> bool:
        return self.role.can_delete_employees()

    def can_view_audit_logs(self) -> bool:
        return self.role.can_view_audit_logs()

    # -------------------------------------------------------------------------
    # Presentation
    # -------------------------------------------------------------------------

    def is_online(self, now: datetime | None = None) -> bool:
        """True if the last login was within the online window."""
        if self.last_login is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now - self.last_login < timedelta(minutes=ONLINE_WINDOW_MINUTES)

    def last_seen(self, now: datetime | None = None) -> str:
        """Human readable time since the last login."""
        if self.last_login is None:
            return "Never"
        now = now or datetime.now(timezone.utc)
        elapsed = now - self.last_login
        if elapsed < timedelta(minutes=1):
            return "Just now"
        if elapsed < timedelta(hours=1):
            minutes = int(elapsed.total_seconds() // 60)
            return f"{minutes} minute{_plural(minutes)} ago"
        if elapsed < timedelta(days=1):
            hours = int(elapsed.total_seconds() // 3600)
            return f"{hours} hour{_plural(hours)} ago"
        if elapsed < timedelta(days=7):
            return f"{elapsed.days} day{_plural(elapsed.days)} ago"
        return f"{self.last_login:%b} {self.last_login.day}, {self.last_login.year}"

    def account_age_days(self, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        return (now - self.created_at).days

    def snapshot(self) -> dict[str, Any]:
        """Capture audit-safe fields; the password hash is never included."""
        return {
            "id": str(self.id),
            "username": self.username,
            "email": self.email,
            "role": self.role.value,
            "is_active": self.is_active,
        }
