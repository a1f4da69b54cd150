"""User roles and their permission sets."""

from enum import StrEnum

from employee_api.exceptions import ValidationError


class Permission:
    """Permission codes granted through roles."""

    EMPLOYEE_READ = "employee:read"
    EMPLOYEE_WRITE = "employee:write"
    EMPLOYEE_DELETE = "employee:delete"
    USER_READ = "user:read"
    USER_WRITE = "user:write"
    USER_DELETE = "user:delete"
    AUDIT_READ = "audit:read"
    SYSTEM_ADMIN = "system:admin"


class UserRole(StrEnum):
    """User role."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    VIEWER = "VIEWER"

    @property
    def display_name(self) -> str:
        """Human readable role name."""
        return self.value.title()

    def permissions(self) -> frozenset[str]:
        """Return the permissions granted to this role."""
        return role_permissions(self)

    def has_permission(self, permission: str) -> bool:
        """Check whether this role grants a permission."""
        return permission in self.permissions()

    def can_access_salary(self) -> bool:
        return self in (UserRole.ADMIN, UserRole.MANAGER)

    def can_manage_users(self) -> bool:
        return self is UserRole.ADMIN

    def can_delete_employees(self) -> bool:
        return self is UserRole.ADMIN

    def can_view_audit_logs(self) -> bool:
        # Every role holds audit:read.
        return True


def role_permissions(role: UserRole) -> frozenset[str]:
    """Build the permission set for a role.

    Args:
        role: User role

    Returns:
        Frozen set of permission codes
    """
    if role is UserRole.ADMIN:
        return frozenset({
            Permission.EMPLOYEE_READ,
            Permission.EMPLOYEE_WRITE,
            Permission.EMPLOYEE_DELETE,
            Permission.USER_READ,
            Permission.USER_WRITE,
            Permission.USER_DELETE,
            Permission.AUDIT_READ,
            Permission.SYSTEM_ADMIN,
        })
    if role is UserRole.MANAGER:
        return frozenset({
            Permission.EMPLOYEE_READ,
            Permission.EMPLOYEE_WRITE,
            Permission.USER_READ,
            Permission.AUDIT_READ,
        })
    return frozenset({Permission.EMPLOYEE_READ, Permission.AUDIT_READ})


def all_roles() -> tuple[UserRole, ...]:
    """Return every user role."""
    return tuple(UserRole)


def parse_user_role(value: str) -> UserRole:
    """Parse a role name case-insensitively.

    Raises:
        ValidationError: If the value names no role
    """
    try:
        return UserRole(value.strip().upper())
    except ValueError:
        raise ValidationError(f"invalid user role: {value}", field="role") from None
