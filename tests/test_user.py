"""User aggregate, role and password tests."""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import STRONG_PASSWORD
from employee_api.exceptions import UserStateError, ValidationError
from employee_api.models.domain.user import User, validate_username
from employee_api.models.domain.user_role import Permission, UserRole, parse_user_role


@pytest.fixture
def user(passwords) -> User:
    return User.create("jdoe", "JDoe@Example.com", STRONG_PASSWORD, "manager", passwords)


class TestPasswordService:
    """Tests for hashing and strength rules."""

    def test_hash_is_not_plaintext(self, passwords):
        hashed = passwords.hash_password(STRONG_PASSWORD)
        assert hashed != STRONG_PASSWORD
        assert hashed.startswith("$2")
        assert passwords.verify_password(STRONG_PASSWORD, hashed)
        assert not passwords.verify_password("Secret123?", hashed)

    def test_long_passwords_stay_distinct(self, passwords):
        base = "Aa1!" * 20
        hashed = passwords.hash_password(base + "x")
        assert not passwords.verify_password(base + "y", hashed)

    def test_malformed_hash_does_not_verify(self, passwords):
        assert not passwords.verify_password(STRONG_PASSWORD, "not-a-hash")

    def test_verify_dummy_caches_hash(self, passwords):
        passwords.verify_dummy("anything")
        cached = passwords._dummy_hash
        passwords.verify_dummy("anything else")
        assert passwords._dummy_hash == cached

    @pytest.mark.parametrize(
        "password,message",
        [
            ("", "password is required"),
            ("Se1!", "password must be at least 8 characters long"),
            ("secret123!", "password must contain at least one uppercase letter"),
            ("SECRET123!", "password must contain at least one lowercase letter"),
            ("SecretPass!", "password must contain at least one number"),
            ("Secret1234", "password must contain at least one special character"),
        ],
    )
    def test_weak_passwords(self, passwords, password, message):
        is_valid, errors = passwords.validate_password_strength(password)
        assert not is_valid
        assert message in errors

    @pytest.mark.parametrize("password", [STRONG_PASSWORD, "Ünïcødé9€x", "Pass-word 9"])
    def test_strong_passwords(self, passwords, password):
        assert passwords.validate_password_strength(password) == (True, [])


class TestUserRole:
    """Tests for role permissions."""

    def test_admin_has_every_permission(self):
        codes = {value for name, value in vars(Permission).items() if not name.startswith("_")}
        assert UserRole.ADMIN.permissions() == frozenset(codes)

    def test_manager_permissions(self):
        assert UserRole.MANAGER.permissions() == {
            Permission.EMPLOYEE_READ,
            Permission.EMPLOYEE_WRITE,
            Permission.USER_READ,
            Permission.AUDIT_READ,
        }

    def test_viewer_is_read_only(self):
        assert UserRole.VIEWER.has_permission(Permission.EMPLOYEE_READ)
        assert UserRole.VIEWER.has_permission(Permission.AUDIT_READ)
        assert not UserRole.VIEWER.has_permission(Permission.EMPLOYEE_WRITE)

    @pytest.mark.parametrize(
        "role,salary,users,delete",
        [
            (UserRole.ADMIN, True, True, True),
            (UserRole.MANAGER, True, False, False),
            (UserRole.VIEWER, False, False, False),
        ],
    )
    def test_capabilities(self, role, salary, users, delete):
        assert role.can_access_salary() is salary
        assert role.can_manage_users() is users
        assert role.can_delete_employees() is delete
        assert role.can_view_audit_logs()

    def test_parse_role(self):
        assert parse_user_role(" admin ") is UserRole.ADMIN
        with pytest.raises(ValidationError):
            parse_user_role("owner")


class TestUsername:
    """Tests for username rules."""

    @pytest.mark.parametrize("username", ["abc", "john_doe", "User42", "a" * 50])
    def test_valid(self, username):
        assert validate_username(username) == username

    @pytest.mark.parametrize(
        "username,message",
        [
            ("", "username is required"),
            ("ab", "username must be at least 3 characters long"),
            ("a" * 51, "username cannot exceed 50 characters"),
            ("john.doe", "username can only contain letters, numbers, and underscores"),
            ("_john", "username cannot start or end with underscore"),
            ("john_", "username cannot start or end with underscore"),
        ],
    )
    def test_invalid(self, username, message):
        with pytest.raises(ValidationError) as exc_info:
            validate_username(username)
        assert exc_info.value.message == message


class TestUser:
    """Tests for the user aggregate."""

    def test_create(self, user, passwords):
        assert user.username == "jdoe"
        assert user.email == "jdoe@example.com"
        assert user.role is UserRole.MANAGER
        assert user.is_active
        assert user.last_login is None
        assert user.verify_password(STRONG_PASSWORD, passwords)

    def test_create_rejects_weak_password(self, passwords):
        with pytest.raises(ValidationError) as exc_info:
            User.create("jdoe", "jdoe@example.com", "password", passwords=passwords)
        assert exc_info.value.field == "password"

    def test_password_hash_not_in_repr_or_snapshot(self, user):
        assert user.password_hash not in repr(user)
        assert "password_hash" not in user.snapshot()

    def test_authenticate_requires_active_account(self, user, passwords):
        assert user.authenticate(STRONG_PASSWORD, passwords)
        user.deactivate()
        assert not user.authenticate(STRONG_PASSWORD, passwords)
        assert user.verify_password(STRONG_PASSWORD, passwords)

    def test_change_password(self, user, passwords):
        user.change_password(STRONG_PASSWORD, "Better456#", passwords)
        assert user.verify_password("Better456#", passwords)
        assert not user.verify_password(STRONG_PASSWORD, passwords)

    def test_change_password_wrong_current(self, user, passwords):
        with pytest.raises(ValidationError) as exc_info:
            user.change_password("Wrong123!", "Better456#", passwords)
        assert exc_info.value.field == "current_password"

    def test_change_password_weak_new(self, user, passwords):
        with pytest.raises(ValidationError, match="new password is too weak"):
            user.change_password(STRONG_PASSWORD, "weak", passwords)
        assert user.verify_password(STRONG_PASSWORD, passwords)

    def test_change_password_inactive_user(self, user, passwords):
        user.deactivate()
        with pytest.raises(ValidationError, match="current password is incorrect"):
            user.change_password(STRONG_PASSWORD, "Better456#", passwords)

    def test_reset_password(self, user, passwords):
        user.reset_password("Better456#", passwords)
        assert user.verify_password("Better456#", passwords)

    def test_activation_state_errors(self, user):
        with pytest.raises(UserStateError, match="already active"):
            user.activate()
        user.deactivate()
        with pytest.raises(UserStateError, match="already inactive"):
            user.deactivate()
        user.activate()
        assert user.is_active

    def test_permissions_follow_role(self, user):
        assert user.has_permission(Permission.EMPLOYEE_WRITE)
        assert user.has_any_permission(Permission.SYSTEM_ADMIN, Permission.USER_READ)
        assert not user.has_all_permissions(Permission.USER_READ, Permission.USER_WRITE)
        user.update_role("VIEWER")
        assert user.is_viewer()
        assert not user.can_access_salary()

    def test_is_online(self, user):
        now = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
        assert not user.is_online(now)
        user.update_last_login(now - timedelta(minutes=29))
        assert user.is_online(now)
        user.update_last_login(now - timedelta(minutes=30))
        assert not user.is_online(now)

    @pytest.mark.parametrize(
        "elapsed,expected",
        [
            (timedelta(seconds=30), "Just now"),
            (timedelta(minutes=1), "1 minute ago"),
            (timedelta(minutes=45), "45 minutes ago"),
            (timedelta(hours=2), "2 hours ago"),
            (timedelta(days=1), "1 day ago"),
            (timedelta(days=6), "6 days ago"),
            (timedelta(days=30), "May 2, 2024"),
        ],
    )
    def test_last_seen(self, user, elapsed, expected):
        now = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
        user.update_last_login(now - elapsed)
        assert user.last_seen(now) == expected

    def test_last_seen_never(self, user):
        assert user.last_seen() == "Never"


class TestAccountAge:
    """Tests for account age."""

    @pytest.mark.parametrize("days", [0, 1, 90])
    def test_account_age_days(self, user, days):
        now = user.created_at + timedelta(days=days, hours=1)

        assert user.account_age_days(now=now) == days
