"""Password hashing and validation utilities."""

from __future__ import annotations

import base64
import hashlib
import unicodedata

import bcrypt

from employee_api.config import get_settings
from employee_api.constants.validation import PASSWORD_MAX_LENGTH, PASSWORD_MIN_LENGTH


class PasswordService:
    """Service for password hashing and validation."""

    # Security settings
    BCRYPT_ROUNDS = 12

    def __init__(self, rounds: int | None = None) -> None:
        """Initialize the password service.

        Args:
            rounds: bcrypt cost factor (defaults to BCRYPT_ROUNDS)
        """
        self.rounds = rounds or self.BCRYPT_ROUNDS
        self._dummy_hash: str | None = None

    @staticmethod
    def _prehash(password: str) -> bytes:
        # bcrypt only reads the first 72 bytes; a digest keeps long passwords distinct
        digest = hashlib.sha256(password.encode("utf-8")).digest()
        return base64.b64encode(digest)

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password string
        """
        salt = bcrypt.gensalt(rounds=self.rounds)
        hashed = bcrypt.hashpw(self._prehash(password), salt)
        return hashed.decode("utf-8")

    def verify_password(self, password: str, hashed: str) -> bool:
        """Verify a password against a hash.

        Args:
            password: Plain text password
            hashed: Hashed password

        Returns:
            True if password matches
        """
        try:
            return bcrypt.checkpw(self._prehash(password), hashed.encode("utf-8"))
        except (ValueError, UnicodeDecodeError, UnicodeEncodeError):
            # Invalid hash format or encoding issues
            return False

    def verify_dummy(self, password: str) -> None:
        """Spend the same effort as a real verification.

        Used when no account matches so unknown usernames take as long to
        reject as wrong passwords.
        """
        if self._dummy_hash is None:
            self._dummy_hash = self.hash_password("dummy-password-for-timing")
        self.verify_password(password, self._dummy_hash)

    def validate_password_strength(self, password: str) -> tuple[bool, list[str]]:
        """Validate password meets complexity requirements.

        Letters and digits are classified by Unicode category, so
        non-ASCII characters count toward the requirements.

        Args:
            password: Password to validate

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        if not password:
            return False, ["password is required"]

        errors = []
        if len(password) < PASSWORD_MIN_LENGTH:
            errors.append(f"password must be at least {PASSWORD_MIN_LENGTH} characters long")
        if len(password) > PASSWORD_MAX_LENGTH:
            errors.append(f"password cannot exceed {PASSWORD_MAX_LENGTH} characters")

        categories = {unicodedata.category(char) for char in password}
        if "Lu" not in categories:
            errors.append("password must contain at least one uppercase letter")
        if "Ll" not in categories:
            errors.append("password must contain at least one lowercase letter")
        if not any(category.startswith("N") for category in categories):
            errors.append("password must contain at least one number")
        if not any(category[0] in ("P", "S") for category in categories):
            errors.append("password must contain at least one special character")

        return len(errors) == 0, errors


# Singleton instance
_password_service: PasswordService | None = None


def get_password_service() -> PasswordService:
    """Get the password service singleton.

    Returns:
        PasswordService instance
    """
    global _password_service
    if _password_service is None:
        _password_service = PasswordService(rounds=get_settings().bcrypt_rounds)
    return _password_service
