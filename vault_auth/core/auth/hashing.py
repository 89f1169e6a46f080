"""
Password hashing utilities using bcrypt for secure password storage.
Rounds are configurable so tests can hash quickly.
"""

from passlib.context import CryptContext
import logging

logger = logging.getLogger(__name__)

DEFAULT_BCRYPT_ROUNDS = 12


class PasswordHasher:
    """One-way password hashing with constant-time verification."""

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS):
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds
        )
        # Verified against when the user does not exist so both login failure
        # paths do the same amount of work.
        self._dummy_hash = self.pwd_context.hash("vault-auth-dummy-password")

    def hash_password(self, password: str) -> str:
        """
        Hash a plain text password using bcrypt.

        Args:
            password: Plain text password to hash

        Returns:
            Hashed password string

        Raises:
            ValueError: If password is empty or None
        """
        if not password:
            raise ValueError("Password cannot be empty")

        try:
            hashed = self.pwd_context.hash(password)
            logger.debug("Password hashed successfully")
            return hashed
        except Exception as e:
            logger.error(f"Password hashing failed: {e}")
            raise

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a plain text password against its hash.

        Args:
            plain_password: Plain text password to verify
            hashed_password: Stored hash to verify against

        Returns:
            True if password matches, False otherwise
        """
        if not plain_password or not hashed_password:
            return False

        try:
            return self.pwd_context.verify(plain_password, hashed_password)
        except (ValueError, TypeError) as e:
            logger.error(f"Password verification failed: {e}")
            return False

    def verify_dummy(self, plain_password: str) -> bool:
        """Burn one verification against a fixed hash. Always returns False."""
        self.verify_password(plain_password or "x", self._dummy_hash)
        return False
