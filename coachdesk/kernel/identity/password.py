"""
Password hashing utilities using bcrypt.
"""

from typing import Optional

import bcrypt

from coachdesk.config import get_settings


class PasswordHasher:
    """Password hashing service."""

    def __init__(self, rounds: Optional[int] = None):
        self.rounds = rounds or get_settings().bcrypt_rounds

    @staticmethod
    def _truncate_password(password: str) -> bytes:
        """
        Truncate password to 72 bytes (bcrypt limit) and encode.

        bcrypt only uses the first 72 bytes of a password; newer releases
        raise instead of truncating silently.
        """
        return password.encode("utf-8")[:72]

    def hash(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password string
        """
        pwd_bytes = self._truncate_password(password)
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(pwd_bytes, salt).decode("utf-8")

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Comparison is delegated to bcrypt.checkpw. A malformed stored hash
        counts as a mismatch.
        """
        try:
            pwd_bytes = self._truncate_password(plain_password)
            return bcrypt.checkpw(pwd_bytes, hashed_password.encode("utf-8"))
        except ValueError:
            return False

    def needs_rehash(self, hashed_password: str) -> bool:
        """True when the stored hash was produced with a different cost factor."""
        # Format: $2b$XX$... where XX is the rounds
        parts = hashed_password.split("$")
        if len(parts) < 3 or not parts[2].isdigit():
            return True
        return int(parts[2]) != self.rounds


_hasher: Optional[PasswordHasher] = None


def get_password_hasher() -> PasswordHasher:
    """Get or create the default hasher."""
    global _hasher
    if _hasher is None:
        _hasher = PasswordHasher()
    return _hasher


# Convenience functions
def hash_password(password: str) -> str:
    """Hash a password."""
    return get_password_hasher().hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password."""
    return get_password_hasher().verify(plain_password, hashed_password)
