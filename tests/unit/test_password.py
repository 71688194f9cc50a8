"""Unit tests for password hashing."""

from coachdesk.kernel.identity.password import (
    PasswordHasher,
    hash_password,
    verify_password,
)


class TestPasswordHasher:
    """Tests for PasswordHasher."""

    def test_hash_creates_different_hashes(self):
        """Same password should create different hashes (due to salt)."""
        hasher = PasswordHasher(rounds=4)
        hash1 = hasher.hash("TestPassword123")
        hash2 = hasher.hash("TestPassword123")

        assert hash1 != hash2
        assert hash1.startswith("$2b$04$")

    def test_verify_correct_password(self):
        hasher = PasswordHasher(rounds=4)
        hashed = hasher.hash("TestPassword123")

        assert hasher.verify("TestPassword123", hashed) is True

    def test_verify_wrong_password(self):
        hasher = PasswordHasher(rounds=4)
        hashed = hasher.hash("TestPassword123")

        assert hasher.verify("WrongPassword", hashed) is False

    def test_malformed_hash_is_a_mismatch(self):
        assert PasswordHasher(rounds=4).verify("TestPassword123", "not-a-bcrypt-hash") is False

    def test_long_passwords_are_truncated_not_rejected(self):
        hasher = PasswordHasher(rounds=4)
        password = "x" * 100
        hashed = hasher.hash(password)

        assert hasher.verify(password, hashed) is True

    def test_needs_rehash_on_cost_change(self):
        old = PasswordHasher(rounds=4).hash("TestPassword123")

        assert PasswordHasher(rounds=4).needs_rehash(old) is False
        assert PasswordHasher(rounds=5).needs_rehash(old) is True
        assert PasswordHasher(rounds=4).needs_rehash("garbage") is True

    def test_convenience_functions(self):
        """Test hash_password and verify_password functions."""
        hashed = hash_password("TestPassword123")

        assert verify_password("TestPassword123", hashed) is True
        assert verify_password("wrong", hashed) is False
