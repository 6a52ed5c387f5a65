"""
Unit tests for authentication service.
Tests password hashing, token generation and username/email normalization.
"""
from backend.services import auth_service


class TestPasswordHashing:
    """Tests for password hashing and verification."""

    def test_hash_password(self):
        """Test password hashing produces different hashes for same password."""
        password = "test_password_123"
        hash1 = auth_service.hash_password(password)
        hash2 = auth_service.hash_password(password)

        # Hashes should be different (due to salt)
        assert hash1 != hash2
        # But both should verify correctly
        assert auth_service.verify_password(password, hash1)
        assert auth_service.verify_password(password, hash2)

    def test_verify_password_incorrect(self):
        """Test password verification with incorrect password."""
        password_hash = auth_service.hash_password("test_password_123")

        assert auth_service.verify_password("wrong_password", password_hash) is False

    def test_verify_password_empty(self):
        """Test password verification with empty password."""
        password_hash = auth_service.hash_password("test_password_123")

        assert auth_service.verify_password("", password_hash) is False

    def test_verify_password_malformed_hash(self):
        """A stored value that is not a bcrypt hash never matches."""
        assert auth_service.verify_password("test_password_123", "not-a-hash") is False
        assert auth_service.verify_password("test_password_123", None) is False


class TestTokens:
    """Tests for opaque token generation."""

    def test_generate_token(self):
        token1 = auth_service.generate_token()
        token2 = auth_service.generate_token()

        assert token1 != token2
        assert isinstance(token1, str)
        assert len(token1) > 20

    def test_token_is_url_safe(self):
        token = auth_service.generate_token()
        assert all(c.isalnum() or c in "-_" for c in token)


class TestNormalization:
    """Tests for email normalization and reserved usernames."""

    def test_normalize_email(self):
        assert auth_service.normalize_email("Test@Example.COM") == "test@example.com"
        assert auth_service.normalize_email("  Test@Example.COM  ") == "test@example.com"

    def test_reserved_usernames(self):
        assert auth_service.is_reserved_username("Admin") is True
        assert auth_service.is_reserved_username(" devwars ") is True
        assert auth_service.is_reserved_username("player1") is False
