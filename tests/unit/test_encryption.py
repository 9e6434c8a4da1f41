"""Unit tests for payout detail encryption."""

import json

import pytest
from cryptography.fernet import Fernet

from app.utils.encryption import EncryptionService
from app.utils.exceptions import SecurityError


class TestEncryption:
    """Tests for encryption/decryption utilities."""

    def test_payout_details_roundtrip(self, bank_details):
        """Encrypted payout details decrypt to the same JSON."""
        service = EncryptionService(Fernet.generate_key().decode())
        plaintext = json.dumps(bank_details, sort_keys=True)

        encrypted = service.encrypt(plaintext)

        assert bank_details["iban"] not in encrypted
        assert json.loads(service.decrypt(encrypted)) == bank_details

    def test_encrypt_produces_different_output(self):
        """Same input encrypted twice should produce different outputs."""
        service = EncryptionService(Fernet.generate_key().decode())

        assert service.encrypt("paypal@example.com") != service.encrypt(
            "paypal@example.com"
        )

    def test_wrong_key_cannot_decrypt(self):
        """Ciphertext from another key is rejected."""
        encrypted = EncryptionService(Fernet.generate_key().decode()).encrypt("secret")
        other = EncryptionService(Fernet.generate_key().decode())

        with pytest.raises(SecurityError):
            other.decrypt(encrypted)

    def test_seal_and_open_details(self, paypal_details):
        service = EncryptionService(Fernet.generate_key().decode())

        token = service.seal_details(paypal_details)

        assert "Example.com" not in token
        assert service.open_details(token) == paypal_details
        assert service.open_details(None) == {}

    def test_production_requires_key(self):
        with pytest.raises(SecurityError):
            EncryptionService(None, environment="production")

    def test_development_without_key_passes_through(self):
        service = EncryptionService(None, environment="development")

        assert service.enabled is False
        assert service.decrypt(service.encrypt("plain")) == "plain"
