"""
Encryption of payout details at rest.

Withdrawal rows store PayPal e-mails, Wise accounts and bank details as a
Fernet token over their canonical JSON. Only the admin payout view ever
decrypts them.
"""

import json
from typing import Any

from cryptography.fernet import Fernet, InvalidToken
from loguru import logger

from app.utils.exceptions import SecurityError


class EncryptionService:
    """
    Fernet (AES-128-CBC + HMAC) encryption for payout details.

    Without a key, outside production, values pass through unencrypted so
    local setups work; production refuses to start without a valid key.
    """

    def __init__(
        self, encryption_key: str | None = None, environment: str = "production"
    ) -> None:
        """
        Initialize encryption service.

        Args:
            encryption_key: URL-safe base64 Fernet key
            environment: Deployment environment

        Raises:
            SecurityError: Missing or invalid key in production
        """
        self.environment = environment
        self.fernet: Fernet | None = None

        if encryption_key:
            try:
                self.fernet = Fernet(encryption_key.encode())
            except (ValueError, TypeError) as e:
                logger.error(f"Invalid encryption key: {e}")
                if self.is_production:
                    raise SecurityError(
                        "Invalid ENCRYPTION_KEY in production"
                    ) from e
        elif self.is_production:
            raise SecurityError(
                "ENCRYPTION_KEY is required in production. "
                "Generate one with EncryptionService.generate_key()"
            )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def enabled(self) -> bool:
        return self.fernet is not None

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a string.

        Args:
            plaintext: Text to encrypt

        Returns:
            Fernet token, or the plaintext when disabled outside production
        """
        if self.fernet is None:
            if self.is_production:
                raise SecurityError("Refusing to store payout details unencrypted")
            logger.warning("Encryption disabled - storing plaintext (DEV ONLY)")
            return plaintext

        return self.fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, token: str) -> str:
        """
        Decrypt a Fernet token.

        Args:
            token: Value produced by ``encrypt``

        Returns:
            Plaintext

        Raises:
            SecurityError: Token tampered with or made with another key
        """
        if self.fernet is None:
            if self.is_production:
                raise SecurityError("Cannot decrypt payout details without a key")
            return token

        try:
            return self.fernet.decrypt(token.encode()).decode()
        except InvalidToken as e:
            logger.error("Payout details failed to decrypt")
            raise SecurityError("Decryption failed: invalid token or key") from e

    def seal_details(self, details: dict[str, Any]) -> str:
        """Encrypt payout details as canonical JSON."""
        return self.encrypt(json.dumps(details, sort_keys=True))

    def open_details(self, token: str | None) -> dict[str, Any]:
        """Decrypt payout details sealed by ``seal_details``."""
        if not token:
            return {}
        return json.loads(self.decrypt(token))

    @staticmethod
    def generate_key() -> str:
        """
        Generate a new Fernet key.

        Returns:
            URL-safe base64 key for ENCRYPTION_KEY
        """
        return Fernet.generate_key().decode()


_encryption_service: EncryptionService | None = None


def get_encryption_service() -> EncryptionService:
    """Process-wide encryption service, configured from settings."""
    global _encryption_service

    if _encryption_service is None:
        from app.config.settings import settings

        _encryption_service = EncryptionService(
            settings.encryption_key, settings.environment
        )

    return _encryption_service
