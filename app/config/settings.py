"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.config.business_constants import (
    ATTRIBUTION_WINDOW_DAYS,
    COMMISSION_MATURATION_DAYS,
    LEDGER_CURRENCY,
    MINIMUM_WITHDRAWAL_AMOUNT,
    REFERRAL_CODE_LENGTH,
    REFERRAL_CODE_MAX_ATTEMPTS,
)
from app.config.operational_constants import (
    MATURATION_SWEEP_INTERVAL_MINUTES,
    RECONCILIATION_INTERVAL_MINUTES,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Redis (Dramatiq broker and distributed locks)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Admin alerts (Telegram)
    telegram_bot_token: str | None = None
    admin_telegram_ids: str = ""  # Comma-separated list

    # Admin HTTP API
    admin_api_token: str = ""

    # Security
    encryption_key: str | None = None

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    web_host: str = "0.0.0.0"
    web_port: int = Field(
        default=8080, ge=1, le=65535, description="Public API HTTP port"
    )
    health_check_port: int = Field(
        default=8081, ge=1, le=65535, description="Scheduler health check HTTP port"
    )

    # Ledger rules
    ledger_currency: str = LEDGER_CURRENCY
    attribution_window_days: int = Field(
        default=ATTRIBUTION_WINDOW_DAYS,
        ge=1,
        description="First-touch attribution window in days",
    )
    commission_maturation_days: int = Field(
        default=COMMISSION_MATURATION_DAYS,
        ge=1,
        description="Days before a pending commission becomes withdrawable",
    )
    minimum_withdrawal_amount: Decimal = Field(
        default=MINIMUM_WITHDRAWAL_AMOUNT,
        gt=0,
        description="Minimum withdrawal amount in ledger currency",
    )
    referral_code_length: int = Field(default=REFERRAL_CODE_LENGTH, ge=6, le=32)
    referral_code_max_attempts: int = Field(
        default=REFERRAL_CODE_MAX_ATTEMPTS, ge=1
    )

    # Background jobs
    maturation_sweep_interval_minutes: int = Field(
        default=MATURATION_SWEEP_INTERVAL_MINUTES, ge=1
    )
    reconciliation_interval_minutes: int = Field(
        default=RECONCILIATION_INTERVAL_MINUTES, ge=1
    )

    # Emergency stop
    emergency_stop_withdrawals: bool = Field(
        default=False,
        description="Emergency stop for all new withdrawal requests"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode='after')
    def validate_production(self) -> 'Settings':
        """Validate production-specific requirements."""
        if self.environment == 'production':
            if self.debug:
                raise ValueError(
                    'DEBUG must be False in production environment. '
                    'Set DEBUG=false in your .env file.'
                )

            if not self.encryption_key or len(self.encryption_key) < 32:
                raise ValueError(
                    'ENCRYPTION_KEY must be at least 32 characters in '
                    'production. Generate one with: python -c '
                    '"from cryptography.fernet import Fernet; '
                    'print(Fernet.generate_key().decode())"'
                )

            if len(self.admin_api_token) < 32:
                raise ValueError(
                    'ADMIN_API_TOKEN must be at least 32 characters in '
                    'production. Generate one with: openssl rand -hex 32'
                )

            if not self.telegram_bot_token:
                logger.warning(
                    'TELEGRAM_BOT_TOKEN is not set: clawback and invariant '
                    'alerts will only be written to the log.'
                )

        return self

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(
            ('postgresql://', 'postgresql+asyncpg://', 'sqlite+aiosqlite://')
        ):
            raise ValueError(
                'DATABASE_URL must start with postgresql://, '
                'postgresql+asyncpg:// or sqlite+aiosqlite://'
            )
        if v.startswith('postgresql://'):
            v = v.replace('postgresql://', 'postgresql+asyncpg://', 1)
        return v

    @field_validator('ledger_currency')
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Normalize ISO currency code."""
        if len(v) != 3 or not v.isalpha():
            raise ValueError(f'Invalid currency code: {v}')
        return v.upper()

    def get_admin_ids(self) -> list[int]:
        """Parse admin IDs from comma-separated string with error handling."""
        if not self.admin_telegram_ids:
            return []

        result = []
        for id_ in self.admin_telegram_ids.split(","):
            id_stripped = id_.strip()
            if not id_stripped:
                continue
            try:
                result.append(int(id_stripped))
            except ValueError:
                logger.warning(f"Invalid admin ID: {id_stripped}")
                continue
        return result


# Global settings instance
settings = Settings()
