"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.config.constants import ABSOLUTE_MAX_LEVEL, NETWORK_ABSOLUTE_MAX_DEPTH


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Redis (for dashboard cache and Dramatiq)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str = "logs/ledger.log"

    # Commission schedule
    commission_max_level: int = Field(
        default=ABSOLUTE_MAX_LEVEL,
        ge=1,
        le=ABSOLUTE_MAX_LEVEL,
        description="Deepest upline level that earns commission",
    )
    commission_level1_base: int = Field(
        default=75_000, description="Level 1 base commission"
    )
    commission_level1_bonus: int = Field(
        default=12_500, description="Level 1 bonus commission"
    )
    commission_level_n_fixed: int = Field(
        default=12_500, description="Fixed commission for levels 2..max"
    )
    commission_required_product_amount: int = Field(
        default=500_000,
        description="Exact product price that qualifies a purchase",
    )

    # Dashboard cache
    dashboard_cache_ttl_seconds: int = Field(
        default=300, ge=0, description="TTL for read-only dashboard caches"
    )

    # Downline traversal
    network_max_depth: int = Field(
        default=NETWORK_ABSOLUTE_MAX_DEPTH,
        ge=1,
        le=NETWORK_ABSOLUTE_MAX_DEPTH,
    )

    # External affiliate platform (commission mirroring)
    affiliate_platform_enabled: bool = False
    affiliate_platform_url: str | None = None
    affiliate_platform_user: str = ""
    affiliate_platform_password: str = ""
    affiliate_platform_timeout: float = Field(default=10.0, gt=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode='after')
    def validate_affiliate_platform(self) -> 'Settings':
        """Mirroring needs a platform URL."""
        if self.affiliate_platform_enabled and not self.affiliate_platform_url:
            logger.warning(
                "AFFILIATE_PLATFORM_ENABLED is set without "
                "AFFILIATE_PLATFORM_URL, mirroring disabled"
            )
            self.affiliate_platform_enabled = False
        return self

    @field_validator(
        'commission_level1_base',
        'commission_level1_bonus',
        'commission_level_n_fixed',
        'commission_required_product_amount',
    )
    @classmethod
    def validate_positive_amount(cls, v: int) -> int:
        """Schedule amounts must be positive integers."""
        if v <= 0:
            raise ValueError('Commission schedule amounts must be positive')
        return v

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(('postgresql://', 'postgresql+asyncpg://')):
            raise ValueError(
                'DATABASE_URL must start with postgresql:// or postgresql+asyncpg://'
            )
        return v

    @property
    def async_database_url(self) -> str:
        """Database URL with the asyncpg driver."""
        if self.database_url.startswith('postgresql://'):
            return self.database_url.replace(
                'postgresql://', 'postgresql+asyncpg://', 1
            )
        return self.database_url


# Global settings instance
settings = Settings()
