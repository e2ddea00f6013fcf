from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings"""

    # Application basic settings
    APP_NAME: str = "Digital Auction Platform"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # PostgreSQL database settings
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_HOST: str = "127.0.0.1"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "auction-platform"

    # PgBouncer settings (set USE_PGBOUNCER=true to enable)
    USE_PGBOUNCER: bool = False
    PGBOUNCER_HOST: str = "127.0.0.1"
    PGBOUNCER_PORT: int = 6432

    # Redis settings
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str | None = None

    # JWT settings (tokens are issued by the auth service)
    SECRET_KEY: str = "your-secret-key-change-this-in-production"
    ALGORITHM: str = "HS256"

    # Fee structure
    DELIVERY_FEE_BEIRUT: Decimal = Decimal("3.00")
    DELIVERY_FEE_OUTSIDE: Decimal = Decimal("5.00")
    PLATFORM_COMMISSION_RATE: Decimal = Decimal("0.06")

    # Auction sweep settings
    SWEEP_ENABLED: bool = True
    SWEEP_INTERVAL_SECONDS: int = 60
    SWEEP_BATCH_SIZE: int = 100
    SETTLEMENT_TIMEOUT_SECONDS: float = 30.0
    SWEEP_USE_REDIS_LOCK: bool = False
    SWEEP_LOCK_TTL_SECONDS: int = 300  # Refreshed every TTL/3 while a sweep runs
    CRON_SECRET: str | None = None

    # Mail settings (Gmail SMTP requires port 465 + implicit TLS)
    EMAIL_ENABLED: bool = True
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 465
    SMTP_USE_TLS: bool = True
    SMTP_TIMEOUT_SECONDS: float = 10.0
    EMAIL_USER: str | None = None
    EMAIL_PASSWORD: str | None = None
    EMAIL_FROM: str = "Digital Auction Platform <no-reply@auction.local>"

    # CORS settings
    BACKEND_CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    @property
    def DATABASE_URL(self) -> str:
        """Generate PostgreSQL connection string (via PgBouncer if enabled)"""
        if self.USE_PGBOUNCER:
            return (
                f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
                f"@{self.PGBOUNCER_HOST}:{self.PGBOUNCER_PORT}/{self.POSTGRES_DB}"
            )
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def REDIS_URL(self) -> str:
        """Generate Redis connection string"""
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


settings = Settings()
