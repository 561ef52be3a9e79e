"""Application configuration"""

from decimal import Decimal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # API
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Invoicing API"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    # WHY: SQLite keeps local development dependency-free; production points
    # this at PostgreSQL (postgresql://...) and the asyncpg driver is swapped in.
    DATABASE_URL: str = "sqlite+aiosqlite:///./invoicing.db"

    # Invoicing defaults
    # WHY: These are business defaults for South African VAT-registered
    # companies. They are supplied to the ledger by the service layer, never
    # hardcoded inside the calculations.
    INVOICE_NUMBER_PREFIX: str = "INV"
    DEFAULT_VAT_RATE: Decimal = Decimal("15.00")
    DEFAULT_CURRENCY: str = "ZAR"
    DEFAULT_PAYMENT_TERMS_DAYS: int = 30

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    @property
    def async_database_url(self) -> str:
        """Get async database URL"""
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

    @property
    def is_sqlite(self) -> bool:
        """Check whether the configured database is SQLite."""
        return self.DATABASE_URL.startswith("sqlite")


settings = Settings()
