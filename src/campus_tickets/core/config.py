"""
Application configuration using Pydantic Settings
"""
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./campus_tickets.db"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 40
    AUTO_CREATE_TABLES: bool = True

    # Application
    APP_NAME: str = "Campus Event Ticketing"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Booking rules
    MAX_TICKETS_PER_USER: int = 4
    VENUE_BUFFER_MINUTES: int = 60
    MIN_EVENT_DURATION_MINUTES: int = 15
    MAX_EVENT_DURATION_MINUTES: int = 8 * 60
    CANCELLATION_CUTOFF_MINUTES: int = 30
    CHECK_IN_WINDOW_MINUTES: int = 25
    REFUND_RATE: Decimal = Decimal("0.90")

    # Ticket identifiers
    TICKET_CODE_PREFIX: str = "TKT-"
    TICKET_CODE_BYTES: int = 4
    TICKET_CODE_MAX_ATTEMPTS: int = 5

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    LOG_FILE: Optional[str] = None

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_DEFAULT: str = "100/minute"

    # CORS
    CORS_ORIGINS: Union[List[str], str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str) and not v.startswith('['):
            return [origin.strip() for origin in v.split(',') if origin.strip()]
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


# Global settings instance
settings = Settings()
