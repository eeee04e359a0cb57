"""Application configuration using Pydantic Settings"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database (external store holding subscriptions, habits and check-ins)
    DATABASE_URL: str = "sqlite:///./data/habits.db"

    # Application
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None  # Defaults to backend/data/logs

    # API
    API_V1_PREFIX: str = "/api/v1"
    # Stored as string to avoid pydantic-settings JSON parsing; use cors_origins_list property
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:8000"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS_ORIGINS from comma-separated string"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    # VAPID (RFC 8292) - base64url encoded P-256 key pair
    VAPID_PUBLIC_KEY: Optional[str] = None  # 65-byte uncompressed point
    VAPID_PRIVATE_KEY: Optional[str] = None  # 32-byte private scalar
    VAPID_SUBJECT: str = "mailto:notifications@habitpush.local"
    VAPID_TOKEN_REFRESH_MARGIN_SECONDS: int = 3600

    @field_validator('VAPID_SUBJECT', mode='after')
    @classmethod
    def validate_vapid_subject(cls, v: str) -> str:
        """Push services require a mailto: or https: contact URI."""
        if not v.startswith(('mailto:', 'https:')):
            raise ValueError("VAPID_SUBJECT must be a mailto: or https: URI")
        return v

    @property
    def vapid_configured(self) -> bool:
        """Check if both halves of the VAPID key pair are set."""
        return bool(self.VAPID_PUBLIC_KEY and self.VAPID_PRIVATE_KEY)

    # Push delivery
    PUSH_TTL_SECONDS: int = 86400  # 24 hours
    PUSH_URGENCY: str = "normal"
    PUSH_TIMEOUT_SECONDS: float = 10.0

    @field_validator('PUSH_URGENCY', mode='after')
    @classmethod
    def validate_push_urgency(cls, v: str) -> str:
        """Validate urgency against RFC 8030 values."""
        valid_values = ['very-low', 'low', 'normal', 'high']
        if v not in valid_values:
            raise ValueError(f"PUSH_URGENCY must be one of {valid_values}")
        return v

    # Reminder job
    REMINDER_CONCURRENCY: int = 20
    REMINDER_ICON_URL: str = "/icon-192.png"
    REMINDER_URL: str = "/"

    # Optional in-process schedule (otherwise an external trigger calls the API)
    REMINDER_SCHEDULE_ENABLED: bool = False
    REMINDER_SCHEDULE_HOUR: int = 20  # UTC
    REMINDER_SCHEDULE_MINUTE: int = 0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
