"""Application configuration settings."""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings


class SupabaseSettings(BaseSettings):
    """Supabase configuration."""

    url: str = Field(default="")
    anon_key: str = Field(default="")
    service_role_key: str = Field(default="")

    class Config:
        env_prefix = "SUPABASE_"


class GoogleDriveSettings(BaseSettings):
    """Google Drive API configuration."""

    credentials_path: str = Field(default="./secrets/google_service_account.json")
    page_size: int = Field(default=1000, ge=1, le=1000)

    class Config:
        env_prefix = "GOOGLE_"


class DatabaseSettings(BaseSettings):
    """Local SQL database configuration (used by the SQLAlchemy gateway)."""

    url: str = Field(default="sqlite:///./data/crmsync.db")

    class Config:
        env_prefix = "DB_"


class SyncSettings(BaseSettings):
    """Reconciliation configuration."""

    chunk_size: int = Field(default=50, ge=1)
    backend: str = Field(default="supabase", pattern="^(supabase|sql)$")

    class Config:
        env_prefix = "SYNC_"


class WebSettings(BaseSettings):
    """HTTP server configuration."""

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)
    cors_allow_origin: str = Field(default="*")

    class Config:
        env_prefix = "WEB_"


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(default="INFO")
    format: str = Field(default="json")
    file_path: Optional[str] = Field(default=None)

    class Config:
        env_prefix = "LOG_"


class AppSettings(BaseSettings):
    """Main application settings."""

    name: str = Field(default="CRM Sync")
    version: str = Field(default="0.1.0")
    environment: str = Field(default="development")

    # Sub-settings
    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)
    google_drive: GoogleDriveSettings = Field(default_factory=GoogleDriveSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    web: WebSettings = Field(default_factory=WebSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    class Config:
        env_prefix = "APP_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "allow"


_settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    """Get application settings, building them from the environment on first use."""
    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
