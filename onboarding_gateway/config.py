"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Audit store for submission attempts (no draft data is written here)
    database_url: str = "sqlite:///./onboarding_audit.db"

    # External Services
    account_api_base: str = "http://localhost:3001/api"

    # Service
    service_name: str = "onboarding-gateway"
    log_level: str = "INFO"
    trace_draft_updates: bool = False

    # HTTP Client
    http_timeout_seconds: float = 10.0

    # Attachments
    attachment_max_bytes: int = 10 * 1024 * 1024  # 10 MiB per file

    # Sessions idle this long are dropped with their drafts; 0 disables expiry
    session_ttl_seconds: float = 30 * 60


settings = Settings()
