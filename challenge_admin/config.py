"""Configuration management with pydantic-settings and validation."""

from pydantic_settings import BaseSettings
from pydantic import field_validator


# Fields that are optional (app works without them)
OPTIONAL_FIELDS = {
    "supabase_service_role_key",
    "default_participant_password",
    "session_cookie_name",
    "identity_timeout_seconds",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    database_url: str

    # Identity provider (Supabase Auth)
    supabase_url: str
    supabase_anon_key: str

    # Admin API key, only needed to create and delete participant accounts
    supabase_service_role_key: str = ""

    # Participant accounts
    default_participant_password: str = "challenge"

    # Session handling
    session_cookie_name: str = "dashboard_session"
    identity_timeout_seconds: int = 10

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    @field_validator("database_url", mode="before")
    @classmethod
    def fix_database_url(cls, v):
        """Hosted Postgres hands out postgres:// but SQLAlchemy requires postgresql://."""
        if isinstance(v, str) and v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator("supabase_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v):
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    @field_validator("*", mode="before")
    @classmethod
    def check_not_empty(cls, v, info):
        """Validate that required environment variables are not empty."""
        if info.field_name in OPTIONAL_FIELDS:
            return v
        if v is None:
            raise ValueError("Required environment variable is not set")
        if isinstance(v, str) and v.strip() == "":
            raise ValueError("Required environment variable is empty")
        return v

    @property
    def admin_api_enabled(self) -> bool:
        """Whether participant accounts can be created and deleted."""
        return bool(self.supabase_service_role_key)


def get_settings() -> Settings:
    """Load and validate settings from environment.

    Raises:
        ValidationError: If required environment variables are missing or invalid.
    """
    return Settings()
