from cryptography.fernet import Fernet
from pydantic import field_validator
from pydantic_settings import BaseSettings
from typing import Dict, List, Optional
from dotenv import load_dotenv
from functools import lru_cache

# Load environment variables
load_dotenv()

# Ordered Threads Graph API versions tried when no override is configured.
# The empty tag targets the unversioned (app default) endpoint.
DEFAULT_THREADS_API_VERSIONS = ["v1.0", ""]
APP_DEFAULT_VERSION_TOKENS = {"app-default", "default", "none"}

class Settings(BaseSettings):
    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    ALLOWED_ORIGINS: str = "*"
    WORKERS: int = 4

    # Bluesky defaults (used when a request carries no override)
    BLUESKY_IDENTIFIER: str = ""
    BLUESKY_APP_PASSWORD: str = ""
    BLUESKY_SERVICE_URL: str = "https://bsky.social"

    # Threads defaults
    THREADS_USER_ID: str = ""
    THREADS_ACCESS_TOKEN: str = ""

    # Threads OAuth app
    THREADS_APP_ID: str = ""
    THREADS_APP_SECRET: str = ""
    THREADS_REDIRECT_URI: str = ""
    THREADS_API_VERSION: str = ""

    # Optional Fernet key for the OAuth result cookie
    RESULT_COOKIE_KEY: Optional[str] = None

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_FILE: str = "social_relay.log"

    @field_validator(
        "BLUESKY_IDENTIFIER", "BLUESKY_APP_PASSWORD", "THREADS_USER_ID",
        "THREADS_ACCESS_TOKEN", "THREADS_APP_ID", "THREADS_APP_SECRET",
        "THREADS_REDIRECT_URI", "THREADS_API_VERSION",
    )
    @classmethod
    def strip_value(cls, value: str) -> str:
        return (value or "").strip()

    @field_validator("RESULT_COOKIE_KEY")
    @classmethod
    def validate_result_cookie_key(cls, value: Optional[str]) -> Optional[str]:
        """Blank means no encryption; anything else must be a usable Fernet key."""
        value = (value or "").strip()
        if not value:
            return None
        try:
            Fernet(value.encode())
        except ValueError as e:
            raise ValueError("RESULT_COOKIE_KEY must be 32 url-safe base64-encoded bytes") from e
        return value

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, value: str) -> str:
        if value not in ["development", "production", "testing"]:
            raise ValueError("Invalid environment")
        return value

    @property
    def threads_api_versions(self) -> List[str]:
        """Version candidates for the Threads Graph API, in the order they are tried."""
        if not self.THREADS_API_VERSION:
            return list(DEFAULT_THREADS_API_VERSIONS)

        versions: List[str] = []
        for raw in self.THREADS_API_VERSION.split(","):
            version = raw.strip()
            if version.lower() in APP_DEFAULT_VERSION_TOKENS:
                version = ""
            if version not in versions:
                versions.append(version)
        return versions

    @property
    def threads_app_configured(self) -> bool:
        return bool(self.THREADS_APP_ID and self.THREADS_APP_SECRET)

    @property
    def credentials_status(self) -> Dict[str, bool]:
        """Which defaults are configured, without exposing any value."""
        return {
            "bluesky": bool(self.BLUESKY_IDENTIFIER and self.BLUESKY_APP_PASSWORD),
            "threads": bool(self.THREADS_ACCESS_TOKEN),
            "threads_oauth": self.threads_app_configured,
            "result_cookie_encryption": bool(self.RESULT_COOKIE_KEY),
        }

    @property
    def cors_origins(self) -> List[str]:
        """Get CORS origins as list."""
        if self.ENVIRONMENT == "development":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

# Create cached settings instance
@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
