"""
Application configuration using pydantic-settings.
"""
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from pydantic import field_validator, ValidationInfo
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

APP_DIR_NAME = "stremio-manager"
DEFAULT_API_URL = "https://api.strem.io"
DEFAULT_APP_PASSPHRASE = "stremio-manager-v1"
RECOMMENDED_KDF_ITERATIONS = 100_000

# Define the project root directory
PROJECT_ROOT = Path(__file__).parent.parent.parent.resolve()


def get_default_data_dir() -> str:
    """Return the per-user data directory for the current platform."""
    if sys.platform == "win32":
        return os.path.join(os.environ.get("APPDATA", os.path.expanduser("~")), APP_DIR_NAME)
    if sys.platform == "darwin":
        return os.path.join(os.path.expanduser("~/Library/Application Support/"), APP_DIR_NAME)
    return os.path.join(os.path.expanduser("~/.config/"), APP_DIR_NAME)


class Settings(BaseSettings):
    """Application settings."""

    # Application
    app_name: str = "Stremio Account Manager"
    app_version: str = "0.1.0"
    environment: str = "development"

    # Local storage
    data_dir: str = get_default_data_dir()
    database_url: Optional[str] = None

    # Remote account API
    stremio_api_url: str = DEFAULT_API_URL
    api_timeout: float = 30.0
    manifest_timeout: float = 10.0

    # Health checks and update checks
    health_check_timeout: float = 5.0
    health_check_concurrency: int = 5
    update_check_concurrency: int = 1  # sequential to avoid rate limiting on addon hosts

    # Vault
    app_passphrase: str = DEFAULT_APP_PASSPHRASE
    kdf_iterations: int = RECOMMENDED_KDF_ITERATIONS

    # Import/Export
    export_version: str = "1.0.0"

    # Logging
    log_level: str = "INFO"
    log_dir: Optional[str] = None
    log_to_file: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def effective_database_url(self) -> str:
        """SQLite file inside the data directory unless DATABASE_URL is set."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{Path(self.data_dir) / 'vault.db'}"

    @property
    def effective_log_dir(self) -> Path:
        if self.log_dir:
            return Path(self.log_dir)
        return Path(self.data_dir) / "logs"

    @field_validator('stremio_api_url')
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        """Require an http(s) URL without trailing slash."""
        url = (v or "").strip()
        if not url:
            return DEFAULT_API_URL
        if not url.startswith(("http://", "https://")):
            raise ValueError("STREMIO_API_URL must start with http:// or https://")
        if url.startswith("http://") and "localhost" not in url and "127.0.0.1" not in url:
            logger.warning(
                f"STREMIO_API_URL '{url}' uses plain HTTP. "
                "Auth keys will be sent unencrypted."
            )
        return url.rstrip('/')

    @field_validator('health_check_concurrency', 'update_check_concurrency')
    @classmethod
    def validate_concurrency(cls, v: int, info: ValidationInfo) -> int:
        if v < 1:
            raise ValueError(f"{info.field_name.upper()} must be at least 1")
        return v

    @field_validator('api_timeout', 'manifest_timeout', 'health_check_timeout')
    @classmethod
    def validate_timeout(cls, v: float, info: ValidationInfo) -> float:
        if v <= 0:
            raise ValueError(f"{info.field_name.upper()} must be a positive number of seconds")
        return v

    @field_validator('kdf_iterations')
    @classmethod
    def validate_kdf_iterations(cls, v: int) -> int:
        if v < 1000:
            raise ValueError("KDF_ITERATIONS must be at least 1000")
        if v < RECOMMENDED_KDF_ITERATIONS:
            logger.warning(
                f"KDF_ITERATIONS is only {v}. "
                f"Recommend at least {RECOMMENDED_KDF_ITERATIONS} for stored credentials."
            )
        return v

    @field_validator('app_passphrase')
    @classmethod
    def validate_app_passphrase(cls, v: str) -> str:
        if not v:
            logger.warning("APP_PASSPHRASE is empty, falling back to the built-in passphrase")
            return DEFAULT_APP_PASSPHRASE
        return v

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()


settings = Settings()
