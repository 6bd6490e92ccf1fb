"""Global configuration management using pydantic-settings.

This module loads harness settings from environment variables with strict
type validation. The only setting a typical run needs is the target
deployment, read from ``CFP_BASE_URL``; everything else has a working default.
The Singleton pattern ensures consistent configuration state across the run.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class HarnessConfig(BaseSettings):
    """Centralized configuration with environment variable binding.

    Attributes:
        app_name: Application identifier for logging.
        environment: Deployment environment label.
        debug: Enable verbose tracebacks in log output.
        log_level: Minimum log level for output filtering.
        log_dir: Directory path for structured JSON log files.
        log_to_file: Write the JSON log file in addition to stderr.
        log_rotation: Log file rotation interval.
        log_retention: Log file retention period.
        base_url: Deployment under test.
        request_timeout_ms: Per-request timeout in milliseconds.
        fallback_attempts: Replacement identities tried after the first one.
        identity_password: Password used for every generated test account.
        identity_mobile: Mobile number used for every generated test account.
        identity_email_domain: Domain of generated test e-mail addresses.
        transaction_currency: Currency code sent with created transactions.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application Metadata
    app_name: str = Field(default="CFP-Contract-Harness", description="Application identifier")
    environment: Literal["development", "staging", "production", "test"] = Field(
        default="development", description="Deployment environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Minimum log level"
    )
    log_dir: Path = Field(default=Path("logs"), description="Log output directory")
    log_to_file: bool = Field(default=True, description="Enable the JSON file handler")
    log_rotation: str = Field(default="1 week", description="Log rotation interval")
    log_retention: str = Field(default="1 month", description="Log retention period")

    # Target Configuration
    base_url: str = Field(
        default="https://cfp-server.vercel.app",
        validation_alias=AliasChoices("CFP_BASE_URL", "BASE_URL", "base_url"),
        description="Base URL of the deployment under test",
    )
    request_timeout_ms: int = Field(
        default=20000, ge=1000, le=120000, description="Request timeout in milliseconds"
    )

    # Credential Bootstrap
    fallback_attempts: int = Field(
        default=1, ge=1, le=5, description="Fresh identities tried after the first sign-in fails"
    )
    identity_password: str = Field(
        default="Test@12345", min_length=1, description="Test account password"
    )
    identity_mobile: str = Field(default="999999999", description="Test account mobile number")
    identity_email_domain: str = Field(
        default="example.com", min_length=1, description="Test account e-mail domain"
    )

    # Scenario Data
    transaction_currency: str = Field(
        default="BRL", pattern=r"^[A-Z]{3}$", description="Currency of created transactions"
    )

    @field_validator("log_dir", mode="before")
    @classmethod
    def ensure_path(cls, value: str | Path) -> Path:
        """Convert string paths to Path objects."""
        return Path(value) if isinstance(value, str) else value

    @field_validator("base_url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        """Require an http(s) URL and normalize it with a trailing slash."""
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got '{value}'")
        return value if value.endswith("/") else f"{value}/"

    @property
    def request_timeout_sec(self) -> float:
        """Request timeout converted for httpx."""
        return self.request_timeout_ms / 1000


@lru_cache(maxsize=1)
def get_config() -> HarnessConfig:
    """Retrieve the singleton HarnessConfig instance.

    Returns:
        HarnessConfig: The validated configuration instance.
    """
    return HarnessConfig()
