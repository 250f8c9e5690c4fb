"""Application configuration using Pydantic v2 Settings.

Centralized configuration that loads from environment variables
and provides type-safe access throughout the application.
"""

import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings have sensible defaults and can be overridden via
    environment variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    data_dir: Path = Field(
        default=Path("./userfiles"),
        description="Root directory holding per-user guides and templates.",
    )
    temp_dir: Path = Field(
        default=Path("./tmp/assemble"),
        description="Directory for intermediate and final PDF files.",
    )

    # PDF conversion
    converter_binary_path: str = Field(
        default="/usr/local/bin/wkhtmltopdf",
        description="Path to the wkhtmltopdf executable.",
    )
    converter_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Maximum time a single HTML to PDF conversion may take.",
    )
    render_concurrency: int = Field(
        default=4,
        ge=1,
        description="Maximum number of converter processes running at once.",
    )
    header_spacing: int = Field(default=5, description="Space between header and content (mm).")
    footer_spacing: int = Field(default=5, description="Space between footer and content (mm).")
    margin_top: int = Field(default=20, description="Top page margin (mm).")
    stylesheet_path: Path | None = Field(
        default=None,
        description="Optional CSS file linked from every rendered text document.",
    )
    public_base_url: str | None = Field(
        default=None,
        description="Base URL the converter uses to reach the header-footer endpoint. "
        "Defaults to the incoming request's base URL.",
    )

    # User resolution
    user_service_url: str | None = Field(
        default=None,
        description="Endpoint returning the current user for forwarded cookies.",
    )
    user_service_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for the user service call.",
    )
    default_username: str = Field(
        default="dev",
        description="Username used when no user service is configured.",
    )

    # Downloads
    default_download_name: str = Field(
        default="Assembled Document",
        description="Download filename used when the request carries no guide title.",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR.",
    )
    log_dir: Path = Field(
        default=Path("./logs"),
        description="Directory for info.log and error.log.",
    )

    @field_validator("temp_dir")
    @classmethod
    def ensure_temp_dir(cls, v: Path) -> Path:
        """Ensure the temporary directory exists."""
        v.mkdir(parents=True, exist_ok=True)
        return v.resolve()

    @field_validator("data_dir")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        return v.resolve()

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        return v.upper()

    def configure_logging(self) -> None:
        """Configure structlog on top of the stdlib logging setup."""
        import structlog

        level = getattr(logging, self.log_level, logging.INFO)

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        logger.setLevel(level)


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global Settings instance.

    Returns:
        The singleton Settings instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
        _settings.configure_logging()
    return _settings
