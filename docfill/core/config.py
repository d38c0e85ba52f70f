"""Application configuration using Pydantic v2 Settings.

Centralized configuration that loads from environment variables
and provides type-safe access throughout the application.
"""

import logging
import tempfile
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from docfill.interfaces.template import ValidationMode

logger = logging.getLogger(__name__)

VALID_STRATEGIES = ("remote", "local", "original-format")


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

    # Templates
    template_dir: Path = Field(
        default=Path("./templates"),
        description="Read-only directory holding the .docx templates.",
    )
    default_template: str = Field(
        default="CommonCarryDeclaration.docx",
        description="Template used when a request names none.",
    )

    # Scratch output
    output_dir: Path = Field(
        default=Path(tempfile.gettempdir()) / "docfill",
        description="Root for per-invocation scratch directories.",
    )
    keep_artifacts: bool = Field(
        default=False,
        description="Keep per-invocation scratch directories after conversion.",
    )

    # Rendering
    validation_mode: ValidationMode = Field(
        default=ValidationMode.LENIENT,
        description="Validation policy: 'strict' rejects incomplete records, 'lenient' fills blanks.",
    )
    target_format: str = Field(
        default="pdf",
        description="Output format requested from converters.",
    )

    # Strategy Selection
    conversion_chain: list[str] = Field(
        default_factory=lambda: list(VALID_STRATEGIES),
        description="Conversion strategies in priority order: 'remote', 'local', 'original-format'.",
    )

    # CloudConvert
    cloudconvert_api_key: str = Field(
        default="",
        description="CloudConvert API key; empty disables remote conversion.",
    )
    cloudconvert_base_url: str = Field(
        default="https://api.cloudconvert.com/v2",
        description="CloudConvert API root.",
    )
    remote_poll_interval: float = Field(
        default=1.5,
        ge=0,
        description="Seconds between CloudConvert job polls.",
    )
    remote_max_attempts: int = Field(
        default=30,
        ge=1,
        description="Maximum number of CloudConvert job polls.",
    )
    remote_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Wall-clock ceiling for the remote strategy, in seconds.",
    )

    # LibreOffice
    libreoffice_binary: str = Field(
        default="soffice",
        description="LibreOffice executable name or path.",
    )
    local_timeout: float = Field(
        default=120.0,
        gt=0,
        description="Seconds before a local conversion is killed.",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR.",
    )

    @field_validator("output_dir")
    @classmethod
    def ensure_output_dir(cls, v: Path) -> Path:
        """Ensure scratch directory exists."""
        v.mkdir(parents=True, exist_ok=True)
        return v.resolve()

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        return v.upper()

    @field_validator("validation_mode", mode="before")
    @classmethod
    def lowercase_validation_mode(cls, v):
        """Accept STRICT and Lenient spellings from the environment."""
        return v.lower() if isinstance(v, str) else v

    @field_validator("conversion_chain")
    @classmethod
    def check_conversion_chain(cls, v: list[str]) -> list[str]:
        """Reject unknown strategies and terminate the chain with pass-through."""
        unknown = [s for s in v if s not in VALID_STRATEGIES]
        if unknown:
            raise ValueError(
                f"Unknown conversion strategies: {unknown}. "
                f"Valid options: {', '.join(VALID_STRATEGIES)}"
            )
        chain = list(dict.fromkeys(v))
        if "original-format" in chain:
            chain.remove("original-format")
        return chain + ["original-format"]

    def configure_logging(self) -> None:
        """Configure global logging based on settings."""
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

        logging.basicConfig(
            format="%(message)s",
            level=level,
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
