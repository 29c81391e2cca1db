"""Configuration for versionsift using pydantic-settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from versionsift.models import ExecutionOptions


class RulesSettings(BaseSettings):
    """Settings for assembling the rule registry."""

    model_config = SettingsConfigDict(
        env_prefix="RULES_",
    )

    rules_file: Path | None = Field(
        default=None,
        description="YAML or JSON file with additional rule definitions",
    )

    include_builtin: bool = Field(
        default=True,
        description="Register the built-in Python version rules before the rules file",
    )


class ExecutionSettings(BaseSettings):
    """Settings for rule execution."""

    model_config = SettingsConfigDict(
        env_prefix="EXECUTION_",
    )

    stop_on_first_match: bool = Field(
        default=False,
        description="Stop at the first accepted result for each file",
    )

    max_results: int = Field(
        default=0,
        ge=0,
        description="Maximum results per file (0 = unlimited)",
    )

    min_confidence: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Discard results below this confidence",
    )

    tags: list[str] = Field(
        default_factory=list,
        description="Only run rules carrying at least one of these tags",
    )

    def to_options(self) -> ExecutionOptions:
        """Convert to per-call execution options."""
        return ExecutionOptions(
            stop_on_first_match=self.stop_on_first_match,
            max_results=self.max_results,
            min_confidence=self.min_confidence,
            tags=list(self.tags),
        )


class ScanSettings(BaseSettings):
    """Settings for scanning a local directory tree."""

    model_config = SettingsConfigDict(
        env_prefix="SCAN_",
    )

    workers: int = Field(
        default=4,
        ge=1,
        description="Number of files processed concurrently",
    )

    timeout: float | None = Field(
        default=None,
        gt=0,
        description="Seconds after which remaining rule evaluation is cancelled",
    )

    ignore_patterns: list[str] = Field(
        default_factory=list,
        description="Glob patterns of files to skip",
    )

    max_file_size: int = Field(
        default=1024 * 1024,
        ge=1,
        description="Files larger than this many bytes are not read",
    )


class AppSettings(BaseSettings):
    """Global settings for the whole application."""

    model_config = SettingsConfigDict(
        env_prefix="VERSIONSIFT_",
    )

    rules: RulesSettings = Field(default_factory=RulesSettings)
    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)
    scan: ScanSettings = Field(default_factory=ScanSettings)


# Global settings instance that can be accessed throughout the application
_settings: AppSettings | None = None


def get_settings() -> AppSettings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings


def set_settings(settings: AppSettings) -> None:
    """Set the global settings instance."""
    global _settings
    _settings = settings
