"""Diagnostic engine configuration."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DiagnosticSettings(BaseSettings):
    """Settings for assertion rewriting and failure reports.

    Loads from environment variables automatically:
        DIAGASSERT_LABEL_INDENT, DIAGASSERT_MAX_VALUE_LENGTH,
        DIAGASSERT_REWRITE_ENABLED, DIAGASSERT_FILE_PATTERNS
    """

    label_indent: int = Field(default=1, ge=0, description="Spaces before each report body line")
    max_value_length: int | None = Field(
        default=None, ge=8, description="Truncate formatted values longer than this many characters"
    )
    rewrite_enabled: bool = Field(default=True, description="Rewrite assert statements on load")
    file_patterns: list[str] = Field(
        default_factory=lambda: ["test_*.py", "*_test.py"],
        description="File name patterns routed through the import hook",
    )

    model_config = SettingsConfigDict(
        extra="forbid",
        env_prefix="DIAGASSERT_",
    )


@lru_cache(maxsize=1)
def get_settings() -> DiagnosticSettings:
    """Return the process-wide settings, read once from the environment."""
    return DiagnosticSettings()


def reset_settings() -> None:
    """Forget cached settings so the next `get_settings()` re-reads the environment."""
    get_settings.cache_clear()
