"""
Configuration management for coachtrack.

Uses Pydantic Settings to load configuration from environment variables
with sensible defaults for development. Production database URLs should
be set via environment variables or a .env file.

Usage:
    from coachtrack.config import settings
    print(settings.database_url)
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables can be set directly or via a .env file
    in the project root directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # ==========================================================================
    # Database Configuration
    # ==========================================================================

    database_url: str = Field(
        default="sqlite:///coachtrack.db",
        description="SQLAlchemy connection URL for the coach/school/attendance store",
    )

    # Pool settings (ignored for SQLite URLs)
    db_pool_size: int = Field(
        default=5,
        description="Number of connections to keep in the pool",
    )
    db_max_overflow: int = Field(
        default=10,
        description="Max additional connections beyond pool_size",
    )

    # ==========================================================================
    # Suppression (dismissed pair) Configuration
    # ==========================================================================

    suppression_path: str = Field(
        default="~/.coachtrack/suppressions.json",
        description="Local JSON file holding the operator's dismissed duplicate pairs",
    )

    # ==========================================================================
    # Coach Matching Configuration
    # ==========================================================================

    # See coaches/merge.py - a keeper first name this short is treated as an initial
    coach_initial_max_length: int = Field(
        default=2,
        description="First names of at most this length are replaced by a longer name on merge",
    )
    max_compare_length: int = Field(
        default=128,
        description="Strings are truncated to this length before computing edit distance",
    )

    # ==========================================================================
    # School Matching Configuration
    # ==========================================================================

    school_fuzzy_similarity: float = Field(
        default=0.90,
        description="Normalized name similarity at which two schools are flagged as duplicates",
    )
    school_containment_ratio: float = Field(
        default=0.6,
        description="Shorter/longer length ratio required for same-state name containment",
    )
    school_suggestion_threshold: float = Field(
        default=70.0,
        description="Minimum rapidfuzz score (0-100) for manual-resolution suggestions",
    )
    school_suggestion_limit: int = Field(
        default=3,
        description="Number of school suggestions offered for an unmatched import row",
    )

    # ==========================================================================
    # Logging Configuration
    # ==========================================================================

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_format: str = Field(
        default="%(asctime)s %(levelname)s %(name)s: %(message)s",
        description="logging.basicConfig format string used by the scripts",
    )

    # ==========================================================================
    # Validators
    # ==========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return upper_v

    @field_validator("coach_initial_max_length", "max_compare_length", "school_suggestion_limit")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures we only load settings once,
    which is important because loading from .env can be slow.
    """
    return Settings()


# Convenience alias for importing
settings = get_settings()
