"""FleetRef configuration management.

Loads configuration from environment variables with sensible defaults.
Matching thresholds and the default conflict policy for master data imports
live here so the validator, committer, API and CLI all agree on them.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

CONFLICT_MODES = ("allow", "warn", "reject")


@dataclass
class DBConfig:
    """Database connection configuration."""

    url: str
    pool_size: int = 10
    pool_max_overflow: int = 20
    pool_timeout: int = 30
    echo: bool = False  # SQL logging


@dataclass
class MatchingConfig:
    """Operator fuzzy matching and type canonicalization thresholds."""

    fuzzy_min_score: int = 70
    exact_priority_threshold: int = 100


@dataclass
class ImportConfig:
    """Master data import behaviour."""

    conflict_mode: str = "warn"  # allow, warn or reject
    default_text_color: str = "#ffffff"
    history_page_size: int = 10


@dataclass
class AppConfig:
    """Root application configuration.

    Loads from environment variables with fail-fast on missing required values.
    """

    db: DBConfig
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    matching: MatchingConfig = field(default_factory=MatchingConfig)
    imports: ImportConfig = field(default_factory=ImportConfig)

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load configuration from environment variables.

        Required environment variables:
        - DATABASE_URL: SQLAlchemy async connection string

        Optional (with defaults):
        - LOG_LEVEL: Logging verbosity (default: "INFO")
        - FUZZY_MIN_SCORE: Operator match acceptance threshold (default: 70)
        - EXACT_PRIORITY_THRESHOLD: Minimum rule priority reported as "exact" (default: 100)
        - IMPORT_CONFLICT_MODE: allow, warn or reject (default: "warn")

        Raises:
            KeyError: If required environment variables are missing
            ValueError: If IMPORT_CONFLICT_MODE is not a known mode
        """
        database_url = os.environ.get("DATABASE_URL")
        if not database_url:
            raise KeyError(
                "DATABASE_URL environment variable is required. "
                "Example: sqlite+aiosqlite:///./fleetref.db"
            )

        conflict_mode = os.getenv("IMPORT_CONFLICT_MODE", "warn").lower()
        if conflict_mode not in CONFLICT_MODES:
            raise ValueError(
                f"IMPORT_CONFLICT_MODE must be one of {', '.join(CONFLICT_MODES)}, "
                f"got '{conflict_mode}'"
            )

        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
            db=DBConfig(
                url=database_url,
                pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
                pool_max_overflow=int(os.getenv("DB_POOL_MAX_OVERFLOW", "20")),
                pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", "30")),
                echo=os.getenv("DB_ECHO", "false").lower() == "true",
            ),
            matching=MatchingConfig(
                fuzzy_min_score=int(os.getenv("FUZZY_MIN_SCORE", "70")),
                exact_priority_threshold=int(
                    os.getenv("EXACT_PRIORITY_THRESHOLD", "100")
                ),
            ),
            imports=ImportConfig(
                conflict_mode=conflict_mode,
                default_text_color=os.getenv("DEFAULT_TEXT_COLOR", "#ffffff"),
                history_page_size=int(os.getenv("IMPORT_HISTORY_PAGE_SIZE", "10")),
            ),
        )

    @property
    def config_root(self) -> Path:
        """Root directory for configuration files (aircraft type mapping YAML)."""
        return Path(__file__).parent.parent / "config"

    @property
    def type_mappings_path(self) -> Path:
        """Path to aircraft_type_mappings.yaml (rule table defaults)."""
        return self.config_root / "aircraft_type_mappings.yaml"


# Singleton instance (lazy-loaded)
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or create singleton AppConfig instance from environment.

    Returns:
        AppConfig: Application configuration

    Raises:
        KeyError: If required environment variables are missing
    """
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() re-reads the environment."""
    global _config
    _config = None
