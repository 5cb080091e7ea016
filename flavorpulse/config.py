"""
FlavorPulse Configuration Module
================================

Centralized configuration management using environment variables.
Supports both .env files and system environment variables.

Environment Variables:
    FLAVORPULSE_DATA_DIR: Directory holding the raw dump and artifacts (default: data)
    FLAVORPULSE_PACING_DELAY: Seconds to wait after each LLM call (default: 0.5)
    FLAVORPULSE_BODY_CHAR_BUDGET: Review body chars sent to the LLM (default: 500)
    FLAVORPULSE_PRODUCT_NAME: Product line named in the prompt

    LLM_PROVIDER: openai | anthropic (default: auto-detect from keys)
    LLM_MODEL: Model override (default: provider default)
    LLM_TEMPERATURE: Sampling temperature (default: 0.3)
    OPENAI_API_KEY / ANTHROPIC_API_KEY: Provider credentials

    DATABASE_HOST: PostgreSQL host (default: localhost)
    DATABASE_PORT: PostgreSQL port (default: 5432)
    DATABASE_NAME: Database name (default: postgres)
    DATABASE_USER: Database user (default: postgres)
    DATABASE_PASSWORD: Database password (required by the sync stage)

    LOG_LEVEL / LOG_JSON / LOG_FILE: Logging options
"""

import os
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv


PROJECT_ROOT = Path(__file__).parent.parent

# Load environment variables from .env file if present
env_path = PROJECT_ROOT / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    """
    Get environment variable with optional default and required validation.

    Args:
        key: Environment variable name
        default: Default value if not set
        required: If True, raises ValueError when not set

    Returns:
        Environment variable value or default

    Raises:
        ValueError: If required=True and variable is not set
    """
    value = os.getenv(key, default)
    if required and value is None:
        raise ValueError(f"Required environment variable '{key}' is not set")
    return value


def get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be an integer, got: {value}")


def get_env_float(key: str, default: float) -> float:
    """Get environment variable as float."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be a float, got: {value}")


def get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as boolean."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


@dataclass
class PathsConfig:
    """Well-known locations of the raw dump and the two intermediate artifacts."""

    data_dir: Path = field(
        default_factory=lambda: Path(get_env("FLAVORPULSE_DATA_DIR", str(PROJECT_ROOT / "data")))
    )

    @property
    def raw_reviews_path(self) -> Path:
        return self.data_dir / "amazon-reviews.txt"

    @property
    def reviews_artifact_path(self) -> Path:
        return self.data_dir / "amazon-reviews.json"

    @property
    def results_artifact_path(self) -> Path:
        return self.data_dir / "sentiment-results.json"


@dataclass
class LLMConfig:
    """Judgment service configuration."""

    provider: Optional[str] = field(default_factory=lambda: get_env("LLM_PROVIDER"))
    model: Optional[str] = field(default_factory=lambda: get_env("LLM_MODEL"))
    temperature: float = field(default_factory=lambda: get_env_float("LLM_TEMPERATURE", 0.3))

    # Courtesy delay between per-flavor calls (seconds)
    pacing_delay: float = field(default_factory=lambda: get_env_float("FLAVORPULSE_PACING_DELAY", 0.5))

    # Each review body is cut to this many chars in the prompt
    body_char_budget: int = field(default_factory=lambda: get_env_int("FLAVORPULSE_BODY_CHAR_BUDGET", 500))

    product_name: str = field(
        default_factory=lambda: get_env("FLAVORPULSE_PRODUCT_NAME", "Waterloo sparkling water")
    )

    def __post_init__(self):
        """Validate configuration."""
        if self.provider and self.provider not in ("openai", "anthropic"):
            raise ValueError(f"LLM_PROVIDER must be 'openai' or 'anthropic', got: {self.provider}")
        if self.pacing_delay < 0:
            raise ValueError("pacing_delay cannot be negative")
        if self.body_char_budget <= 0:
            raise ValueError("body_char_budget must be positive")


@dataclass
class DatabaseConfig:
    """PostgreSQL database configuration."""

    host: str = field(default_factory=lambda: get_env("DATABASE_HOST", "localhost"))
    port: int = field(default_factory=lambda: get_env_int("DATABASE_PORT", 5432))
    name: str = field(default_factory=lambda: get_env("DATABASE_NAME", "postgres"))
    user: str = field(default_factory=lambda: get_env("DATABASE_USER", "postgres"))
    password: str = field(default_factory=lambda: get_env("DATABASE_PASSWORD", required=True))

    # Connection pool settings
    pool_min_size: int = field(default_factory=lambda: get_env_int("DATABASE_POOL_MIN", 1))
    pool_max_size: int = field(default_factory=lambda: get_env_int("DATABASE_POOL_MAX", 4))

    connect_timeout: int = field(default_factory=lambda: get_env_int("DATABASE_CONNECT_TIMEOUT", 10))

    # SSL mode: disable, allow, prefer, require, verify-ca, verify-full
    ssl_mode: str = field(default_factory=lambda: get_env("DATABASE_SSL_MODE", "prefer"))

    @property
    def connection_dict(self) -> dict:
        """Connection parameters as dictionary for psycopg2."""
        return {
            "host": self.host,
            "port": self.port,
            "dbname": self.name,
            "user": self.user,
            "password": self.password,
            "sslmode": self.ssl_mode,
            "connect_timeout": self.connect_timeout,
        }

    def __post_init__(self):
        """Validate configuration."""
        if not self.password:
            raise ValueError("DATABASE_PASSWORD is required")
        if self.pool_min_size > self.pool_max_size:
            raise ValueError("pool_min_size cannot exceed pool_max_size")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: get_env("LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(default_factory=lambda: get_env("LOG_FILE"))

    # Structured logging
    json_logs: bool = field(default_factory=lambda: get_env_bool("LOG_JSON", False))


@dataclass
class Settings:
    """
    Main application settings container.

    The database section is built on first access: only the sync stage
    needs credentials, so parse/analyze runs never fail on a missing password.
    """

    paths: PathsConfig = field(default_factory=PathsConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    app_name: str = "flavorpulse"
    app_version: str = "1.0.0"

    _database: Optional[DatabaseConfig] = field(default=None, repr=False)

    @property
    def database(self) -> DatabaseConfig:
        if self._database is None:
            self._database = DatabaseConfig()
        return self._database


def load_settings() -> Settings:
    """
    Load and validate application settings.

    Raises:
        ValueError: If configuration is invalid
    """
    return Settings()


# Global settings instance (lazy-loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings():
    """Drop the cached settings so the next access re-reads the environment."""
    global _settings
    _settings = None
