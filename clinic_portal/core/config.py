"""
Configuration management for the clinic portal client.

Provides centralized, validated configuration from environment variables
with proper type checking and defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.console import Console
from rich.table import Table

AUTH_TOKEN_KEY = "authToken"


def _parse_bool(v) -> bool:
    if isinstance(v, str):
        return v.lower() in ("1", "true", "yes", "y")
    return bool(v)


class ApiConfig(BaseSettings):
    """Backend REST API configuration."""

    base_url: str = Field(default="http://localhost:5000", alias="API_URL")
    base_path: str = Field(default="/api/v1", alias="API_BASE_PATH")
    timeout_seconds: float = Field(default=30.0, alias="API_TIMEOUT_SECONDS", gt=0)

    # File standing in for the browser's persisted local storage
    auth_storage_path: str = Field(
        default="~/.clinic_portal/local_storage.json", alias="AUTH_STORAGE_PATH"
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")

    @field_validator("base_path")
    @classmethod
    def normalize_base_path(cls, v):
        v = (v or "").strip()
        if not v:
            return ""
        if not v.startswith("/"):
            v = f"/{v}"
        return v.rstrip("/")

    @property
    def root_url(self) -> str:
        """Base URL joined with the base path."""
        return f"{self.base_url}{self.base_path}"

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")


class CacheConfig(BaseSettings):
    """Response cache configuration."""

    enabled: bool = Field(default=True, alias="CACHE_ENABLED")
    default_ttl_seconds: float = Field(default=300.0, alias="CACHE_DEFAULT_TTL_SECONDS", ge=0)
    search_ttl_seconds: float = Field(default=60.0, alias="CACHE_SEARCH_TTL_SECONDS", ge=0)
    analytics_ttl_seconds: float = Field(
        default=600.0, alias="CACHE_ANALYTICS_TTL_SECONDS", ge=0
    )

    @field_validator("enabled", mode="before")
    @classmethod
    def parse_enabled(cls, v):
        return _parse_bool(v)

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")


class HookConfig(BaseSettings):
    """Query hook timing configuration."""

    debounce_seconds: float = Field(default=0.3, alias="HOOK_DEBOUNCE_SECONDS", ge=0)
    notification_poll_seconds: float = Field(
        default=30.0, alias="NOTIFICATION_POLL_SECONDS", gt=0
    )

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")


class Settings(BaseSettings):
    """Main application settings."""

    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    # Where report exports are written
    export_dir: str = Field(default="exports", alias="EXPORT_DIR")

    # Component configurations
    api: ApiConfig = Field(default_factory=ApiConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    hooks: HookConfig = Field(default_factory=HookConfig)

    @field_validator("debug", "log_json", mode="before")
    @classmethod
    def parse_flags(cls, v):
        return _parse_bool(v)

    def model_post_init(self, __context) -> None:
        # Initialize sub-configurations
        self.api = ApiConfig()
        self.cache = CacheConfig()
        self.hooks = HookConfig()

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global settings
    settings = None


def validate_required_settings() -> List[str]:
    """
    Validate that the settings needed to reach the backend are usable.

    Returns:
        List of problems, empty when the configuration is usable
    """
    problems = []
    try:
        config = get_settings()

        if not config.api.base_url.startswith(("http://", "https://")):
            problems.append(f"API_URL must be an http(s) URL, got {config.api.base_url!r}")

        if config.hooks.debounce_seconds > 2:
            problems.append("HOOK_DEBOUNCE_SECONDS above 2s makes search feel unresponsive")

        export_dir = Path(config.export_dir).expanduser()
        if export_dir.exists() and not export_dir.is_dir():
            problems.append(f"EXPORT_DIR {export_dir} exists and is not a directory")

    except Exception as e:
        problems.append(f"Configuration error: {e}")

    return problems


def print_configuration_summary(console: Optional[Console] = None) -> List[str]:
    """Print a summary of the current configuration; returns the problems found."""
    console = console or Console()
    config = get_settings()

    table = Table(title="Clinic Portal Configuration", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Environment", config.environment)
    table.add_row("Debug Mode", "✓" if config.debug else "✗")
    table.add_row("API root", config.api.root_url)
    table.add_row("Request timeout", f"{config.api.timeout_seconds:g}s")
    table.add_row("Auth storage", config.api.auth_storage_path)
    table.add_row("Cache", "enabled" if config.cache.enabled else "disabled")
    table.add_row("Default TTL", f"{config.cache.default_ttl_seconds:g}s")
    table.add_row("Search TTL", f"{config.cache.search_ttl_seconds:g}s")
    table.add_row("Analytics TTL", f"{config.cache.analytics_ttl_seconds:g}s")
    table.add_row("Search debounce", f"{config.hooks.debounce_seconds:g}s")
    table.add_row("Export directory", config.export_dir)

    console.print(table)

    problems = validate_required_settings()
    if problems:
        for problem in problems:
            console.print(f"[yellow]⚠ {problem}[/yellow]")
    else:
        console.print("[green]✓ Configuration looks usable[/green]")

    return problems
