"""Configuration management."""
from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from commit_stream.exceptions import ConfigError

# Default caps for a single parse (1000 files per commit, 1MB of diff per file)
DEFAULT_MAX_FILES_PER_COMMIT = 1000
DEFAULT_MAX_BYTES_PER_FILE = 1024 * 1024

# Reader buffer; hunk lines longer than this are dropped as fragments
DEFAULT_BUFFER_SIZE = 64 * 1024

# Default cap for `git show` output (10MB)
DEFAULT_MAX_SHOW_BYTES = 10 * 1024 * 1024


class CommitStreamConfig(BaseSettings):
    """Configuration for commit_stream parsing and the CLI."""

    model_config = SettingsConfigDict(
        env_prefix="COMMIT_STREAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Parser caps; None disables a cap
    max_files_per_commit: int | None = Field(default=DEFAULT_MAX_FILES_PER_COMMIT, ge=0)
    max_bytes_per_file: int | None = Field(default=DEFAULT_MAX_BYTES_PER_FILE, ge=0)
    buffer_size: int = Field(default=DEFAULT_BUFFER_SIZE, ge=16)

    # Git settings
    git_binary: str = "git"
    max_show_bytes: int | None = Field(default=DEFAULT_MAX_SHOW_BYTES, ge=0)

    # Logging
    verbose: bool = False


@lru_cache
def _get_config_cached(env_file: Path | None) -> CommitStreamConfig:
    """Cached configuration lookup keyed by env file."""
    try:
        if env_file is None:
            return CommitStreamConfig()
        return CommitStreamConfig(_env_file=env_file)
    except ValidationError as e:
        raise ConfigError(f"Invalid commit_stream configuration: {e}") from e


def get_config(
    env_file: str | Path | None = None,
    clear_cache: bool = False,
) -> CommitStreamConfig:
    """Get configuration instance.

    Args:
        env_file: Optional .env file overriding the default lookup.
        clear_cache: If True, clear the cache before returning config.

    Raises:
        ConfigError: If environment values fail validation.
    """
    if clear_cache:
        _get_config_cached.cache_clear()

    return _get_config_cached(Path(env_file) if env_file is not None else None)
