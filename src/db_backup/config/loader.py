"""Configuration loading from the environment and an optional TOML file."""

from pathlib import Path

from pydantic import ValidationError
from pydantic_settings import SettingsConfigDict, SettingsError

from db_backup.config.models import BackupConfig
from db_backup.config.sources import ConfigError

__all__ = ["ConfigError", "load_backup_config"]


def _settings_class(config_path: Path | None) -> type[BackupConfig]:
    """Return ``BackupConfig`` bound to ``config_path`` as its TOML file."""
    if config_path is None:
        return BackupConfig

    class FileBackedConfig(BackupConfig):
        model_config = SettingsConfigDict(toml_file=config_path)

    return FileBackedConfig


def _format_validation_error(error: ValidationError) -> str:
    lines = ["Invalid backup configuration:"]
    for item in error.errors():
        field = ".".join(str(part) for part in item["loc"]).upper() or "(config)"
        lines.append(f"  - {field}: {item['msg']}")
    return "\n".join(lines)


def load_backup_config(
    config_path: Path | None = None,
    env_prefix: str = "",
) -> BackupConfig:
    """Load backup configuration.

    Values from the environment override values from the TOML file.

    Args:
        config_path: Optional TOML file with a ``[backup]`` table whose
            keys are field names (``database_url``, ``s3_bucket``, ...).
        env_prefix: Prefix for environment variable lookup (e.g. ``APP_``
            reads ``APP_DATABASE_URL``).  Unprefixed variables are ignored
            when a prefix is given.

    Returns:
        Validated, immutable ``BackupConfig``.

    Raises:
        ConfigError: If the file is unreadable or a value is missing/invalid.

    Example:
        >>> config = load_backup_config(env_prefix="APP_")
        >>> config.backup_prefix
        'backups/mydb/'
    """
    settings_cls = _settings_class(Path(config_path) if config_path is not None else None)
    try:
        return settings_cls(_env_prefix=env_prefix)
    except ValidationError as e:
        raise ConfigError(_format_validation_error(e)) from e
    except SettingsError as e:
        raise ConfigError(f"Invalid backup configuration: {e}") from e
