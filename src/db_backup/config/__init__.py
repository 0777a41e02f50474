"""Configuration management: environment/TOML loading and the config model.

Usage:
    >>> from db_backup.config import load_backup_config, BackupConfig
"""

from db_backup.config.loader import ConfigError, load_backup_config
from db_backup.config.models import BackupConfig

__all__ = ["load_backup_config", "BackupConfig", "ConfigError"]
