"""Settings sources for ``BackupConfig`` beyond the environment.

- ``BackupTomlSettingsSource``: the ``[backup]`` table of a TOML file
- ``AwsEnvSettingsSource``: the standard ``AWS_*`` variable names as
  fallbacks for the S3 settings
"""

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, InitSettingsSource, PydanticBaseSettingsSource

# Field -> AWS variable names, first match wins
AWS_ENV_FALLBACKS: dict[str, tuple[str, ...]] = {
    "s3_region": ("AWS_REGION",),
    "s3_endpoint": ("AWS_ENDPOINT", "AWS_ENDPOINT_URL"),
    "s3_access_key_id": ("AWS_ACCESS_KEY_ID",),
    "s3_secret_access_key": ("AWS_SECRET_ACCESS_KEY",),
}


class ConfigError(Exception):
    """Raised when the backup configuration is missing or invalid."""

    pass


def read_backup_table(config_path: Path) -> dict[str, Any]:
    """Read the ``[backup]`` table of a TOML file, keys lower-cased."""
    if not config_path.exists():
        raise ConfigError(f"Backup config not found: {config_path}")

    with open(config_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

    section = data.get("backup", {})
    if not isinstance(section, dict):
        raise ConfigError(f"[backup] in {config_path} must be a table")
    return {key.lower(): value for key, value in section.items()}


class BackupTomlSettingsSource(InitSettingsSource):
    """Settings from the ``[backup]`` table of ``model_config["toml_file"]``.

    Unknown keys are passed through so the model rejects them.
    """

    def __init__(self, settings_cls: type[BaseSettings], toml_file: Path | str | None = None):
        self.toml_file = toml_file or settings_cls.model_config.get("toml_file")
        data = read_backup_table(Path(self.toml_file)) if self.toml_file else {}
        super().__init__(settings_cls, data)


class AwsEnvSettingsSource(PydanticBaseSettingsSource):
    """``AWS_REGION``, ``AWS_ACCESS_KEY_ID`` etc. for unset S3 fields.

    Names are matched case-insensitively after ``env_prefix``, like the
    regular environment source.
    """

    def __init__(self, settings_cls: type[BaseSettings], env_prefix: str = ""):
        super().__init__(settings_cls)
        self.env_prefix = env_prefix.lower()
        self.env_vars = {key.lower(): value for key, value in os.environ.items()}

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        for name in AWS_ENV_FALLBACKS.get(field_name, ()):
            value = self.env_vars.get(f"{self.env_prefix}{name.lower()}")
            if value:
                return value, field_name, False
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for field_name, field in self.settings_cls.model_fields.items():
            value, key, _ = self.get_field_value(field, field_name)
            if value is not None:
                data[key] = value
        return data
