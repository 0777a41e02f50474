"""Settings model for backup configuration.

Field names double as environment variable names (``DATABASE_URL``,
``S3_BUCKET``, ...), optionally behind a prefix.  The S3 credentials,
region and endpoint also fall back to the standard ``AWS_*`` names.

Source precedence: init arguments, environment, ``AWS_*`` fallbacks,
TOML ``[backup]`` table, secrets directory.
"""

import shlex
from typing import Annotated, Any
from urllib.parse import urlsplit

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    EnvSettingsSource,
    NoDecode,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from db_backup.backup.keys import ensure_trailing_slash
from db_backup.config.sources import AwsEnvSettingsSource, BackupTomlSettingsSource


def database_name_from_url(database_url: str) -> str:
    """Return the database name in a connection URL's path, or ``"db"``."""
    try:
        path = urlsplit(database_url).path
    except ValueError:
        return "db"
    return path.lstrip("/") or "db"


class BackupConfig(BaseSettings):
    """Complete configuration for one backup run.

    Immutable; built once at startup and passed to each component.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        frozen=True,
        extra="forbid",
        env_ignore_empty=True,
    )

    # Source database
    database_url: str
    pg_connect_timeout: int = Field(default=120, gt=0)  # seconds to wait for reachability

    # Object storage
    s3_bucket: str
    s3_region: str = "auto"
    s3_endpoint: str | None = None
    s3_access_key_id: str
    s3_secret_access_key: SecretStr

    # Retention; an empty prefix is replaced by backups/<dbname>
    backup_prefix: str = ""
    backup_max_count: int = Field(default=30, ge=1)
    backup_list_limit: int | None = Field(default=None, gt=0)  # None = list everything

    # Dump pipeline
    pg_dump_bin: str = "pg_dump"
    pg_dump_args: Annotated[list[str], NoDecode] = Field(default_factory=list)
    compress_command: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["gzip", "-c"]
    )

    # Whole-run limit in seconds (None = no limit)
    backup_timeout: float | None = Field(default=None, gt=0)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings source precedence: init > env > AWS names > TOML > secrets."""
        env_prefix = env_settings.env_prefix if isinstance(env_settings, EnvSettingsSource) else ""
        return (
            init_settings,
            env_settings,
            AwsEnvSettingsSource(settings_cls, env_prefix=env_prefix or ""),
            BackupTomlSettingsSource(settings_cls),
            file_secret_settings,
        )

    @model_validator(mode="before")
    @classmethod
    def _default_prefix(cls, data: Any) -> Any:
        """Derive ``backups/<dbname>`` when no prefix was given."""
        if not isinstance(data, dict):
            return data
        prefix = data.get("backup_prefix")
        if isinstance(prefix, str) and prefix.strip():
            return data
        url = data.get("database_url")
        if not isinstance(url, str):
            return data
        return {**data, "backup_prefix": f"backups/{database_name_from_url(url)}"}

    @field_validator("backup_prefix")
    @classmethod
    def _trailing_slash(cls, value: str) -> str:
        # Empty only when database_url is missing, which fails on its own
        if not value:
            return value
        return ensure_trailing_slash(value.strip())

    @field_validator("s3_endpoint", "backup_list_limit", "backup_timeout", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("pg_dump_args", "compress_command", mode="before")
    @classmethod
    def _split_words(cls, value: Any) -> Any:
        """Split shell-style strings from the environment into argv words."""
        if isinstance(value, str):
            return shlex.split(value)
        return value

    @field_validator("compress_command")
    @classmethod
    def _non_empty_command(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("compress_command must name an executable")
        return value

    @property
    def database_name(self) -> str:
        """Database name taken from ``database_url``."""
        return database_name_from_url(self.database_url)
