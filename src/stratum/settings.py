"""
Package-level defaults, overridable through STRATUM_* environment variables.

These only supply defaults for collectors when the caller does not pass a
value explicitly:

- STRATUM_ENV_PREFIX: prefix EnvCollector strips from variable names
- STRATUM_ENV_DELIMITER: nesting delimiter EnvCollector splits names on
- STRATUM_YAML_KEEP_ORDER: whether YAML collectors preserve key order
- STRATUM_FILE_ENCODING: encoding used to read YAML files
"""

from __future__ import annotations

import pydantic as _pydantic
import pydantic_settings as _pydantic_settings


class Settings(_pydantic_settings.BaseSettings):
    """Defaults for stratum's collectors."""

    model_config = _pydantic_settings.SettingsConfigDict(
        env_prefix="STRATUM_",
        extra="ignore",
    )

    env_prefix: str = _pydantic.Field(
        default="",
        description="Prefix an environment variable must have to be collected",
    )

    env_delimiter: str = _pydantic.Field(
        default="_",
        min_length=1,
        description="Separator between nesting levels in environment variable names",
    )

    yaml_keep_order: bool = _pydantic.Field(
        default=True,
        description="Preserve document key order for YAML collectors",
    )

    file_encoding: str = _pydantic.Field(
        default="utf-8",
        description="Text encoding of configuration files",
    )


def get_settings() -> Settings:
    """Load settings from the current environment."""
    return Settings()
