"""YAML configuration loader with environment variable overrides.

Configuration is resolved in layers (later layers win):

    1. Field defaults in :class:`Settings`
    2. ``config/config.yaml`` -- static values, optional
    3. ``.env`` file          -- local developer overrides
    4. Environment variables  -- set by the shell or service manager

``load_config`` hands the YAML mapping to pydantic-settings as the lowest
priority input source, so nested groups are deep-merged by the settings
machinery and cross-field validation runs exactly once, on the merged
result.  Invalid configuration is fatal: any validation failure is re-raised
as :class:`ConfigurationError` so startup stops before any file is touched.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from knowbase.config.settings import Settings
from knowbase.utils.errors import ConfigurationError


class _YamlLayeredSettings(Settings):
    """Settings whose constructor arguments rank below env and ``.env``."""

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_config(path: str | None = "config/config.yaml") -> Settings:
    """Load YAML config (if present) and merge environment overrides.

    Args:
        path: Path to the YAML configuration file.  ``None`` or a missing
            file means environment/defaults only.

    Returns:
        Fully validated :class:`Settings`.

    Raises:
        ConfigurationError: If the YAML is malformed or validation fails.
    """
    yaml_config: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if config_path.exists():
            try:
                with open(config_path, encoding="utf-8") as f:
                    yaml_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(
                    message=f"Malformed YAML in {config_path}: {exc}"
                ) from exc
            if not isinstance(yaml_config, dict):
                raise ConfigurationError(
                    message=f"Top level of {config_path} must be a mapping"
                )

    try:
        return _YamlLayeredSettings(**yaml_config)
    except ValidationError as exc:
        raise ConfigurationError(message=f"Invalid configuration: {exc}") from exc
