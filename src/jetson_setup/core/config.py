"""Configuration loading."""

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError
from pydantic import ValidationError

from jetson_setup.exceptions import ConfigurationError
from jetson_setup.models.config import SetupConfig
from jetson_setup.utils.documents import merge_dicts


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path("/etc/jetson-ssd-setup/config.yaml")
CONFIG_ENV_VAR = "JETSON_SETUP_CONFIG"


class ConfigManager:
    """Builds the effective configuration from a YAML file and CLI overrides."""

    def __init__(self, config_file: Optional[Path] = None):
        """Initialize configuration manager."""
        self.explicit = config_file is not None or CONFIG_ENV_VAR in os.environ
        if config_file is None:
            config_file = Path(os.environ.get(CONFIG_ENV_VAR, str(DEFAULT_CONFIG_FILE)))
        self.config_file = Path(config_file)
        self.yaml = YAML(typ="safe")
        self.config: Optional[SetupConfig] = None

    async def load(self, overrides: Optional[Dict[str, Any]] = None) -> SetupConfig:
        """Load the config file (if any) and apply overrides on top."""
        data: Dict[str, Any] = {}

        if await asyncio.to_thread(self.config_file.exists):
            data = await self._read_yaml(self.config_file)
            logger.debug(f"Loaded config file: {self.config_file}")
        elif self.explicit:
            raise ConfigurationError(f"Config file not found: {self.config_file}")
        else:
            logger.debug(f"No config file at {self.config_file}, using defaults")

        if overrides:
            data = merge_dicts(data, overrides)

        try:
            self.config = SetupConfig(**data)
        except ValidationError as e:
            logger.error(f"Invalid configuration: {e}")
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        return self.config

    async def _read_yaml(self, file_path: Path) -> Dict[str, Any]:
        """Read and parse a YAML file."""
        try:
            content = await asyncio.to_thread(file_path.read_text)
            data = self.yaml.load(content)
        except (OSError, YAMLError) as e:
            raise ConfigurationError(f"Cannot read {file_path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"{file_path} must contain a mapping")
        return data


def build_overrides(
    device: Optional[str] = None,
    mount_point: Optional[str] = None,
    memory_optimization: Optional[bool] = None,
    log_level: Optional[str] = None,
) -> Dict[str, Any]:
    """Translate CLI arguments into a nested config override mapping."""
    overrides: Dict[str, Any] = {}
    if device is not None:
        overrides.setdefault("storage", {})["device"] = device
    if mount_point is not None:
        overrides.setdefault("storage", {})["mount_point"] = mount_point
    if memory_optimization:
        overrides.setdefault("memory", {})["enabled"] = True
    if log_level is not None:
        overrides.setdefault("logging", {})["level"] = log_level
    return overrides
