"""Pydantic models for configuration and host resources."""

from jetson_setup.models.config import (
    SetupConfig,
    StorageConfig,
    DockerConfig,
    MemoryConfig,
    LoggingConfig,
)
from jetson_setup.models.fstab import FstabEntry
from jetson_setup.models.package import PackageSpec
from jetson_setup.models.swap import SwapSpec
from jetson_setup.models.state import SetupState

__all__ = [
    "SetupConfig",
    "StorageConfig",
    "DockerConfig",
    "MemoryConfig",
    "LoggingConfig",
    "FstabEntry",
    "PackageSpec",
    "SwapSpec",
    "SetupState",
]
