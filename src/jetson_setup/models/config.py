"""Configuration models."""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="WARNING")
    file: Optional[str] = None

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()


class StorageConfig(BaseModel):
    """Target disk and mount configuration."""
    device: Optional[str] = None
    mount_point: str = Field(default="/ssd")
    filesystem: str = Field(default="ext4")
    mount_options: str = Field(default="defaults")
    fstab_path: str = Field(default="/etc/fstab")

    @field_validator("mount_point")
    @classmethod
    def validate_mount_point(cls, v: str) -> str:
        """Mount points must be absolute and are kept without a trailing slash."""
        if not v.startswith("/"):
            raise ValueError(f"Mount point must be an absolute path: {v}")
        return v.rstrip("/") or "/"


class DockerConfig(BaseModel):
    """Container engine configuration."""
    runtime_package: str = Field(default="nvidia-container")
    runtime_name: str = Field(default="nvidia")
    runtime_path: str = Field(default="nvidia-container-runtime")
    service: str = Field(default="docker.service")
    group: str = Field(default="docker")
    data_dir: str = Field(default="/var/lib/docker")
    data_subdir: str = Field(default="docker")
    daemon_config_path: str = Field(default="/etc/docker/daemon.json")


class MemoryConfig(BaseModel):
    """Optional memory optimization configuration."""
    enabled: bool = Field(default=False)
    default_target: str = Field(default="multi-user.target")
    disabled_services: List[str] = Field(
        default_factory=lambda: ["nvargus-daemon.service", "nvzramconfig.service"]
    )
    swap_size_gb: int = Field(default=16, ge=1)


class SetupConfig(BaseModel):
    """Main configuration model."""
    storage: StorageConfig = Field(default_factory=StorageConfig)
    docker: DockerConfig = Field(default_factory=DockerConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(extra="ignore")

    @property
    def docker_data_root(self) -> str:
        """Docker data root on the new mount."""
        return f"{self.storage.mount_point.rstrip('/')}/{self.docker.data_subdir}"

    @property
    def swap_file(self) -> str:
        """Swap file path on the new mount."""
        return f"{self.storage.mount_point.rstrip('/')}/{self.memory.swap_size_gb}GB.swap"
