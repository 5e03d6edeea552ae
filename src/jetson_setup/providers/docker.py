"""Docker provider: daemon configuration, runtime and data root."""

import asyncio
import json
import logging
import shutil
from pathlib import Path
from typing import Any, Dict, Optional, TYPE_CHECKING

from jetson_setup.exceptions import DaemonConfigError
from jetson_setup.providers.base import BaseProvider
from jetson_setup.utils.documents import merge_dicts, write_json_atomic
from jetson_setup.utils.systemd import run_command

if TYPE_CHECKING:
    from jetson_setup.providers.registry import ProviderRegistry
    from jetson_setup.providers.services import ServiceProvider

logger = logging.getLogger(__name__)


class DockerProvider(BaseProvider):
    """Provider for the Docker engine on the host."""

    def __init__(self):
        """Initialize docker provider."""
        self.daemon_config_path: Optional[Path] = None
        self.service = "docker.service"
        self.group = "docker"
        self.runtime_name = "nvidia"
        self.runtime_path = "nvidia-container-runtime"
        self._services: Optional["ServiceProvider"] = None

    async def initialize(self, config, registry: "ProviderRegistry") -> None:
        """Initialize provider with configuration and registry."""
        self.daemon_config_path = Path(config.docker.daemon_config_path)
        self.service = config.docker.service
        self.group = config.docker.group
        self.runtime_name = config.docker.runtime_name
        self.runtime_path = config.docker.runtime_path

        # Inject dependency explicitly
        self._services = registry.get_provider("services")

    @property
    def backup_path(self) -> Path:
        """Location of the daemon configuration backup."""
        return self.daemon_config_path.with_name(self.daemon_config_path.name + ".bak")

    async def read_daemon_config(self) -> Dict[str, Any]:
        """Read the daemon configuration; a missing or blank file reads as {}."""
        def _read() -> str:
            if not self.daemon_config_path.exists():
                return ""
            return self.daemon_config_path.read_text()

        content = await asyncio.to_thread(_read)
        if not content.strip():
            return {}

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise DaemonConfigError(f"{self.daemon_config_path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise DaemonConfigError(f"{self.daemon_config_path} must contain a JSON object")
        return data

    async def merge_daemon_config(self, updates: Dict[str, Any]) -> Dict[str, Any]:
        """Read, deep-merge and atomically rewrite the daemon configuration."""
        current = await self.read_daemon_config()
        merged = merge_dicts(current, updates)
        await asyncio.to_thread(write_json_atomic, self.daemon_config_path, merged)
        logger.info(f"Updated {self.daemon_config_path}: {', '.join(updates)}")
        return merged

    async def ensure_daemon_config(self) -> None:
        """Create an empty daemon configuration document if none exists."""
        if await asyncio.to_thread(self.daemon_config_path.exists):
            return
        await asyncio.to_thread(write_json_atomic, self.daemon_config_path, {})
        logger.info(f"Created empty {self.daemon_config_path}")

    async def backup_daemon_config(self) -> Path:
        """Copy the daemon configuration next to itself with a .bak suffix."""
        await asyncio.to_thread(shutil.copy2, self.daemon_config_path, self.backup_path)
        logger.info(f"Backed up {self.daemon_config_path} to {self.backup_path}")
        return self.backup_path

    async def set_default_runtime(self) -> Dict[str, Any]:
        """Make the GPU runtime the default, registering it if unknown."""
        current = await self.read_daemon_config()
        updates: Dict[str, Any] = {"default-runtime": self.runtime_name}
        runtimes = current.get("runtimes")
        if not isinstance(runtimes, dict) or self.runtime_name not in runtimes:
            updates["runtimes"] = {
                self.runtime_name: {"path": self.runtime_path, "runtimeArgs": []}
            }
        return await self.merge_daemon_config(updates)

    async def set_data_root(self, data_root: str) -> Dict[str, Any]:
        """Point the engine at a new data root."""
        return await self.merge_daemon_config({"data-root": data_root})

    async def add_user_to_group(self, user: str) -> None:
        """Add a user to the docker group (effective at next login)."""
        await run_command(["usermod", "-aG", self.group, user])
        logger.info(f"Added {user} to group {self.group}")

    async def info(self, template: str) -> str:
        """Query the running engine with a docker info Go template."""
        result = await run_command(["docker", "info", "--format", template])
        return result.stdout.strip()

    async def data_root(self) -> str:
        """Data root reported by the running engine."""
        return await self.info("{{.DockerRootDir}}")

    async def default_runtime(self) -> str:
        """Default runtime reported by the running engine."""
        return await self.info("{{.DefaultRuntime}}")

    async def restart(self) -> None:
        """Restart the engine."""
        await self._services.restart(self.service)

    async def reload_and_restart(self) -> None:
        """Reload unit definitions and restart the engine."""
        await self._services.reload()
        await self._services.restart(self.service)

    async def stop(self) -> None:
        """Stop the engine."""
        await self._services.stop(self.service)
