"""Read-only verification of a completed setup."""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Tuple, TYPE_CHECKING

from jetson_setup.exceptions import DeviceLookupError, ExternalCommandError, VerificationFailure
from jetson_setup.core.reporting import Reporter

if TYPE_CHECKING:
    from jetson_setup.models.config import SetupConfig
    from jetson_setup.providers.registry import ProviderRegistry


logger = logging.getLogger(__name__)

# A probe returns (passed, detail)
Probe = Callable[[], Awaitable[Tuple[bool, Optional[str]]]]


@dataclass
class Check:
    """One named post-condition."""
    key: str
    name: str
    probe: Probe


class Verifier:
    """Asserts the observable effect of every setup step, failing fast."""

    def __init__(
        self,
        config: "SetupConfig",
        registry: "ProviderRegistry",
        reporter: Optional[Reporter] = None,
    ):
        self.config = config
        self.filesystem = registry.get_provider("filesystem")
        self.fstab = registry.get_provider("fstab")
        self.docker = registry.get_provider("docker")
        self.reporter = reporter or Reporter()

    def checks(self, uuid: Optional[str] = None) -> List[Check]:
        """The ordered list of checks a-f."""
        storage = self.config.storage
        return [
            Check("a", f"device {storage.device} is recognized", self._device_recognized),
            Check("b", f"{storage.mount_point} is mounted", self._mounted),
            Check("c", f"{storage.fstab_path} references the device UUID",
                  lambda: self._uuid_registered(uuid)),
            Check("d", f"docker data root is {self.config.docker_data_root}", self._data_root),
            Check("e", f"docker default runtime is {self.config.docker.runtime_name}",
                  self._default_runtime),
            Check("f", f"{self.config.docker_data_root} is not empty", self._data_present),
        ]

    async def run(self, uuid: Optional[str] = None) -> None:
        """Run all checks in order; raises VerificationFailure on the first miss."""
        for check in self.checks(uuid):
            try:
                passed, detail = await check.probe()
            except (ExternalCommandError, DeviceLookupError) as e:
                passed, detail = False, str(e)

            if not passed:
                logger.error(f"Check ({check.key}) failed: {check.name} {detail or ''}".rstrip())
                raise VerificationFailure(check.key, check.name, detail)

            self.reporter.success(f"({check.key}) {check.name}")

    async def _device_recognized(self):
        return await self.filesystem.is_recognized(self.config.storage.device), None

    async def _mounted(self):
        return await self.filesystem.is_mounted(self.config.storage.mount_point), None

    async def _uuid_registered(self, uuid: Optional[str]):
        if uuid is None:
            uuid = await self.filesystem.get_uuid(self.config.storage.device)
        return await self.fstab.has_uuid(uuid), f"UUID={uuid}"

    async def _data_root(self):
        actual = await self.docker.data_root()
        return actual == self.config.docker_data_root, f"reported {actual or 'nothing'}"

    async def _default_runtime(self):
        actual = await self.docker.default_runtime()
        return actual == self.config.docker.runtime_name, f"reported {actual or 'nothing'}"

    async def _data_present(self):
        return not await self.filesystem.is_empty(self.config.docker_data_root), None
