"""Package provider backed by dpkg and apt."""

import logging
import os
from typing import TYPE_CHECKING

from jetson_setup.models.package import PackageSpec
from jetson_setup.providers.base import ResourceProvider, ProviderStatus
from jetson_setup.utils.systemd import run_command

if TYPE_CHECKING:
    from jetson_setup.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)


class PackageProvider(ResourceProvider):
    """Provider for Debian packages."""

    async def initialize(self, config, registry: "ProviderRegistry") -> None:
        """Nothing to configure."""
        pass

    async def status(self, spec: PackageSpec) -> ProviderStatus:
        """Check the package database for an installed package."""
        result = await run_command(
            ["dpkg-query", "-W", "-f=${Status}", spec.name],
            check=False,
        )
        if result.returncode == 0 and result.stdout.strip().endswith(" installed"):
            return ProviderStatus.PRESENT
        return ProviderStatus.ABSENT

    async def present(self, spec: PackageSpec) -> None:
        """Install the package unless it is already installed."""
        if await self.status(spec) == ProviderStatus.PRESENT:
            logger.info(f"Package {spec.name} already installed")
            return

        env = dict(os.environ, DEBIAN_FRONTEND="noninteractive")
        logger.info("Refreshing package indices")
        await run_command(["apt-get", "update"], env=env)
        logger.info(f"Installing {spec.name}")
        await run_command(["apt-get", "install", "-y", spec.name], env=env)
