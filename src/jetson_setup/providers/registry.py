"""Provider registry for host resource providers."""

import logging
from typing import Dict, List, Optional, Tuple, Type

from jetson_setup.providers.base import BaseProvider
from jetson_setup.providers.docker import DockerProvider
from jetson_setup.providers.filesystem import FilesystemProvider
from jetson_setup.providers.fstab import MountTableProvider
from jetson_setup.providers.packages import PackageProvider
from jetson_setup.providers.services import ServiceProvider
from jetson_setup.providers.swap import SwapProvider


logger = logging.getLogger(__name__)

# Providers a peer depends on come first; docker needs services, swap needs fstab.
DEFAULT_PROVIDERS: Tuple[Tuple[str, Type[BaseProvider]], ...] = (
    ("services", ServiceProvider),
    ("filesystem", FilesystemProvider),
    ("fstab", MountTableProvider),
    ("packages", PackageProvider),
    ("docker", DockerProvider),
    ("swap", SwapProvider),
)


class ProviderRegistry:
    """Owns the host providers for one setup run.

    ``initialize`` builds whatever has not been registered by hand, then
    hands every provider the config and the registry so it can look up its
    peers. ``close`` tears them down in reverse order.
    """

    def __init__(self):
        """Initialize provider registry."""
        self._providers: Dict[str, BaseProvider] = {}
        self._provider_classes: Dict[str, Type[BaseProvider]] = dict(DEFAULT_PROVIDERS)

    async def initialize(self, config) -> None:
        """Create missing providers, then initialize all of them."""
        for name, provider_class in self._provider_classes.items():
            if name in self._providers:
                logger.debug(f"Keeping registered provider: {name}")
                continue
            self._providers[name] = provider_class()

        for name, provider in self._providers.items():
            try:
                await provider.initialize(config, self)
            except Exception as e:
                logger.error(f"Failed to initialize provider {name}: {e}")
                raise
            logger.debug(f"Initialized provider: {name}")

    async def close(self) -> None:
        """Close providers, dependents before their dependencies."""
        for name, provider in reversed(list(self._providers.items())):
            try:
                await provider.close()
            except Exception as e:
                logger.warning(f"Failed to close provider {name}: {e}")

    def get_provider(self, name: str) -> Optional[BaseProvider]:
        """Get a provider by name."""
        return self._providers.get(name)

    def register(self, name: str, provider: BaseProvider) -> None:
        """Use an already constructed provider instead of the default one."""
        self._providers[name] = provider

    def list_providers(self) -> List[str]:
        """Names of the providers currently held."""
        return list(self._providers)
