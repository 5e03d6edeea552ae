"""Swap file provider."""

import asyncio
import logging
from pathlib import Path
from typing import Optional, TYPE_CHECKING

from jetson_setup.models.fstab import FstabEntry
from jetson_setup.models.swap import SwapSpec
from jetson_setup.providers.base import ResourceProvider, ProviderStatus
from jetson_setup.utils.systemd import run_command

if TYPE_CHECKING:
    from jetson_setup.providers.registry import ProviderRegistry
    from jetson_setup.providers.fstab import MountTableProvider

logger = logging.getLogger(__name__)


class SwapProvider(ResourceProvider):
    """Provider for file-backed swap space."""

    def __init__(self):
        """Initialize swap provider."""
        self._fstab: Optional["MountTableProvider"] = None

    async def initialize(self, config, registry: "ProviderRegistry") -> None:
        """Inject the mount table provider."""
        self._fstab = registry.get_provider("fstab")

    async def is_active(self, path: str) -> bool:
        """Whether the file is currently in use as swap."""
        result = await run_command(
            ["swapon", "--show=NAME", "--noheadings", "--raw"],
            check=False,
        )
        return path in result.stdout.split()

    async def status(self, spec: SwapSpec) -> ProviderStatus:
        """Swap is present when active and registered for boot."""
        active = await self.is_active(spec.path)
        registered = await self._fstab.has_line(FstabEntry.for_swap(spec.path).render())
        return ProviderStatus.PRESENT if active and registered else ProviderStatus.ABSENT

    async def present(self, spec: SwapSpec) -> None:
        """Allocate, initialize, activate and register the swap file."""
        if await self.is_active(spec.path):
            logger.info(f"Swap file {spec.path} already active")
        else:
            logger.info(f"Allocating {spec.size_arg} swap file {spec.path}")
            await run_command(["fallocate", "-l", spec.size_arg, spec.path])
            # swapon refuses files readable by group or others
            await asyncio.to_thread(Path(spec.path).chmod, 0o600)
            await run_command(["mkswap", spec.path])
            await run_command(["swapon", spec.path])

        await self._fstab.present(FstabEntry.for_swap(spec.path))
        await asyncio.to_thread(Path(spec.path).chmod, 0o600)
