"""Service provider for systemd unit management."""

import logging
from typing import TYPE_CHECKING

from jetson_setup.providers.base import BaseProvider
from jetson_setup.utils.systemd import SystemdDBus

if TYPE_CHECKING:
    from jetson_setup.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)

# is-enabled states for which there is nothing left to disable
_ALREADY_DISABLED = {"disabled", "masked", "masked-runtime", "static"}


class ServiceProvider(BaseProvider):
    """Provider for systemd units and boot targets."""

    def __init__(self):
        """Initialize service provider."""
        self.systemd_dbus = SystemdDBus()

    async def initialize(self, config, registry: "ProviderRegistry") -> None:
        """Connect to systemd."""
        await self.systemd_dbus.connect()

    async def close(self) -> None:
        """Disconnect from systemd."""
        await self.systemd_dbus.disconnect()

    async def reload(self) -> None:
        """Reload unit definitions."""
        await self.systemd_dbus.reload_daemon()

    async def restart(self, unit_name: str) -> None:
        """Restart a unit."""
        logger.info(f"Restarting {unit_name}")
        await self.systemd_dbus.restart_unit(unit_name)

    async def stop(self, unit_name: str) -> None:
        """Stop a unit."""
        logger.info(f"Stopping {unit_name}")
        await self.systemd_dbus.stop_unit(unit_name)

    async def disable(self, unit_name: str) -> bool:
        """Disable a unit; returns False when there was nothing to disable."""
        state = await self.systemd_dbus.get_unit_file_state(unit_name)
        if not state or state in _ALREADY_DISABLED:
            logger.info(f"Unit {unit_name} not enabled (state: {state or 'not-found'}), skipping")
            return False

        logger.info(f"Disabling {unit_name}")
        await self.systemd_dbus.disable_unit(unit_name)
        await self.systemd_dbus.reload_daemon()
        return True

    async def set_default_target(self, target: str) -> bool:
        """Set the default boot target; returns False if already set."""
        current = await self.systemd_dbus.get_default_target()
        if current == target:
            logger.info(f"Default target already {target}")
            return False

        logger.info(f"Setting default target {current or '?'} -> {target}")
        await self.systemd_dbus.set_default_target(target)
        return True
