"""Mount table provider for /etc/fstab."""

import asyncio
import logging
from pathlib import Path
from typing import List, TYPE_CHECKING

from jetson_setup.models.fstab import FstabEntry
from jetson_setup.providers.base import ResourceProvider, ProviderStatus

if TYPE_CHECKING:
    from jetson_setup.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)


class MountTableProvider(ResourceProvider):
    """Provider for persistent-mount table entries."""

    def __init__(self):
        """Initialize mount table provider."""
        self.fstab_path = Path("/etc/fstab")

    async def initialize(self, config, registry: "ProviderRegistry") -> None:
        """Initialize provider with configuration."""
        self.fstab_path = Path(config.storage.fstab_path)

    async def read_lines(self) -> List[str]:
        """Read the table; a missing file reads as empty."""
        def _read() -> List[str]:
            if not self.fstab_path.exists():
                return []
            return self.fstab_path.read_text().splitlines()

        return await asyncio.to_thread(_read)

    async def has_uuid(self, uuid: str) -> bool:
        """Whether any active line references the UUID."""
        for line in await self.read_lines():
            stripped = line.strip()
            if stripped.startswith("#"):
                continue
            if uuid in stripped:
                return True
        return False

    async def has_line(self, line: str) -> bool:
        """Whether an identical line (ignoring surrounding whitespace) exists."""
        wanted = line.strip()
        return any(existing.strip() == wanted for existing in await self.read_lines())

    async def status(self, spec: FstabEntry) -> ProviderStatus:
        """Check whether the entry is already registered."""
        if spec.spec.startswith("UUID="):
            found = await self.has_uuid(spec.spec[len("UUID="):])
        else:
            found = await self.has_line(spec.render())
        return ProviderStatus.PRESENT if found else ProviderStatus.ABSENT

    async def present(self, spec: FstabEntry) -> None:
        """Append the entry unless it is already registered."""
        if await self.status(spec) == ProviderStatus.PRESENT:
            logger.info(f"fstab already has an entry for {spec.spec}")
            return

        line = spec.render()

        def _append() -> None:
            existing = self.fstab_path.read_text() if self.fstab_path.exists() else ""
            with self.fstab_path.open("a") as handle:
                if existing and not existing.endswith("\n"):
                    handle.write("\n")
                handle.write(line + "\n")

        await asyncio.to_thread(_append)
        logger.info(f"Added fstab entry: {line}")
