"""Filesystem provider: block devices, mounts and directory trees."""

import asyncio
import logging
import pwd
import re
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, TYPE_CHECKING

from jetson_setup.exceptions import ConfigurationError, DeviceLookupError
from jetson_setup.providers.base import BaseProvider
from jetson_setup.utils.systemd import run_command, stream_command

if TYPE_CHECKING:
    from jetson_setup.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)

_PERCENT = re.compile(r"(\d{1,3})%")


def parse_progress(line: str) -> Optional[int]:
    """Extract the overall percentage from an rsync --info=progress2 line."""
    match = _PERCENT.search(line)
    if not match:
        return None
    return min(int(match.group(1)), 100)


class FilesystemProvider(BaseProvider):
    """Provider for formatting, mounting and copying on the host."""

    def __init__(self):
        """Initialize filesystem provider."""
        self.filesystem = "ext4"

    async def initialize(self, config, registry: "ProviderRegistry") -> None:
        """Initialize provider with configuration."""
        self.filesystem = config.storage.filesystem

    async def exists(self, path: str) -> bool:
        """Check that a path (device node, file or directory) exists."""
        return await asyncio.to_thread(Path(path).exists)

    async def make_directory(self, path: str) -> None:
        """Create a directory and its parents."""
        await asyncio.to_thread(lambda: Path(path).mkdir(parents=True, exist_ok=True))

    async def format(self, device: str) -> None:
        """Create a fresh filesystem on the device."""
        logger.info(f"Formatting {device} as {self.filesystem}")
        await run_command([f"mkfs.{self.filesystem}", "-F", device])

    async def mount(self, device: str, mount_point: str) -> None:
        """Create the mount point if needed and mount the device on it."""
        await self.make_directory(mount_point)
        logger.info(f"Mounting {device} on {mount_point}")
        await run_command(["mount", device, mount_point])

    async def get_uuid(self, device: str) -> str:
        """Look up the filesystem UUID of a device."""
        result = await run_command(
            ["blkid", "-s", "UUID", "-o", "value", device],
            check=False,
        )
        uuid = result.stdout.strip()
        if result.returncode != 0 or not uuid:
            raise DeviceLookupError(f"Could not determine UUID of {device}")
        logger.debug(f"Device {device} has UUID {uuid}")
        return uuid

    async def is_recognized(self, device: str) -> bool:
        """Whether the block-device metadata subsystem knows the device."""
        result = await run_command(["blkid", device], check=False)
        return result.returncode == 0

    async def is_mounted(self, mount_point: str) -> bool:
        """Whether the mount point appears in the live mount table."""
        result = await run_command(
            ["findmnt", "-n", "-M", mount_point],
            check=False,
        )
        return result.returncode == 0 and bool(result.stdout.strip())

    async def chown(self, path: str, user: str) -> None:
        """Give a path to a user and that user's primary group."""
        try:
            entry = await asyncio.to_thread(pwd.getpwnam, user)
        except KeyError as e:
            raise ConfigurationError(f"Unknown user: {user}") from e
        await asyncio.to_thread(shutil.chown, path, entry.pw_uid, entry.pw_gid)
        logger.info(f"Changed owner of {path} to {user}")

    async def directory_size(self, path: str) -> int:
        """Disk usage of a directory tree in bytes."""
        result = await run_command(["du", "-sb", path])
        return int(result.stdout.split()[0])

    async def sync_tree(
        self,
        source: str,
        destination: str,
        on_progress: Optional[Callable[[int], None]] = None,
    ) -> None:
        """Copy a tree preserving permissions, ownership, hardlinks and sparse files."""
        cmd = [
            "rsync", "-axHS", "--info=progress2",
            f"{source.rstrip('/')}/",
            f"{destination.rstrip('/')}/",
        ]

        def _on_line(line: str) -> None:
            percent = parse_progress(line)
            if percent is not None and on_progress:
                on_progress(percent)

        logger.info(f"Copying {source} to {destination}")
        await stream_command(cmd, _on_line)

    async def is_empty(self, path: str) -> bool:
        """Whether a directory is missing or has no entries."""
        def _check() -> bool:
            target = Path(path)
            if not target.is_dir():
                return True
            return next(target.iterdir(), None) is None

        return await asyncio.to_thread(_check)

    async def retire_directory(self, path: str, suffix: str = ".old") -> Optional[str]:
        """Rename a directory to a sibling backup path, never overwriting one.

        Returns the new path, or None when there was nothing to rename.
        """
        source = Path(path)
        if not await asyncio.to_thread(source.exists):
            logger.info(f"{source} does not exist, nothing to rename")
            return None

        target = source.with_name(source.name + suffix)
        if await asyncio.to_thread(target.exists):
            stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
            target = source.with_name(f"{source.name}{suffix}.{stamp}")

        await asyncio.to_thread(source.rename, target)
        logger.info(f"Renamed {source} to {target}")
        return str(target)
