"""Tests for the swap provider."""

import pytest
from pathlib import Path
from unittest.mock import AsyncMock, patch

from jetson_setup.models.swap import SwapSpec
from jetson_setup.providers.base import ProviderStatus
from jetson_setup.providers.fstab import MountTableProvider
from jetson_setup.providers.swap import SwapProvider
from jetson_setup.utils.systemd import CommandResult


@pytest.fixture
def fstab(tmp_path):
    """Mount table provider on a temporary fstab."""
    provider = MountTableProvider()
    provider.fstab_path = tmp_path / "fstab"
    provider.fstab_path.write_text("/dev/root / ext4 defaults 0 1\n")
    return provider


@pytest.fixture
def swap_provider(fstab):
    """Swap provider with the mount table injected."""
    provider = SwapProvider()
    provider._fstab = fstab
    return provider


def fake_host(active=""):
    """Simulate fallocate/mkswap/swapon; fallocate creates the file world-readable."""
    commands = []

    async def _run(cmd, **kwargs):
        commands.append(cmd)
        if cmd[0] == "fallocate":
            path = Path(cmd[-1])
            path.write_bytes(b"")
            path.chmod(0o644)
        if cmd[0] == "swapon" and cmd[1].startswith("--show"):
            return CommandResult(returncode=0, stdout=active)
        return CommandResult(returncode=0)

    return commands, _run


@pytest.mark.asyncio
class TestSwapProvider:
    """Test swap file provisioning."""

    async def test_present_provisions_swap(self, swap_provider, fstab, tmp_path):
        """A fresh swap file is allocated, secured, activated and registered."""
        path = str(tmp_path / "16GB.swap")
        commands, fake_run = fake_host()

        with patch("jetson_setup.providers.swap.run_command", side_effect=fake_run):
            await swap_provider.present(SwapSpec(path=path, size_gb=16))

        assert ["fallocate", "-l", "16G", path] in commands
        assert ["mkswap", path] in commands
        assert ["swapon", path] in commands
        assert commands.index(["mkswap", path]) < commands.index(["swapon", path])
        assert Path(path).stat().st_mode & 0o777 == 0o600
        assert f"{path} none swap sw 0 0" in fstab.fstab_path.read_text().splitlines()

    async def test_active_swap_is_not_reallocated(self, swap_provider, fstab, tmp_path):
        """An already active swap file is only registered."""
        swap_file = tmp_path / "16GB.swap"
        swap_file.write_bytes(b"")
        swap_file.chmod(0o644)
        commands, fake_run = fake_host(active=f"{swap_file}\n")

        with patch("jetson_setup.providers.swap.run_command", side_effect=fake_run):
            await swap_provider.present(SwapSpec(path=str(swap_file)))
            await swap_provider.present(SwapSpec(path=str(swap_file)))

        assert not any(cmd[0] in ("fallocate", "mkswap") for cmd in commands)
        assert fstab.fstab_path.read_text().count(str(swap_file)) == 1
        assert swap_file.stat().st_mode & 0o777 == 0o600

    async def test_status(self, swap_provider, fstab, tmp_path):
        """Swap is present only when active and registered."""
        path = str(tmp_path / "16GB.swap")
        _, fake_run = fake_host(active=f"{path}\n")

        with patch("jetson_setup.providers.swap.run_command", side_effect=fake_run):
            assert await swap_provider.status(SwapSpec(path=path)) == ProviderStatus.ABSENT
            fstab.fstab_path.write_text(f"{path} none swap sw 0 0\n")
            assert await swap_provider.status(SwapSpec(path=path)) == ProviderStatus.PRESENT
