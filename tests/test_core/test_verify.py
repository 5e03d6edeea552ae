"""Tests for the post-setup verification pass."""

import pytest
from unittest.mock import AsyncMock, Mock

from jetson_setup.core.reporting import Reporter
from jetson_setup.core.verify import Verifier
from jetson_setup.exceptions import DeviceLookupError, ExternalCommandError, VerificationFailure
from jetson_setup.models.config import SetupConfig, StorageConfig
from jetson_setup.providers.docker import DockerProvider
from jetson_setup.providers.filesystem import FilesystemProvider
from jetson_setup.providers.fstab import MountTableProvider
from jetson_setup.providers.registry import ProviderRegistry


UUID = "9b2e41d0-55aa-4c3e-8f10-7a6c2d9e0b44"


@pytest.fixture
def config():
    return SetupConfig(storage=StorageConfig(device="/dev/nvme0n1"))


@pytest.fixture
def registry():
    """Registry whose providers describe a correctly migrated host."""
    filesystem = AsyncMock(spec=FilesystemProvider)
    filesystem.is_recognized.return_value = True
    filesystem.is_mounted.return_value = True
    filesystem.get_uuid.return_value = UUID
    filesystem.is_empty.return_value = False

    fstab = AsyncMock(spec=MountTableProvider)
    fstab.has_uuid.return_value = True

    docker = AsyncMock(spec=DockerProvider)
    docker.data_root.return_value = "/ssd/docker"
    docker.default_runtime.return_value = "nvidia"

    registry = ProviderRegistry()
    registry.register("filesystem", filesystem)
    registry.register("fstab", fstab)
    registry.register("docker", docker)
    return registry


@pytest.mark.asyncio
class TestVerifier:
    """Test ordering and failure reporting of the checks."""

    async def test_all_checks_pass(self, config, registry):
        """A healthy host reports every check as a success."""
        reporter = Mock(spec=Reporter)

        await Verifier(config, registry, reporter).run()

        messages = [call.args[0] for call in reporter.success.call_args_list]
        assert [message[:3] for message in messages] == ["(a)", "(b)", "(c)", "(d)", "(e)", "(f)"]

    async def test_known_uuid_is_not_looked_up(self, config, registry):
        """A UUID from the mount step is reused."""
        await Verifier(config, registry).run(UUID)

        registry.get_provider("filesystem").get_uuid.assert_not_called()
        registry.get_provider("fstab").has_uuid.assert_awaited_once_with(UUID)

    @pytest.mark.parametrize("provider, method, value, key", [
        ("filesystem", "is_recognized", False, "a"),
        ("filesystem", "is_mounted", False, "b"),
        ("fstab", "has_uuid", False, "c"),
        ("docker", "data_root", "/var/lib/docker", "d"),
        ("docker", "default_runtime", "runc", "e"),
        ("filesystem", "is_empty", True, "f"),
    ])
    async def test_failing_check_is_identified(self, config, registry, provider, method, value, key):
        """Each broken post-condition names its own check."""
        getattr(registry.get_provider(provider), method).return_value = value

        with pytest.raises(VerificationFailure) as exc_info:
            await Verifier(config, registry).run()

        assert exc_info.value.check == key

    async def test_fails_fast(self, config, registry):
        """Checks after the first failure are not run."""
        registry.get_provider("filesystem").is_mounted.return_value = False

        with pytest.raises(VerificationFailure):
            await Verifier(config, registry).run()

        registry.get_provider("docker").data_root.assert_not_called()

    async def test_reported_value_in_detail(self, config, registry):
        """A mismatch includes what the engine actually reported."""
        registry.get_provider("docker").default_runtime.return_value = "runc"

        with pytest.raises(VerificationFailure) as exc_info:
            await Verifier(config, registry).run()

        assert "runc" in str(exc_info.value)

    async def test_command_error_counts_as_failure(self, config, registry):
        """An unreachable engine fails the check instead of crashing."""
        registry.get_provider("docker").data_root.side_effect = ExternalCommandError(
            ["docker", "info"], 1, stderr="Cannot connect to the Docker daemon"
        )

        with pytest.raises(VerificationFailure) as exc_info:
            await Verifier(config, registry).run()

        assert exc_info.value.check == "d"
        assert "Cannot connect" in str(exc_info.value)

    async def test_missing_uuid_counts_as_failure(self, config, registry):
        """A device without a UUID fails the fstab check."""
        registry.get_provider("filesystem").get_uuid.side_effect = DeviceLookupError("no UUID")

        with pytest.raises(VerificationFailure) as exc_info:
            await Verifier(config, registry).run()

        assert exc_info.value.check == "c"
