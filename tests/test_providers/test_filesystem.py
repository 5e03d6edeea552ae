"""Tests for the filesystem provider."""

import pytest
from unittest.mock import AsyncMock, patch

from jetson_setup.exceptions import DeviceLookupError
from jetson_setup.providers.filesystem import FilesystemProvider, parse_progress
from jetson_setup.utils.systemd import CommandResult


@pytest.fixture
def filesystem():
    """Filesystem provider with default settings."""
    return FilesystemProvider()


class TestParseProgress:
    """Test rsync progress parsing."""

    def test_progress2_line(self):
        """The overall percentage is extracted."""
        line = "  1,234,567,890  45%   52.10MB/s    0:00:22 (xfr#1024, to-chk=10/2000)"
        assert parse_progress(line) == 45

    def test_line_without_percentage(self):
        """Lines without a percentage yield None."""
        assert parse_progress("sending incremental file list") is None


@pytest.mark.asyncio
class TestFilesystemProvider:
    """Test block device and tree operations."""

    async def test_format_uses_configured_filesystem(self, filesystem):
        """mkfs is called for the configured filesystem type."""
        with patch("jetson_setup.providers.filesystem.run_command", new_callable=AsyncMock) as mock_run:
            await filesystem.format("/dev/nvme0n1")

        mock_run.assert_called_once_with(["mkfs.ext4", "-F", "/dev/nvme0n1"])

    async def test_mount_creates_mount_point(self, filesystem, tmp_path):
        """The mount point directory is created before mounting."""
        mount_point = tmp_path / "ssd"
        with patch("jetson_setup.providers.filesystem.run_command", new_callable=AsyncMock) as mock_run:
            await filesystem.mount("/dev/nvme0n1", str(mount_point))

        assert mount_point.is_dir()
        mock_run.assert_called_once_with(["mount", "/dev/nvme0n1", str(mount_point)])

    async def test_get_uuid(self, filesystem):
        """The UUID comes from blkid."""
        with patch("jetson_setup.providers.filesystem.run_command", new_callable=AsyncMock) as mock_run:
            mock_run.return_value = CommandResult(returncode=0, stdout="1234-abcd\n")
            assert await filesystem.get_uuid("/dev/nvme0n1") == "1234-abcd"

    async def test_get_uuid_missing(self, filesystem):
        """Empty blkid output raises DeviceLookupError."""
        with patch("jetson_setup.providers.filesystem.run_command", new_callable=AsyncMock) as mock_run:
            mock_run.return_value = CommandResult(returncode=2, stdout="")
            with pytest.raises(DeviceLookupError):
                await filesystem.get_uuid("/dev/nvme0n1")

    async def test_is_mounted(self, filesystem):
        """findmnt output decides whether the mount point is live."""
        with patch("jetson_setup.providers.filesystem.run_command", new_callable=AsyncMock) as mock_run:
            mock_run.return_value = CommandResult(returncode=0, stdout="/ssd /dev/nvme0n1 ext4 rw\n")
            assert await filesystem.is_mounted("/ssd") is True

            mock_run.return_value = CommandResult(returncode=1, stdout="")
            assert await filesystem.is_mounted("/ssd") is False

    async def test_directory_size(self, filesystem):
        """du -sb output is parsed to bytes."""
        with patch("jetson_setup.providers.filesystem.run_command", new_callable=AsyncMock) as mock_run:
            mock_run.return_value = CommandResult(returncode=0, stdout="123456\t/var/lib/docker\n")
            assert await filesystem.directory_size("/var/lib/docker") == 123456

    async def test_sync_tree_reports_progress(self, filesystem):
        """rsync runs in archive mode and progress lines become percentages."""
        seen = []

        async def fake_stream(cmd, on_line, **kwargs):
            for line in ["sending incremental file list", "  100  10%  1MB/s", "  900  100%  1MB/s"]:
                on_line(line)
            return CommandResult(returncode=0)

        with patch("jetson_setup.providers.filesystem.stream_command", side_effect=fake_stream) as mock_stream:
            await filesystem.sync_tree("/var/lib/docker", "/ssd/docker", on_progress=seen.append)

        cmd = mock_stream.call_args[0][0]
        assert cmd == ["rsync", "-axHS", "--info=progress2", "/var/lib/docker/", "/ssd/docker/"]
        assert seen == [10, 100]

    async def test_is_empty(self, filesystem, tmp_path):
        """Missing and empty directories count as empty."""
        assert await filesystem.is_empty(str(tmp_path / "missing")) is True
        assert await filesystem.is_empty(str(tmp_path)) is True

        (tmp_path / "overlay2").mkdir()
        assert await filesystem.is_empty(str(tmp_path)) is False

    async def test_retire_directory(self, filesystem, tmp_path):
        """The directory is renamed to a .old sibling."""
        data_dir = tmp_path / "docker"
        (data_dir / "volumes").mkdir(parents=True)

        retired = await filesystem.retire_directory(str(data_dir))

        assert retired == str(tmp_path / "docker.old")
        assert not data_dir.exists()
        assert (tmp_path / "docker.old" / "volumes").is_dir()

    async def test_retire_directory_keeps_existing_backup(self, filesystem, tmp_path):
        """An existing .old directory is never overwritten."""
        (tmp_path / "docker").mkdir()
        (tmp_path / "docker.old" / "previous").mkdir(parents=True)

        retired = await filesystem.retire_directory(str(tmp_path / "docker"))

        assert retired.startswith(str(tmp_path / "docker.old."))
        assert (tmp_path / "docker.old" / "previous").is_dir()

    async def test_retire_missing_directory(self, filesystem, tmp_path):
        """Nothing happens when the directory does not exist."""
        assert await filesystem.retire_directory(str(tmp_path / "docker")) is None
