"""Setup engine: the ordered host configuration procedure."""

import getpass
import logging
import os
from typing import Awaitable, Callable, Dict, Optional

from rich.filesize import decimal

from jetson_setup.core.reporting import Reporter
from jetson_setup.core.verify import Verifier
from jetson_setup.exceptions import ConfigurationError, UserAborted
from jetson_setup.models.config import SetupConfig
from jetson_setup.models.fstab import FstabEntry
from jetson_setup.models.package import PackageSpec
from jetson_setup.models.state import SetupState
from jetson_setup.models.swap import SwapSpec
from jetson_setup.providers import ProviderRegistry


logger = logging.getLogger(__name__)

AFFIRMATIVE_RESPONSES = frozenset({"y", "yes"})


def invoking_user() -> str:
    """The operator behind sudo, or the current login."""
    return os.environ.get("SUDO_USER") or getpass.getuser()


def is_affirmative(response: Optional[str]) -> bool:
    """Whether a confirmation response means yes."""
    return (response or "").strip().lower() in AFFIRMATIVE_RESPONSES


class SetupEngine:
    """Runs the setup as an explicit state machine.

    Each non-terminal state has exactly one handler which performs the work
    leading out of that state and returns the next state. Any exception moves
    the engine to ``ABORTED``; ``failed_state`` records where it happened.
    Nothing is rolled back automatically.
    """

    def __init__(
        self,
        config: SetupConfig,
        registry: ProviderRegistry,
        reporter: Optional[Reporter] = None,
        confirm: Optional[Callable[[str], str]] = None,
        user: Optional[str] = None,
    ):
        """Initialize setup engine.

        ``confirm`` receives the warning text and returns the operator's raw
        answer; passing None skips the prompt.
        """
        self.config = config
        self.registry = registry
        self.reporter = reporter or Reporter()
        self.confirm = confirm
        self.user = user or invoking_user()

        self.state = SetupState.START
        self.failed_state: Optional[SetupState] = None
        self.uuid: Optional[str] = None
        self.retired_data_dir: Optional[str] = None
        self.data_root_switched = False

        self._handlers: Dict[SetupState, Callable[[], Awaitable[SetupState]]] = {
            SetupState.START: self._confirm,
            SetupState.CONFIRMED: self._format,
            SetupState.FORMATTED: self._mount,
            SetupState.MOUNTED: self._configure_runtime,
            SetupState.RUNTIME_CONFIGURED: self._migrate_data,
            SetupState.DATA_MIGRATED: self._verify,
            SetupState.VERIFIED: self._optimize_memory,
            SetupState.MEMORY_OPTIMIZED: self._finish,
            SetupState.SKIPPED: self._finish,
        }

    @property
    def filesystem(self):
        return self.registry.get_provider("filesystem")

    @property
    def fstab(self):
        return self.registry.get_provider("fstab")

    @property
    def packages(self):
        return self.registry.get_provider("packages")

    @property
    def docker(self):
        return self.registry.get_provider("docker")

    @property
    def services(self):
        return self.registry.get_provider("services")

    @property
    def swap(self):
        return self.registry.get_provider("swap")

    async def validate(self) -> None:
        """Check required input before anything is touched."""
        device = self.config.storage.device
        if not device:
            raise ConfigurationError("A target device is required (--device)")
        if not await self.filesystem.exists(device):
            raise ConfigurationError(f"Device {device} does not exist")

    async def run(self) -> SetupState:
        """Run every step from the current state to DONE."""
        await self.validate()

        while not self.state.is_terminal:
            handler = self._handlers[self.state]
            current = self.state
            try:
                next_state = await handler()
            except UserAborted:
                logger.info("Setup declined by operator")
                self.state = SetupState.ABORTED
                raise
            except Exception as e:
                logger.error(f"Setup failed in state {current.value}: {e}")
                self.failed_state = current
                self.state = SetupState.ABORTED
                if self.data_root_switched:
                    self._report_rollback()
                raise

            logger.debug(f"Transition {current.value} -> {next_state.value}")
            self.state = next_state

        self.reporter.success("Setup complete")
        return self.state

    async def verify(self) -> None:
        """Run only the read-only verification pass."""
        if not self.config.storage.device:
            raise ConfigurationError("A target device is required (--device)")
        self.reporter.step("Verifying setup")
        await Verifier(self.config, self.registry, self.reporter).run(self.uuid)

    async def _confirm(self) -> SetupState:
        device = self.config.storage.device
        if self.confirm is None:
            logger.info(f"Confirmation skipped for {device}")
            return SetupState.CONFIRMED

        warning = (
            f"All data on {device} will be erased. It will be formatted as "
            f"{self.config.storage.filesystem} and mounted on "
            f"{self.config.storage.mount_point}."
        )
        response = self.confirm(warning)
        if not is_affirmative(response):
            raise UserAborted(f"Setup of {device} cancelled")
        return SetupState.CONFIRMED

    async def _format(self) -> SetupState:
        storage = self.config.storage
        self.reporter.step(f"Formatting {storage.device}")
        await self.filesystem.format(storage.device)
        self.reporter.success(f"{storage.device} formatted as {storage.filesystem}")
        return SetupState.FORMATTED

    async def _mount(self) -> SetupState:
        storage = self.config.storage
        self.reporter.step(f"Mounting {storage.device} on {storage.mount_point}")
        await self.filesystem.mount(storage.device, storage.mount_point)

        self.uuid = await self.filesystem.get_uuid(storage.device)
        await self.fstab.present(
            FstabEntry.for_uuid(
                self.uuid,
                storage.mount_point,
                storage.filesystem,
                storage.mount_options,
            )
        )
        self.reporter.success(f"UUID={self.uuid} registered in {storage.fstab_path}")

        await self.filesystem.chown(storage.mount_point, self.user)
        self.reporter.success(f"{storage.mount_point} owned by {self.user}")
        return SetupState.MOUNTED

    async def _configure_runtime(self) -> SetupState:
        docker_config = self.config.docker
        self.reporter.step(f"Installing {docker_config.runtime_package}")
        await self.packages.present(PackageSpec(name=docker_config.runtime_package))

        self.reporter.step(f"Making {docker_config.runtime_name} the default runtime")
        await self.docker.restart()
        await self.docker.add_user_to_group(self.user)
        self.reporter.info(
            f"{self.user} added to group {docker_config.group}; "
            "log out and back in for it to take effect"
        )
        await self.docker.set_default_runtime()
        await self.docker.reload_and_restart()
        self.reporter.success(f"Default runtime set to {docker_config.runtime_name}")
        return SetupState.RUNTIME_CONFIGURED

    async def _migrate_data(self) -> SetupState:
        source = self.config.docker.data_dir
        destination = self.config.docker_data_root

        self.reporter.step(f"Migrating {source} to {destination}")
        await self.docker.stop()
        await self.filesystem.make_directory(destination)

        if await self.filesystem.exists(source):
            before = await self.filesystem.directory_size(source)
            self.reporter.info(f"{source}: {decimal(before)}")

            self.reporter.start_progress(f"Copying {source}")
            try:
                await self.filesystem.sync_tree(
                    source, destination, on_progress=self.reporter.update_progress
                )
            finally:
                self.reporter.finish_progress()

            after = await self.filesystem.directory_size(destination)
            self.reporter.info(f"{destination}: {decimal(after)}")
        else:
            self.reporter.warning(f"{source} does not exist, nothing to copy")

        self.reporter.step(f"Pointing docker at {destination}")
        await self.docker.ensure_daemon_config()
        backup = await self.docker.backup_daemon_config()
        self.reporter.info(f"Daemon configuration backed up to {backup}")
        self.data_root_switched = True
        await self.docker.set_data_root(destination)
        await self.docker.reload_and_restart()

        self.retired_data_dir = await self.filesystem.retire_directory(source)
        if self.retired_data_dir:
            self.reporter.info(f"Previous data kept at {self.retired_data_dir}")
        self.reporter.success(f"Docker data root is now {destination}")
        return SetupState.DATA_MIGRATED

    async def _verify(self) -> SetupState:
        await self.verify()
        return SetupState.VERIFIED

    async def _optimize_memory(self) -> SetupState:
        memory = self.config.memory
        if not memory.enabled:
            self.reporter.info("Memory optimization skipped")
            return SetupState.SKIPPED

        self.reporter.step("Optimizing memory")
        await self.services.set_default_target(memory.default_target)
        self.reporter.success(f"Boot target set to {memory.default_target}")

        for unit in memory.disabled_services:
            if await self.services.disable(unit):
                self.reporter.success(f"Disabled {unit}")
            else:
                self.reporter.info(f"{unit} was not enabled")

        spec = SwapSpec(path=self.config.swap_file, size_gb=memory.swap_size_gb)
        await self.swap.present(spec)
        self.reporter.success(f"{spec.size_arg} swap active at {spec.path}")
        return SetupState.MEMORY_OPTIMIZED

    async def _finish(self) -> SetupState:
        return SetupState.DONE

    def _report_rollback(self) -> None:
        daemon_config = self.config.docker.daemon_config_path
        data_dir = self.config.docker.data_dir
        retired = self.retired_data_dir or f"{data_dir}.old"
        self.reporter.warning(
            "Docker's data root was already being switched. To roll back manually:\n"
            f"  cp {daemon_config}.bak {daemon_config}\n"
            f"  mv {retired} {data_dir}  (if it was renamed)\n"
            f"  systemctl restart {self.config.docker.service}"
        )
