"""Command execution and systemd DBus integration."""

import asyncio
import logging
import re
from typing import Callable, Dict, List, Optional
from dataclasses import dataclass

from dbus_next.aio import MessageBus
from dbus_next import BusType

from jetson_setup.exceptions import ExternalCommandError


logger = logging.getLogger(__name__)

# rsync --info=progress2 and similar tools redraw lines with carriage returns
_LINE_SPLIT = re.compile(r"[\r\n]")


@dataclass
class CommandResult:
    """Result from running a command."""
    returncode: int
    stdout: str = ""
    stderr: str = ""


async def _spawn(cmd: List[str], **kwargs) -> asyncio.subprocess.Process:
    """Start a subprocess; a missing or unexecutable program is a command failure."""
    try:
        return await asyncio.create_subprocess_exec(*cmd, **kwargs)
    except OSError as e:
        # 127 is what a shell reports for a command it cannot find
        raise ExternalCommandError(cmd, 127, stderr=str(e)) from e


async def run_command(
    cmd: List[str],
    check: bool = True,
    capture_output: bool = True,
    **kwargs
) -> CommandResult:
    """Run a command asynchronously."""
    logger.debug(f"Running command: {' '.join(cmd)}")

    process = await _spawn(
        cmd,
        stdout=asyncio.subprocess.PIPE if capture_output else None,
        stderr=asyncio.subprocess.PIPE if capture_output else None,
        **kwargs
    )

    stdout, stderr = await process.communicate()

    result = CommandResult(
        returncode=process.returncode,
        stdout=stdout.decode() if stdout else "",
        stderr=stderr.decode() if stderr else "",
    )

    if check and process.returncode != 0:
        raise ExternalCommandError(cmd, result.returncode, result.stdout, result.stderr)

    return result


async def stream_command(
    cmd: List[str],
    on_line: Callable[[str], None],
    check: bool = True,
    **kwargs
) -> CommandResult:
    """Run a command, handing each stdout line to on_line as it arrives."""
    logger.debug(f"Streaming command: {' '.join(cmd)}")

    process = await _spawn(
        cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        **kwargs
    )

    async def _drain_stderr() -> bytes:
        return await process.stderr.read()

    stderr_task = asyncio.ensure_future(_drain_stderr())

    buffer = ""
    collected: List[str] = []
    while True:
        chunk = await process.stdout.read(4096)
        if not chunk:
            break
        buffer += chunk.decode(errors="replace")
        parts = _LINE_SPLIT.split(buffer)
        buffer = parts.pop()
        for line in parts:
            if line.strip():
                collected.append(line)
                on_line(line)
    if buffer.strip():
        collected.append(buffer)
        on_line(buffer)

    stderr = await stderr_task
    await process.wait()

    result = CommandResult(
        returncode=process.returncode,
        stdout="\n".join(collected),
        stderr=stderr.decode(errors="replace") if stderr else "",
    )

    if check and process.returncode != 0:
        raise ExternalCommandError(cmd, result.returncode, result.stdout, result.stderr)

    return result


class SystemdDBus:
    """DBus interface to systemd."""

    def __init__(self):
        """Initialize DBus connection."""
        self.bus: Optional[MessageBus] = None
        self.systemd = None
        self._job_results: Dict[str, str] = {}
        self._job_event: Optional[asyncio.Event] = None

    async def connect(self):
        """Connect to system DBus, leaving systemctl as the fallback."""
        try:
            self.bus = await MessageBus(bus_type=BusType.SYSTEM).connect()

            # Get systemd manager interface
            introspection = await self.bus.introspect(
                "org.freedesktop.systemd1",
                "/org/freedesktop/systemd1"
            )
            self.systemd = self.bus.get_proxy_object(
                "org.freedesktop.systemd1",
                "/org/freedesktop/systemd1",
                introspection
            ).get_interface("org.freedesktop.systemd1.Manager")

            # JobRemoved is only emitted to subscribed clients
            self.systemd.on_job_removed(self._on_job_removed)
            await self.systemd.call_subscribe()

            logger.debug("Connected to systemd DBus")

        except Exception as e:
            logger.warning(f"Failed to connect to DBus, using systemctl: {e}")
            self.bus = None
            self.systemd = None

    async def disconnect(self):
        """Disconnect from DBus."""
        if self.bus:
            self.bus.disconnect()
            self.bus = None
            self.systemd = None

    def _on_job_removed(self, job_id: int, job_path: str, unit: str, result: str):
        """Record the outcome of a finished systemd job."""
        logger.debug(f"Job {job_path} for {unit} finished: {result}")
        self._job_results[job_path] = result
        if self._job_event is not None:
            self._job_event.set()

    async def _wait_for_job(self, job_path: str) -> str:
        """Block until systemd reports the job as removed; returns its result."""
        if self._job_event is None:
            self._job_event = asyncio.Event()
        while job_path not in self._job_results:
            self._job_event.clear()
            await self._job_event.wait()
        result = self._job_results.pop(job_path)
        # Subscribing reports every job on the host; only one is awaited at a time
        self._job_results.clear()
        return result

    async def _execute_fallback(
        self,
        dbus_method_name: str,
        dbus_args: list,
        cli_cmd: List[str],
        success_msg: str,
        error_action: str
    ):
        """Execute a DBus method with CLI fallback."""
        if self.systemd:
            try:
                method = getattr(self.systemd, dbus_method_name)
                await method(*dbus_args)
                logger.debug(success_msg)
                return
            except Exception as e:
                logger.error(f"Failed to {error_action} via DBus: {e}")

        # Fall back to command (executed if systemd is None or if DBus failed)
        await run_command(cli_cmd)
        logger.debug(success_msg)

    async def _execute_job(
        self,
        dbus_method_name: str,
        dbus_args: list,
        cli_cmd: List[str],
        success_msg: str,
        error_action: str
    ):
        """Queue a unit job over DBus and wait for it, with CLI fallback.

        systemctl blocks until the job finishes, so both paths return only
        once the unit has reached its new state.
        """
        if self.systemd:
            try:
                method = getattr(self.systemd, dbus_method_name)
                job_path = await method(*dbus_args)
                result = await self._wait_for_job(job_path)
            except Exception as e:
                logger.error(f"Failed to {error_action} via DBus: {e}")
            else:
                if result != "done":
                    raise ExternalCommandError(
                        cli_cmd, 1, stderr=f"systemd job {job_path} finished with result '{result}'"
                    )
                logger.debug(success_msg)
                return

        await run_command(cli_cmd)
        logger.debug(success_msg)

    async def reload_daemon(self):
        """Reload systemd daemon configuration."""
        await self._execute_fallback(
            "call_reload",
            [],
            ["systemctl", "daemon-reload"],
            "Reloaded systemd daemon",
            "reload systemd"
        )

    async def restart_unit(self, unit_name: str):
        """Restart a systemd unit and wait until it is up."""
        await self._execute_job(
            "call_restart_unit",
            [unit_name, "replace"],
            ["systemctl", "restart", unit_name],
            f"Restarted unit {unit_name}",
            "restart unit"
        )

    async def stop_unit(self, unit_name: str):
        """Stop a systemd unit and wait until it is down."""
        await self._execute_job(
            "call_stop_unit",
            [unit_name, "replace"],
            ["systemctl", "stop", unit_name],
            f"Stopped unit {unit_name}",
            "stop unit"
        )

    async def disable_unit(self, unit_name: str):
        """Disable a systemd unit."""
        await self._execute_fallback(
            "call_disable_unit_files",
            [[unit_name], False],
            ["systemctl", "disable", unit_name],
            f"Disabled unit {unit_name}",
            "disable unit"
        )

    async def set_default_target(self, target: str):
        """Set the default boot target."""
        await self._execute_fallback(
            "call_set_default_target",
            [target, True],
            ["systemctl", "set-default", target],
            f"Default target set to {target}",
            "set default target"
        )

    async def get_default_target(self) -> str:
        """Get the default boot target."""
        if self.systemd:
            try:
                return await self.systemd.call_get_default_target()
            except Exception as e:
                logger.debug(f"Failed to get default target via DBus: {e}")

        result = await run_command(["systemctl", "get-default"], check=False)
        return result.stdout.strip()

    async def get_unit_file_state(self, unit_name: str) -> str:
        """Get the enablement state of a unit file."""
        if self.systemd:
            try:
                return await self.systemd.call_get_unit_file_state(unit_name)
            except Exception as e:
                logger.debug(f"Failed to get unit file state via DBus: {e}")

        result = await run_command(
            ["systemctl", "is-enabled", unit_name],
            check=False,
        )
        return result.stdout.strip()
