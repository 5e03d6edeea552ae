"""Exception hierarchy for jetson-ssd-setup."""

from typing import List, Optional


class SetupError(Exception):
    """Base class for all setup failures."""
    pass


class ConfigurationError(SetupError):
    """Missing or invalid input/configuration."""
    pass


class UserAborted(SetupError):
    """Operator declined the confirmation prompt."""
    pass


class DeviceLookupError(SetupError):
    """Device metadata (UUID) could not be discovered."""
    pass


class DaemonConfigError(SetupError):
    """Docker daemon configuration document is unusable."""
    pass


class ExternalCommandError(SetupError):
    """An external command exited with a non-zero status."""

    def __init__(
        self,
        cmd: List[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        message = f"Command '{' '.join(self.cmd)}' failed with exit status {returncode}"
        if stderr.strip():
            message = f"{message}: {stderr.strip()}"
        super().__init__(message)


class VerificationFailure(SetupError):
    """A post-condition check failed."""

    def __init__(self, check: str, name: str, detail: Optional[str] = None):
        self.check = check
        self.name = name
        self.detail = detail
        message = f"Verification check ({check}) failed: {name}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
