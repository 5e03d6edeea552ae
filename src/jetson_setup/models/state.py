"""Setup run state."""

from enum import Enum


class SetupState(Enum):
    """States of a setup run, in execution order."""
    START = "start"
    CONFIRMED = "confirmed"
    FORMATTED = "formatted"
    MOUNTED = "mounted"
    RUNTIME_CONFIGURED = "runtime_configured"
    DATA_MIGRATED = "data_migrated"
    VERIFIED = "verified"
    MEMORY_OPTIMIZED = "memory_optimized"
    SKIPPED = "skipped"
    DONE = "done"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transitions happen from this state."""
        return self in (SetupState.DONE, SetupState.ABORTED)
