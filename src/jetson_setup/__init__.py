"""
jetson-ssd-setup - Move a Jetson's Docker storage onto an SSD.

Formats and mounts an NVMe/SSD, makes the NVIDIA container runtime Docker's
default, relocates Docker's data root onto the new disk and optionally frees
memory with a swap file and fewer background services.
"""

__version__ = "1.0.0"
__author__ = "jetson-ssd-setup developers"

# Re-export key components for easier access
from jetson_setup.models.config import SetupConfig
from jetson_setup.models.state import SetupState

__all__ = [
    "SetupConfig",
    "SetupState",
]
