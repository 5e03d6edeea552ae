"""Base provider interfaces."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, TYPE_CHECKING
from pydantic import BaseModel

if TYPE_CHECKING:
    from jetson_setup.providers.registry import ProviderRegistry


class ProviderStatus(Enum):
    """Provider resource status."""
    PRESENT = "present"
    ABSENT = "absent"


class BaseProvider(ABC):
    """Base interface for everything that touches the host."""

    @abstractmethod
    async def initialize(self, config: Any, registry: "ProviderRegistry") -> None:
        """Initialize the provider with configuration and sibling providers."""
        pass

    async def close(self) -> None:
        """Release any held connections."""
        pass


class ResourceProvider(BaseProvider):
    """Provider for a host resource that can be checked and ensured."""

    @abstractmethod
    async def status(self, spec: BaseModel) -> ProviderStatus:
        """Check the current status of a resource."""
        pass

    @abstractmethod
    async def present(self, spec: BaseModel) -> None:
        """Ensure the resource is present."""
        pass
