"""Host resource providers."""

from jetson_setup.providers.base import BaseProvider, ResourceProvider, ProviderStatus
from jetson_setup.providers.registry import ProviderRegistry

__all__ = [
    "BaseProvider",
    "ResourceProvider",
    "ProviderStatus",
    "ProviderRegistry",
]
