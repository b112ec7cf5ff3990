from src.capabilities.base import SERVICES, Capability, CapabilityRegistry, CapabilityResult
from src.capabilities.http import HttpCapability


def create_http_capabilities() -> CapabilityRegistry:
    """Registry with one HTTP adapter per capability service."""
    registry = CapabilityRegistry()
    for service in SERVICES:
        registry.register(HttpCapability(service))
    return registry


__all__ = [
    "SERVICES",
    "Capability",
    "CapabilityRegistry",
    "CapabilityResult",
    "HttpCapability",
    "create_http_capabilities",
]
