"""Capability service boundary.

A capability performs one integration (calendar, gmail, tasks, ...) for a
normalized action and returns a display message plus optional structured
data. Failures are raised as ``CapabilityError``.
"""

from dataclasses import dataclass
from typing import Any, Protocol

SERVICES = (
    "briefing",
    "calendar",
    "contacts",
    "documents",
    "drive",
    "gmail",
    "reminders",
    "tasks",
    "web_search",
)


@dataclass
class CapabilityResult:
    message: str = ""
    data: Any = None


class Capability(Protocol):
    service: str

    async def call(self, action: str, user_id: str, entities: dict[str, Any]) -> CapabilityResult: ...


class CapabilityRegistry:
    def __init__(self) -> None:
        self._capabilities: dict[str, Capability] = {}

    def register(self, capability: Capability) -> None:
        self._capabilities[capability.service] = capability

    def get(self, service: str) -> Capability:
        try:
            return self._capabilities[service]
        except KeyError:
            raise KeyError(f"No capability registered for service {service!r}") from None

    def services(self) -> list[str]:
        return sorted(self._capabilities)
