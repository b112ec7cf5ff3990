from collections.abc import Awaitable, Callable
from typing import Protocol

from src.gateway.types import IncomingMessage, OutgoingMessage


class MessageGateway(Protocol):
    """Abstract transport interface. Implementations: WhatsApp, mock."""

    async def send(self, message: OutgoingMessage) -> None: ...

    def on_message(self, handler: Callable[[IncomingMessage], Awaitable[None]]) -> None: ...

    async def close(self) -> None: ...
