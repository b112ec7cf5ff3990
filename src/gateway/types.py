from dataclasses import dataclass
from enum import StrEnum


class MessageType(StrEnum):
    text = "text"
    voice = "voice"
    document = "document"
    unsupported = "unsupported"


@dataclass
class IncomingMessage:
    """Universal incoming message, transport-agnostic.

    Voice notes must already carry their transcript in ``text``; documents
    carry the media reference the documents capability ingests.
    """

    id: str
    user_id: str
    chat_id: str
    type: MessageType
    text: str | None = None
    document_id: str | None = None
    document_url: str | None = None
    document_mime_type: str | None = None
    document_file_name: str | None = None
    raw: object = None

    channel: str = "whatsapp"
    channel_user_id: str | None = None
    user_name: str | None = None

    @property
    def media(self) -> dict[str, str | None]:
        return {
            "media_id": self.document_id,
            "url": self.document_url,
            "mime_type": self.document_mime_type,
            "file_name": self.document_file_name,
        }


@dataclass
class OutgoingMessage:
    """Universal outgoing message."""

    text: str
    chat_id: str
    channel: str = "whatsapp"
