"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to pydle or Telethon types.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union


class Network(str, Enum):
    """The two sides of the bridge."""

    IRC = "irc"
    TELEGRAM = "telegram"


@dataclass(frozen=True)
class IrcEvent:
    """One inbound IRC event.

    Only ``privmsg`` events are relayed; the other kinds exist so the ingest
    loop can see (and skip) joins and notices explicitly.
    """

    kind: str
    channel: Optional[str] = None
    sender: Optional[str] = None
    body: str = ""


@dataclass(frozen=True)
class GroupUser:
    """A Telegram user as far as the relay cares about it."""

    user_id: Optional[int]
    first_name: str
    last_name: Optional[str] = None
    username: Optional[str] = None


@dataclass(frozen=True)
class MediaReference:
    """Handle to a remote attachment, consumed once by the media pipeline."""

    media_id: str
    source_name: str
    file_size: Optional[int] = None
    # Opaque transport object (a Telethon message) used to fetch the bytes.
    handle: Any = None


@dataclass(frozen=True)
class TextContent:
    text: str


@dataclass(frozen=True)
class StickerContent:
    emoji: Optional[str] = None


@dataclass(frozen=True)
class MediaContent:
    """Photo, document, audio, video or voice attachment."""

    kind: str
    reference: MediaReference
    caption: str = ""


@dataclass(frozen=True)
class OtherContent:
    """Anything the relay does not handle (polls, locations, service events)."""


MessageContent = Union[TextContent, StickerContent, MediaContent, OtherContent]


@dataclass(frozen=True)
class QuotedMessage:
    """The message an inbound Telegram message replies to."""

    author: Optional[GroupUser]
    text: str


@dataclass(frozen=True)
class GroupMessage:
    """Minimal Telegram message context used by the group ingest loop."""

    chat_id: int
    chat_title: str
    chat_kind: str
    sender: Optional[GroupUser]
    content: MessageContent
    reply_to: Optional[QuotedMessage] = None


@dataclass(frozen=True)
class DownloadedAsset:
    """A mirrored attachment: where it was written and where it is served."""

    path: str
    url: str


@dataclass(frozen=True)
class NormalizedMessage:
    """The unit handed to an outbound send."""

    sender_label: str
    body: str
    destination: Union[str, int]

    def render(self) -> str:
        return f"<{self.sender_label}> {self.body}"
