"""Ports (interfaces) used by the relay core.

Ports define the minimal contracts for the two chat transports and the
chat-id storage so that the core can be exercised without pydle, Telethon or
SQLite.
"""

from __future__ import annotations

from typing import AsyncIterator, Mapping, Protocol

from core.models import GroupMessage, GroupUser, IrcEvent, MediaReference


class SourceNetworkPort(Protocol):
    """IRC operations required by the relay."""

    def events(self) -> AsyncIterator[IrcEvent]:
        """Yield inbound events; raise ``TransportError`` on read errors."""
        ...

    async def send_privmsg(self, channel: str, text: str) -> None:
        ...


class GroupChatPort(Protocol):
    """Telegram operations required by the relay."""

    def updates(self) -> AsyncIterator[GroupMessage]:
        """Yield one polling cycle of messages; raise ``TransportError`` on failure."""
        ...

    async def send_message(self, chat_id: int, text: str) -> None:
        ...

    async def get_file_path(self, reference: MediaReference) -> str:
        ...

    async def fetch_file(self, reference: MediaReference) -> bytes:
        ...

    async def get_me(self) -> GroupUser:
        ...


class ChatIdStoragePort(Protocol):
    """Durable group title -> chat id table."""

    def load_chat_ids(self) -> dict[str, int]:
        ...

    def save_chat_ids(self, chat_ids: Mapping[str, int]) -> None:
        ...
