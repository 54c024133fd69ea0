"""Telegram transport adapter.

Implements the core GroupChatPort on top of a Telethon client logged in with
a bot token. Telethon pushes updates to a handler; we queue them and hand
them out in batches so the group ingest loop sees one polling cycle at a
time, in receipt order.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

from telethon import TelegramClient, events
from telethon.tl.custom import Message

from adapters.telegram_mapper import build_group_message, user_from_entity
from core.errors import MediaRelayError, TransportError
from core.models import GroupMessage, GroupUser, MediaReference

LOGGER = logging.getLogger(__name__)


class TelethonGroupChat:
    """GroupChatPort backed by a Telethon bot session."""

    def __init__(self, client: TelegramClient) -> None:
        self._client = client
        self._queue: asyncio.Queue[Message] = asyncio.Queue()
        client.add_event_handler(self._on_new_message, events.NewMessage(incoming=True))

    async def _on_new_message(self, event) -> None:
        await self._queue.put(event.message)

    async def _ensure_connected(self) -> None:
        if self._client.is_connected():
            return
        LOGGER.info("Reconnecting to Telegram")
        try:
            await self._client.connect()
        except (OSError, ConnectionError) as exc:
            raise TransportError(f"Cannot connect to Telegram: {exc}") from exc

    async def _next_message(self) -> Message:
        get_task = asyncio.ensure_future(self._queue.get())
        # Telethon hands out a fresh shield of its disconnect future on every access.
        disconnected = self._client.disconnected
        done, _ = await asyncio.wait({get_task, disconnected}, return_when=asyncio.FIRST_COMPLETED)
        if get_task in done:
            disconnected.cancel()
            return get_task.result()
        get_task.cancel()
        cause = None if disconnected.cancelled() else disconnected.exception()
        raise TransportError(f"Telegram connection lost: {cause}" if cause else "Telegram connection lost") from cause

    async def updates(self) -> AsyncIterator[GroupMessage]:
        """Wait for at least one message, then yield everything queued."""

        await self._ensure_connected()
        batch = [await self._next_message()]
        while not self._queue.empty():
            batch.append(self._queue.get_nowait())

        for message in batch:
            try:
                group_message = await build_group_message(message)
            except Exception:
                LOGGER.exception("Failed to read Telegram message %s", getattr(message, "id", "?"))
                continue
            yield group_message

    async def send_message(self, chat_id: int, text: str) -> None:
        # IRC text is plain; markdown parsing would eat asterisks and underscores.
        await self._client.send_message(chat_id, text, parse_mode=None)

    async def get_file_path(self, reference: MediaReference) -> str:
        return reference.source_name

    async def fetch_file(self, reference: MediaReference) -> bytes:
        try:
            content = await self._client.download_media(reference.handle, file=bytes)
        except Exception as exc:
            raise MediaRelayError(f"Download of media {reference.media_id} failed: {exc}") from exc
        if content is None:
            raise MediaRelayError(f"Media {reference.media_id} has nothing to download")
        return content

    async def get_me(self) -> GroupUser:
        me = await self._client.get_me()
        user = user_from_entity(me)
        if user is None:
            raise TransportError("Telegram did not return the bot identity")
        return user
