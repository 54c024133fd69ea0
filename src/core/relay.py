"""The two ingest loops of the bridge.

``IrcRelay`` carries IRC channel messages into Telegram groups and
``GroupRelay`` carries Telegram group messages into IRC channels. Both share
one ``RoutingStore``; each takes its lock only for the routing lookup (and,
on the Telegram side, chat-id discovery) and sends after releasing it.

Delivery is fire-and-forget: nothing is queued or retried, and a message
whose route cannot be resolved is dropped.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from core.attribution import attribute, format_display_name
from core.config import RelayConfig
from core.errors import MediaRelayError, RelayFatalError, TransportError
from core.media import ANONYMOUS, relay_media
from core.models import (
    GroupMessage,
    GroupUser,
    IrcEvent,
    MediaContent,
    MessageContent,
    Network,
    NormalizedMessage,
    OtherContent,
    StickerContent,
    TextContent,
)
from core.ports import GroupChatPort, SourceNetworkPort
from core.routing import RoutingStore

LOGGER = logging.getLogger(__name__)

STICKER_MARKER = "(Sticker)"

Sleep = Callable[[float], Awaitable[None]]


def compose_body(content: MessageContent, media_url: Optional[str] = None) -> str:
    """Turn message content into the text relayed to IRC."""

    if isinstance(content, TextContent):
        body = content.text
    elif isinstance(content, StickerContent):
        body = f"{STICKER_MARKER} {content.emoji}" if content.emoji else STICKER_MARKER
    elif isinstance(content, MediaContent):
        body = content.caption
    elif isinstance(content, OtherContent):
        body = ""
    else:
        raise TypeError(f"Unsupported message content: {content!r}")

    if media_url:
        body = f"{body} {media_url}" if body else media_url
    return body


def sender_label(user: Optional[GroupUser]) -> str:
    if user is None:
        return ANONYMOUS
    return format_display_name(user)


class IrcRelay:
    """Relays IRC channel messages to the mapped Telegram group."""

    def __init__(
        self,
        store: RoutingStore,
        irc: SourceNetworkPort,
        telegram: GroupChatPort,
        config: RelayConfig,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._store = store
        self._irc = irc
        self._telegram = telegram
        self._config = config
        self._sleep = sleep

    async def handle(self, event: IrcEvent) -> Optional[NormalizedMessage]:
        """Relay one IRC event; return what was sent, if anything."""

        if self._config.debug:
            LOGGER.debug("IRC event: %r", event)

        # Only channel PRIVMSGs from an actual user are relayed.
        if event.kind != "privmsg" or not event.channel or not event.sender:
            return None

        async with self._store.lock:
            group = self._store.resolve_target(event.channel, Network.IRC)
            chat_id = self._store.lookup_chat_id(group) if group else None

        if group is None:
            LOGGER.debug("No Telegram group mapped for %s", event.channel)
            return None
        if chat_id is None:
            LOGGER.warning("Cannot find telegram group %r (no message seen from it yet)", group)
            return None

        outbound = NormalizedMessage(sender_label=event.sender, body=event.body, destination=chat_id)
        text = outbound.render()
        LOGGER.info("Relaying %r -> %r: %s", event.channel, group, text)
        try:
            await self._telegram.send_message(chat_id, text)
        except Exception:
            LOGGER.exception("Failed to relay message from %s to %r", event.channel, group)
            return None
        return outbound

    async def run(self) -> None:
        """Consume IRC events until the stream closes, backing off on errors."""

        while True:
            try:
                async for event in self._irc.events():
                    try:
                        await self.handle(event)
                    except Exception:
                        LOGGER.exception("Error while relaying IRC event")
                LOGGER.info("IRC event stream closed")
                return
            except TransportError as exc:
                LOGGER.error("IRC error: %s", exc)
                await self._sleep(self._config.retry_sleep_seconds)


class GroupRelay:
    """Relays Telegram group messages to the mapped IRC channel."""

    def __init__(
        self,
        store: RoutingStore,
        irc: SourceNetworkPort,
        telegram: GroupChatPort,
        config: RelayConfig,
        own_user: Optional[GroupUser] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._store = store
        self._irc = irc
        self._telegram = telegram
        self._config = config
        self._own_user = own_user
        self._sleep = sleep

    async def _own_user_id(self) -> Optional[int]:
        if self._own_user is None:
            self._own_user = await self._telegram.get_me()
        return self._own_user.user_id

    async def _mirror_media(self, message: GroupMessage) -> Optional[str]:
        content = message.content
        if not isinstance(content, MediaContent) or not self._config.media.active:
            return None
        try:
            asset = await relay_media(self._telegram, content.reference, message.sender, self._config.media)
        except (MediaRelayError, OSError) as exc:
            LOGGER.warning("Skipping %s from %r: %s", content.kind, message.chat_title, exc)
            return None
        return asset.url

    async def handle(self, message: GroupMessage) -> Optional[NormalizedMessage]:
        """Relay one Telegram message; return what was sent, if anything."""

        if message.chat_kind != "group":
            return None
        if self._config.debug:
            LOGGER.debug("Telegram message: %r", message)

        title = message.chat_title
        async with self._store.lock:
            if self._store.lookup_chat_id(title) is None:
                self._store.record_chat_id(title, message.chat_id)
                LOGGER.info("Found telegram group %r with id %s", title, message.chat_id)
            channel = self._store.resolve_target(title, Network.TELEGRAM)

        if channel is None:
            LOGGER.debug("No IRC channel mapped for %r", title)
            return None

        media_url = await self._mirror_media(message)
        body = compose_body(message.content, media_url)
        if not body:
            return None
        if message.reply_to is not None:
            body = attribute(body, message.reply_to, await self._own_user_id())

        outbound = NormalizedMessage(
            sender_label=sender_label(message.sender),
            body=body,
            destination=channel,
        )
        text = outbound.render()
        LOGGER.info("Relaying %r -> %r: %s", title, channel, text)
        try:
            await self._irc.send_privmsg(channel, text)
        except Exception as exc:
            if self._config.irc_send_failure == "fatal":
                raise RelayFatalError(f"Cannot send to {channel}: {exc}") from exc
            LOGGER.exception("Failed to relay message from %r to %s", title, channel)
            return None
        return outbound

    async def run(self) -> None:
        """Poll Telegram forever, one cycle after another."""

        while True:
            try:
                async for message in self._telegram.updates():
                    try:
                        await self.handle(message)
                    except RelayFatalError:
                        raise
                    except Exception:
                        LOGGER.exception("Error while relaying Telegram message")
            except TransportError as exc:
                LOGGER.error("Telegram error: %s", exc)
                await self._sleep(self._config.retry_sleep_seconds)
