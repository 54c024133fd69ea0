"""IRC transport adapter.

A pydle client that joins every mapped channel and implements the core
SourceNetworkPort. pydle delivers events through callbacks; we queue the
ones the relay cares about so the IRC ingest loop can consume them as a
stream. Unexpected disconnects are queued as ``TransportError`` so the loop
backs off while pydle reconnects.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Iterable, Union

import pydle

from core.errors import TransportError
from core.models import IrcEvent

LOGGER = logging.getLogger(__name__)

# Queued on an expected disconnect; ends the event stream.
_CLOSED = object()

_QueueItem = Union[IrcEvent, TransportError, object]


class RelayIrcClient(pydle.Client):
    """pydle client feeding the relay's IRC ingest loop."""

    def __init__(self, nickname: str, channels: Iterable[str], debug: bool = False, **kwargs) -> None:
        super().__init__(nickname, **kwargs)
        self._relay_channels = list(channels)
        self._debug = debug
        self._events: asyncio.Queue[_QueueItem] = asyncio.Queue()
        self._ready = asyncio.Event()

    async def on_connect(self) -> None:
        await super().on_connect()
        LOGGER.info("IRC connected as %s", self.nickname)
        for channel in self._relay_channels:
            await self.join(channel)
            LOGGER.info("Joined %s", channel)
        self._ready.set()

    async def on_disconnect(self, expected: bool) -> None:
        self._ready.clear()
        await self._events.put(_CLOSED if expected else TransportError("IRC connection lost"))
        await super().on_disconnect(expected)

    async def on_raw(self, message) -> None:
        if self._debug:
            LOGGER.debug("IRC raw: %s", str(message).rstrip())
        await super().on_raw(message)

    async def on_channel_message(self, target: str, by: str, message: str) -> None:
        await super().on_channel_message(target, by, message)
        if by and self.is_same_nick(self.nickname, by):
            return
        await self._events.put(IrcEvent(kind="privmsg", channel=target, sender=by or None, body=message))

    async def on_join(self, channel: str, user: str) -> None:
        await super().on_join(channel, user)
        await self._events.put(IrcEvent(kind="join", channel=channel, sender=user))

    async def on_notice(self, target: str, by: str, message: str) -> None:
        await super().on_notice(target, by, message)
        await self._events.put(IrcEvent(kind="notice", channel=target, sender=by, body=message))

    async def wait_until_ready(self, timeout: float) -> None:
        """Block until registration finished and channels were joined."""

        try:
            await asyncio.wait_for(self._ready.wait(), timeout)
        except asyncio.TimeoutError as exc:
            raise RuntimeError(f"IRC registration did not finish within {timeout}s") from exc

    async def events(self) -> AsyncIterator[IrcEvent]:
        while True:
            item = await self._events.get()
            if item is _CLOSED:
                return
            if isinstance(item, TransportError):
                raise item
            yield item

    async def send_privmsg(self, channel: str, text: str) -> None:
        if not self.connected:
            raise TransportError(f"Not connected to IRC, cannot send to {channel}")
        # pydle splits multi-line and over-long messages into several PRIVMSGs.
        await self.message(channel, text)
