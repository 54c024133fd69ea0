from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from adapters.telegram_transport import TelethonGroupChat
from core.errors import MediaRelayError, TransportError
from core.models import MediaReference, TextContent


class DummyUser:
    def __init__(self, user_id: int, first_name: str, username: Optional[str] = None) -> None:
        self.id = user_id
        self.first_name = first_name
        self.last_name = None
        self.username = username


class DummyChat:
    def __init__(self, title: str) -> None:
        self.title = title


class DummyMessage:
    def __init__(self, message_id: int, text: str, broken: bool = False) -> None:
        self.id = message_id
        self.chat_id = -100123
        self.raw_text = text
        self.is_group = True
        self.is_private = False
        self.is_reply = False
        self.file = None
        self._broken = broken
        for kind in ("sticker", "photo", "voice", "audio", "video", "document"):
            setattr(self, kind, None)

    async def get_chat(self):
        if self._broken:
            raise ValueError("entity not found")
        return DummyChat("FooGroup")

    async def get_sender(self):
        return DummyUser(2, "Bob")


class DummyEvent:
    def __init__(self, message: DummyMessage) -> None:
        self.message = message


class FakeTelethonClient:
    def __init__(self, connected: bool = True, download=b"data", download_error: Optional[Exception] = None) -> None:
        self.handlers: list = []
        self.sent: list[tuple[int, str, dict]] = []
        self.connect_calls = 0
        self._connected = connected
        self._download = download
        self._download_error = download_error
        self.disconnect_future = asyncio.get_running_loop().create_future()
        self.shields: list = []

    @property
    def disconnected(self):
        shield = asyncio.shield(self.disconnect_future)
        self.shields.append(shield)
        return shield

    def add_event_handler(self, callback, event) -> None:
        self.handlers.append((callback, event))

    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        self.connect_calls += 1
        self._connected = True

    async def send_message(self, chat_id: int, text: str, **kwargs) -> None:
        self.sent.append((chat_id, text, kwargs))

    async def download_media(self, message, file=None):
        if self._download_error is not None:
            raise self._download_error
        return self._download

    async def get_me(self):
        return DummyUser(999, "relay", "relaybot")


async def _push(client: FakeTelethonClient, message: DummyMessage) -> None:
    callback, _ = client.handlers[0]
    await callback(DummyEvent(message))


async def _collect(transport: TelethonGroupChat) -> list:
    return [message async for message in transport.updates()]


def test_updates_yield_queued_messages_in_order() -> None:
    async def scenario():
        client = FakeTelethonClient()
        transport = TelethonGroupChat(client)
        await _push(client, DummyMessage(1, "one"))
        await _push(client, DummyMessage(2, "two"))
        return await _collect(transport)

    messages = asyncio.run(scenario())

    assert [message.content for message in messages] == [TextContent("one"), TextContent("two")]
    assert messages[0].chat_title == "FooGroup"


def test_unreadable_message_is_skipped() -> None:
    async def scenario():
        client = FakeTelethonClient()
        transport = TelethonGroupChat(client)
        await _push(client, DummyMessage(1, "one", broken=True))
        await _push(client, DummyMessage(2, "two"))
        return await _collect(transport)

    messages = asyncio.run(scenario())

    assert [message.content for message in messages] == [TextContent("two")]


def test_disconnect_ends_the_cycle_with_transport_error() -> None:
    async def scenario():
        client = FakeTelethonClient()
        transport = TelethonGroupChat(client)
        client.disconnect_future.set_result(None)
        await _collect(transport)

    with pytest.raises(TransportError):
        asyncio.run(scenario())


def test_each_cycle_releases_its_disconnect_watch() -> None:
    async def scenario():
        client = FakeTelethonClient()
        transport = TelethonGroupChat(client)
        for number in range(20):
            await _push(client, DummyMessage(number, "hi"))
            await _collect(transport)
        return client.shields

    shields = asyncio.run(scenario())

    assert len(shields) == 20
    assert all(shield.cancelled() for shield in shields)


def test_connection_error_is_chained_into_transport_error() -> None:
    async def scenario():
        client = FakeTelethonClient()
        transport = TelethonGroupChat(client)
        client.disconnect_future.set_exception(ConnectionError("reset by peer"))
        await _collect(transport)

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(scenario())

    assert isinstance(excinfo.value.__cause__, ConnectionError)
    assert "reset by peer" in str(excinfo.value)


def test_updates_reconnect_when_disconnected() -> None:
    async def scenario():
        client = FakeTelethonClient(connected=False)
        transport = TelethonGroupChat(client)
        await _push(client, DummyMessage(1, "one"))
        await _collect(transport)
        return client.connect_calls

    assert asyncio.run(scenario()) == 1


def test_send_message_disables_markdown_parsing() -> None:
    async def scenario():
        client = FakeTelethonClient()
        await TelethonGroupChat(client).send_message(555, "<alice> *not bold*")
        return client.sent

    assert asyncio.run(scenario()) == [(555, "<alice> *not bold*", {"parse_mode": None})]


def test_fetch_file_wraps_download_errors() -> None:
    async def scenario():
        client = FakeTelethonClient(download_error=ConnectionError("reset"))
        await TelethonGroupChat(client).fetch_file(MediaReference(media_id="1", source_name="1.jpg"))

    with pytest.raises(MediaRelayError):
        asyncio.run(scenario())


def test_fetch_file_without_content_fails() -> None:
    async def scenario():
        client = FakeTelethonClient(download=None)
        await TelethonGroupChat(client).fetch_file(MediaReference(media_id="1", source_name="1.jpg"))

    with pytest.raises(MediaRelayError):
        asyncio.run(scenario())


def test_get_me_maps_bot_identity() -> None:
    async def scenario():
        client = FakeTelethonClient()
        return await TelethonGroupChat(client).get_me()

    me = asyncio.run(scenario())

    assert me.user_id == 999
    assert me.username == "relaybot"
