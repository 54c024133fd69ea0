from __future__ import annotations

import logging
from typing import Mapping

import pytest

from core.models import Network
from core.routing import RoomMapping, RoutingStore


class FakeChatIdStorage:
    def __init__(self, fail: bool = False) -> None:
        self.saves: list[dict[str, int]] = []
        self._fail = fail

    def load_chat_ids(self) -> dict[str, int]:
        return {}

    def save_chat_ids(self, chat_ids: Mapping[str, int]) -> None:
        if self._fail:
            raise OSError("disk full")
        self.saves.append(dict(chat_ids))


MAPS = {"FooGroup": "#foo", "BarGroup": "#bar"}


def test_resolve_target_is_bijective() -> None:
    store = RoutingStore(RoomMapping.from_config(MAPS), FakeChatIdStorage())
    for group, channel in MAPS.items():
        assert store.resolve_target(channel, Network.IRC) == group
        assert store.resolve_target(group, Network.TELEGRAM) == channel
        assert store.resolve_target(store.resolve_target(channel, Network.IRC), Network.TELEGRAM) == channel


def test_unmapped_rooms_resolve_to_none() -> None:
    store = RoutingStore(RoomMapping.from_config(MAPS), FakeChatIdStorage())
    assert store.resolve_target("#elsewhere", Network.IRC) is None
    assert store.resolve_target("Elsewhere", Network.TELEGRAM) is None
    # Directions do not leak into each other.
    assert store.resolve_target("FooGroup", Network.IRC) is None
    assert store.resolve_target("#foo", Network.TELEGRAM) is None


def test_mapping_rejects_channel_shared_by_two_groups() -> None:
    with pytest.raises(ValueError):
        RoomMapping.from_config({"FooGroup": "#foo", "OtherGroup": "#foo"})


def test_mapping_rejects_empty_entries() -> None:
    with pytest.raises(ValueError):
        RoomMapping.from_config({"FooGroup": ""})


def test_mapping_channels_are_sorted() -> None:
    assert RoomMapping.from_config(MAPS).channels == ["#bar", "#foo"]


def test_record_chat_id_is_idempotent() -> None:
    storage = FakeChatIdStorage()
    store = RoutingStore(RoomMapping.from_config(MAPS), storage)

    assert store.record_chat_id("FooGroup", 555) is True
    assert store.record_chat_id("FooGroup", 555) is False

    assert store.known_chat_ids() == {"FooGroup": 555}
    assert storage.saves == [{"FooGroup": 555}]


def test_record_chat_id_never_replaces_an_entry() -> None:
    storage = FakeChatIdStorage()
    store = RoutingStore(RoomMapping.from_config(MAPS), storage, {"FooGroup": 555})

    assert store.record_chat_id("FooGroup", 777) is False
    assert store.lookup_chat_id("FooGroup") == 555
    assert storage.saves == []


def test_recorded_chat_id_is_visible_immediately() -> None:
    store = RoutingStore(RoomMapping.from_config(MAPS), FakeChatIdStorage())
    assert store.lookup_chat_id("BarGroup") is None

    store.record_chat_id("BarGroup", -100123)

    assert store.lookup_chat_id("BarGroup") == -100123


def test_persistence_writes_the_full_table() -> None:
    storage = FakeChatIdStorage()
    store = RoutingStore(RoomMapping.from_config(MAPS), storage, {"FooGroup": 555})

    store.record_chat_id("BarGroup", 556)

    assert storage.saves == [{"FooGroup": 555, "BarGroup": 556}]


def test_persistence_failure_keeps_entry_in_memory(caplog) -> None:
    store = RoutingStore(RoomMapping.from_config(MAPS), FakeChatIdStorage(fail=True))

    with caplog.at_level(logging.ERROR, logger="core.routing"):
        assert store.record_chat_id("FooGroup", 555) is True

    assert store.lookup_chat_id("FooGroup") == 555
    assert "Failed to persist chat id" in caplog.text
