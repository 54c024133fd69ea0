"""Routing and discovery state shared by both ingest loops.

The room mapping is fixed at startup. Chat ids are learned the first time a
Telegram group speaks and are written through to storage immediately, so a
restart does not have to wait for every group to talk again.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from core.models import Network
from core.ports import ChatIdStoragePort

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoomMapping:
    """Fixed 1:1 pairing of IRC channels and Telegram group titles."""

    channel_by_group: Mapping[str, str]
    group_by_channel: Mapping[str, str]

    @classmethod
    def from_config(cls, maps: Mapping[str, str]) -> "RoomMapping":
        """Build both directions from the ``{group_title: channel}`` config map."""

        channel_by_group: dict[str, str] = {}
        group_by_channel: dict[str, str] = {}
        for group, channel in maps.items():
            if not group or not channel:
                raise ValueError(f"Invalid room mapping entry: {group!r} -> {channel!r}")
            if channel in group_by_channel:
                raise ValueError(
                    f"Channel {channel} is mapped from both "
                    f"{group_by_channel[channel]!r} and {group!r}"
                )
            channel_by_group[group] = channel
            group_by_channel[channel] = group
        return cls(channel_by_group=channel_by_group, group_by_channel=group_by_channel)

    @property
    def channels(self) -> list[str]:
        return sorted(self.group_by_channel)


class RoutingStore:
    """Room mapping plus the learned chat-id table, behind one lock.

    Callers hold ``lock`` only while they read or mutate state; outbound sends
    happen after release so one slow network cannot stall the other loop.
    """

    def __init__(
        self,
        mapping: RoomMapping,
        storage: ChatIdStoragePort,
        chat_ids: Optional[Mapping[str, int]] = None,
    ) -> None:
        self._mapping = mapping
        self._storage = storage
        self._chat_ids: dict[str, int] = dict(chat_ids or {})
        self.lock = asyncio.Lock()

    @property
    def mapping(self) -> RoomMapping:
        return self._mapping

    def resolve_target(self, room_id: str, origin: Network) -> Optional[str]:
        """Return the room mapped to ``room_id`` on the other network."""

        if origin is Network.IRC:
            return self._mapping.group_by_channel.get(room_id)
        return self._mapping.channel_by_group.get(room_id)

    def lookup_chat_id(self, group_title: str) -> Optional[int]:
        return self._chat_ids.get(group_title)

    def record_chat_id(self, group_title: str, chat_id: int) -> bool:
        """Remember a newly seen group and persist the whole table.

        Returns ``True`` only on first insertion. Entries are never replaced,
        and a failed write leaves the in-memory entry in place.
        """

        if group_title in self._chat_ids:
            return False
        self._chat_ids[group_title] = chat_id
        try:
            self._storage.save_chat_ids(self._chat_ids)
        except Exception:
            LOGGER.exception("Failed to persist chat id for %r", group_title)
        return True

    def known_chat_ids(self) -> dict[str, int]:
        return dict(self._chat_ids)
