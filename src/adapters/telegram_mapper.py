"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the relay core.
"""

from __future__ import annotations

from typing import Any, Optional

from telethon.tl.custom import Message

from core.models import (
    GroupMessage,
    GroupUser,
    MediaContent,
    MediaReference,
    MessageContent,
    OtherContent,
    QuotedMessage,
    StickerContent,
    TextContent,
)

# Checked in order: stickers and voice notes are documents too, so the more
# specific attributes must win over ``document``.
_MEDIA_ATTRIBUTES = ("photo", "voice", "audio", "video", "document")


def chat_kind(message: Message) -> str:
    if getattr(message, "is_group", False):
        return "group"
    if getattr(message, "is_private", False):
        return "private"
    return "channel"


def user_from_entity(entity: Any) -> Optional[GroupUser]:
    """Map a Telethon User (or a Channel posting anonymously) to a GroupUser."""

    if entity is None:
        return None
    username = getattr(entity, "username", None)
    first_name = getattr(entity, "first_name", None) or getattr(entity, "title", None)
    if not first_name:
        first_name = username or str(getattr(entity, "id", "unknown"))
    return GroupUser(
        user_id=getattr(entity, "id", None),
        first_name=str(first_name),
        last_name=getattr(entity, "last_name", None) or None,
        username=username or None,
    )


def media_reference(message: Message, media: Any) -> MediaReference:
    file = getattr(message, "file", None)
    media_id = str(getattr(media, "id", None) or message.id)
    name = getattr(file, "name", None)
    if not name:
        name = f"{media_id}{getattr(file, 'ext', None) or ''}"
    return MediaReference(
        media_id=media_id,
        source_name=name,
        file_size=getattr(file, "size", None),
        handle=message,
    )


def content_from_message(message: Message) -> MessageContent:
    """Classify a message into exactly one content arm."""

    text = message.raw_text or ""
    if getattr(message, "sticker", None) is not None:
        return StickerContent(emoji=getattr(getattr(message, "file", None), "emoji", None) or None)
    for kind in _MEDIA_ATTRIBUTES:
        media = getattr(message, kind, None)
        if media is not None:
            return MediaContent(kind=kind, reference=media_reference(message, media), caption=text)
    if text:
        return TextContent(text=text)
    return OtherContent()


async def build_quoted_message(message: Message) -> Optional[QuotedMessage]:
    if not getattr(message, "is_reply", False):
        return None
    reply = await message.get_reply_message()
    if reply is None:
        # The quoted message was deleted or is not accessible to the bot.
        return None
    sender = await reply.get_sender()
    return QuotedMessage(author=user_from_entity(sender), text=reply.raw_text or "")


async def build_group_message(message: Message) -> GroupMessage:
    """Build a core GroupMessage from a Telethon Message."""

    kind = chat_kind(message)
    if kind != "group":
        # The relay ignores these; skip the entity lookups.
        return GroupMessage(
            chat_id=message.chat_id,
            chat_title=str(message.chat_id),
            chat_kind=kind,
            sender=None,
            content=OtherContent(),
        )

    chat = await message.get_chat()
    title = getattr(chat, "title", None) or str(message.chat_id)
    sender = await message.get_sender()
    return GroupMessage(
        chat_id=message.chat_id,
        chat_title=title,
        chat_kind=kind,
        sender=user_from_entity(sender),
        content=content_from_message(message),
        reply_to=await build_quoted_message(message),
    )
