"""Reply attribution.

When a Telegram user replies to a message, IRC readers cannot see what was
quoted. We prefix the relayed body with the name of whoever wrote the quoted
message. Messages the bot posted itself carry the IRC nick in the relay's
``<nick> body`` form, so the nick is recovered from the text. That recovery
is a heuristic: anything else starting with ``<...>`` is read the same way.
"""

from __future__ import annotations

import re
from typing import Optional

from core.models import GroupUser, QuotedMessage

RELAYED_NICK = re.compile(r"^<([^>]+)>")


def format_display_name(user: GroupUser) -> str:
    """Return "first" or "first last"."""

    if user.last_name:
        return f"{user.first_name} {user.last_name}"
    return user.first_name


def extract_relayed_nick(text: str) -> Optional[str]:
    match = RELAYED_NICK.match(text)
    if not match:
        return None
    return match.group(1)


def attribution_prefix(reply_to: Optional[QuotedMessage], own_user_id: Optional[int]) -> str:
    """Return the ``"name: "`` prefix for a reply, or an empty string."""

    if reply_to is None or reply_to.author is None:
        return ""

    author = reply_to.author
    if own_user_id is not None and author.user_id == own_user_id:
        nick = extract_relayed_nick(reply_to.text)
        return f"{nick}: " if nick else ""
    return f"{format_display_name(author)}: "


def attribute(body: str, reply_to: Optional[QuotedMessage], own_user_id: Optional[int]) -> str:
    return f"{attribution_prefix(reply_to, own_user_id)}{body}"
