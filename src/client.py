"""Client factories for telirc.

We explicitly manage each client's lifecycle (connect, login, run) from the
application so it is obvious when sessions are created and when they end.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable

from dotenv import load_dotenv
from telethon import TelegramClient

from adapters.irc_client import RelayIrcClient


def build_client() -> TelegramClient:
    """Create a Telethon client from environment variables.

    We read API_ID/API_HASH via python-dotenv to keep secrets out of the repo.
    The session name defaults to "telirc" to create a local .session file;
    the bot token itself is only used at login time.
    """

    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    session_name = os.getenv("SESSION_NAME", "telirc")

    # Fail fast on missing credentials to avoid an ambiguous login prompt.
    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")

    logging.getLogger(__name__).info("Initializing Telegram client")

    # Updates are handled one at a time so group messages keep their order.
    return TelegramClient(session_name, int(api_id), api_hash, sequential_updates=True)


def bot_token() -> str:
    load_dotenv()
    token = os.getenv("BOT_TOKEN")
    if not token:
        raise RuntimeError("Missing BOT_TOKEN in environment")
    return token


def build_irc_client(irc_config: dict, channels: Iterable[str], debug: bool = False) -> RelayIrcClient:
    """Create the pydle client; SASL is used when ``irc.sasl`` is enabled."""

    load_dotenv()

    nickname = irc_config.get("nickname")
    if not nickname:
        raise RuntimeError("irc.nickname is required")

    kwargs = {
        "username": irc_config.get("username") or nickname,
        "realname": irc_config.get("realname") or nickname,
    }
    if irc_config.get("sasl", False):
        password = os.getenv("IRC_PASSWORD")
        if not password:
            raise RuntimeError("IRC_PASSWORD is required when irc.sasl is enabled")
        kwargs["sasl_username"] = irc_config.get("sasl_username") or nickname
        kwargs["sasl_password"] = password

    logging.getLogger(__name__).info("Initializing IRC client for %s", irc_config.get("server"))

    return RelayIrcClient(nickname, channels, debug=debug, **kwargs)
