"""Application entry point for the telirc relay."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.sqlite_storage import SQLiteStorage
from adapters.telegram_transport import TelethonGroupChat
from client import bot_token, build_client, build_irc_client
from core.config import MediaConfig, RelayConfig
from core.errors import RelayFatalError
from core.relay import GroupRelay, IrcRelay
from core.routing import RoomMapping, RoutingStore

NAME = "TELIRC"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", True):
        return []
    values = []
    for name in redact_cfg.get("patterns", ["BOT_TOKEN", "API_HASH", "IRC_PASSWORD"]):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", True):
        return

    load_dotenv()
    level_name = str(config.get("level", "DEBUG" if settings.DEBUG else "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/telirc.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)
    # Telethon and pydle are chatty at DEBUG; keep them at INFO unless asked.
    if not settings.DEBUG:
        for noisy in ("telethon", "pydle"):
            logging.getLogger(noisy).setLevel(max(level, logging.INFO))


def _relay_config() -> RelayConfig:
    return RelayConfig(
        debug=settings.DEBUG,
        retry_sleep_seconds=settings.RETRY_SLEEP_SECONDS,
        irc_send_failure=settings.IRC_SEND_FAILURE,
        media=MediaConfig(
            enabled=settings.RELAY_MEDIA,
            base_url=settings.BASE_URL,
            download_dir=settings.DOWNLOAD_DIR,
            max_bytes=settings.MEDIA_MAX_BYTES,
        ),
    )


async def _serve(store: RoutingStore, relay_config: RelayConfig) -> None:
    """Log in to both networks, then run the two ingest loops side by side."""

    logger = logging.getLogger(__name__)

    client = build_client()
    await client.start(bot_token=bot_token())
    telegram = TelethonGroupChat(client)
    me = await telegram.get_me()
    logger.info("Telegram username: @%s", me.username)

    if not settings.IRC_SERVER:
        raise RuntimeError("irc.server is required")
    irc = build_irc_client(settings.IRC, store.mapping.channels, debug=settings.DEBUG)
    # Without SASL, IRC_PASSWORD is the server (PASS) password.
    password = None if settings.IRC.get("sasl", False) else os.getenv("IRC_PASSWORD")
    await irc.connect(
        hostname=settings.IRC_SERVER,
        port=settings.IRC_PORT,
        password=password,
        tls=settings.IRC_TLS,
        tls_verify=settings.IRC_TLS_VERIFY,
    )
    await irc.wait_until_ready(settings.IRC_READY_TIMEOUT_SECONDS)
    logger.info("IRC nick: %s", irc.nickname)

    # Give the server a moment to settle channel joins before relaying.
    await asyncio.sleep(settings.STARTUP_DELAY_SECONDS)

    irc_relay = IrcRelay(store, irc, telegram, relay_config)
    group_relay = GroupRelay(store, irc, telegram, relay_config, own_user=me)
    logger.info("Relaying %s room(s). Listening on both networks...", len(store.mapping.channels))
    try:
        await asyncio.gather(irc_relay.run(), group_relay.run())
    finally:
        if irc.connected:
            await irc.disconnect(expected=True)
        await client.disconnect()


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting telirc")

    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    chat_ids = storage.load_chat_ids()

    mapping = RoomMapping.from_config(settings.MAPS)
    if not mapping.channels:
        raise RuntimeError("config.json maps no Telegram group to an IRC channel")
    logger.info("%s room mappings are loaded", len(mapping.channels))

    relay_config = _relay_config()
    if settings.DOWNLOAD_DIR:
        os.makedirs(settings.DOWNLOAD_DIR, exist_ok=True)
    if relay_config.media.enabled and not relay_config.media.active:
        logger.warning("Media relay is enabled but base_url or download_dir is missing; media is skipped")

    store = RoutingStore(mapping, storage, chat_ids)
    try:
        asyncio.run(_serve(store, relay_config))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    except RelayFatalError:
        logger.exception("Relay stopped")
        raise SystemExit(1)


def _list_chat_ids() -> None:
    _print_banner()
    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    chat_ids = storage.load_chat_ids()

    if not chat_ids:
        print("No Telegram groups discovered yet. Post a message in a group the bot is in.")
        return

    for index, (title, chat_id) in enumerate(sorted(chat_ids.items()), start=1):
        channel = settings.MAPS.get(title, "-")
        print(f"{index}. {title} | {chat_id} | {channel}")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="telirc")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the relay")
    subparsers.add_parser(
        "chat-ids",
        help="Shows the Telegram groups discovered so far and their mapped channels.",
    )

    args = parser.parse_args(argv)
    if args.command == "chat-ids":
        _list_chat_ids()
        return
    _run()


if __name__ == "__main__":
    main()
