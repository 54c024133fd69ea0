"""Static configuration for telirc.

All user-editable settings (IRC server, room mappings, media mirroring,
logging) live in a single JSON file for quick edits without touching Python.
Secrets (bot token, API credentials, IRC password) come from the environment.
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# The config file can be moved out of the checkout, e.g. for a service user.
CONFIG_PATH = os.getenv("TELIRC_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# IRC connection settings; the server password / SASL password is IRC_PASSWORD.
IRC = _CONFIG.get("irc", {})
IRC_SERVER = IRC.get("server")
IRC_PORT = int(IRC.get("port", 6697 if IRC.get("tls", True) else 6667))
IRC_TLS = bool(IRC.get("tls", True))
IRC_TLS_VERIFY = bool(IRC.get("tls_verify", True))

# Room mappings: Telegram group title -> IRC channel.
MAPS = dict(_CONFIG.get("maps", {}))

# Debug logs every inbound IRC line and Telegram message.
DEBUG = bool(_CONFIG.get("debug", False))

# Relay loop behaviour.
# - RETRY_SLEEP_SECONDS: fixed backoff after a transport error
# - IRC_SEND_FAILURE: "log" keeps relaying, "fatal" stops the process
# - STARTUP_DELAY_SECONDS: pause between IRC registration and relaying
_relay = _CONFIG.get("relay", {})
RETRY_SLEEP_SECONDS = float(_relay.get("retry_sleep_seconds", 10))
IRC_SEND_FAILURE = _relay.get("irc_send_failure", "log")
STARTUP_DELAY_SECONDS = float(_relay.get("startup_delay_seconds", 3))
IRC_READY_TIMEOUT_SECONDS = float(_relay.get("irc_ready_timeout_seconds", 60))

# Media mirroring is only active with both a base URL and a download dir.
_media = _CONFIG.get("media", {})
RELAY_MEDIA = bool(_media.get("enabled", False))
BASE_URL = _media.get("base_url")
DOWNLOAD_DIR = _resolve_path(_media["download_dir"]) if _media.get("download_dir") else None
# Attachments are held in memory while mirrored; null lifts the cap.
_max_bytes = _media.get("max_bytes", 20 * 1024 * 1024)
MEDIA_MAX_BYTES = int(_max_bytes) if _max_bytes is not None else None

# Where learned Telegram chat ids are stored.
DB_PATH = _resolve_path(_CONFIG.get("storage", {}).get("db_path", "telirc.db"))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
