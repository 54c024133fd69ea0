"""Media relay pipeline.

Attachments posted in Telegram are copied into a per-uploader directory under
a random name and linked from IRC. The random stem keeps original file names
(which often carry personal details) out of the public URL.
"""

from __future__ import annotations

import asyncio
import logging
import random
import string
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import quote

from core.config import MediaConfig
from core.errors import MediaRelayError
from core.models import DownloadedAsset, GroupUser, MediaReference
from core.ports import GroupChatPort

LOGGER = logging.getLogger(__name__)

NAME_LENGTH = 6
NAME_ALPHABET = string.ascii_letters + string.digits
ANONYMOUS = "anonymous"
MAX_NAME_ATTEMPTS = 16

_rng = random.SystemRandom()


def generate_name(length: int = NAME_LENGTH) -> str:
    """Return a random alphanumeric file stem."""

    return "".join(_rng.choice(NAME_ALPHABET) for _ in range(length))


def replace_filename(source_name: str, stem: str) -> str:
    """Swap the base name of ``source_name`` for ``stem``, keeping the extension.

    >>> replace_filename("cat.jpg", "abc123")
    'abc123.jpg'
    >>> replace_filename("catfile", "abc123")
    'abc123'
    """

    base = PurePosixPath(source_name).name
    _, dot, ext = base.rpartition(".")
    if not dot or not ext:
        return stem
    return f"{stem}.{ext}"


def uploader_key(user: Optional[GroupUser]) -> str:
    if user is None or not user.username:
        return ANONYMOUS
    return user.username


def _join_url(base_url: str, *parts: str) -> str:
    return "/".join([base_url.rstrip("/"), *(quote(part) for part in parts)])


def _pick_filename(directory: Path, source_name: str) -> str:
    # Nothing else guards against two uploads drawing the same stem.
    for _ in range(MAX_NAME_ATTEMPTS):
        filename = replace_filename(source_name, generate_name())
        if not (directory / filename).exists():
            return filename
    raise MediaRelayError(f"Could not find a free file name in {directory}")


async def relay_media(
    transport: GroupChatPort,
    reference: MediaReference,
    uploader: Optional[GroupUser],
    config: MediaConfig,
) -> DownloadedAsset:
    """Download one attachment and return where it is stored and served.

    Any failure propagates; the caller decides that it simply means "no media".
    """

    if not config.base_url or not config.download_dir:
        raise MediaRelayError("Media relay requires base_url and download_dir")
    if (
        config.max_bytes is not None
        and reference.file_size is not None
        and reference.file_size > config.max_bytes
    ):
        raise MediaRelayError(
            f"Attachment too large ({reference.file_size} bytes). Max is {config.max_bytes} bytes."
        )

    user = uploader_key(uploader)
    user_dir = Path(config.download_dir) / user
    user_dir.mkdir(parents=True, exist_ok=True)

    remote_path = await transport.get_file_path(reference)
    if not remote_path:
        raise MediaRelayError(f"No remote path for media {reference.media_id}")

    content = await transport.fetch_file(reference)
    if config.max_bytes is not None and len(content) > config.max_bytes:
        raise MediaRelayError(f"Attachment too large ({len(content)} bytes). Max is {config.max_bytes} bytes.")
    filename = _pick_filename(user_dir, remote_path)
    target = user_dir / filename
    await asyncio.to_thread(target.write_bytes, content)
    LOGGER.info("Saved %s bytes from media %s to %s", len(content), reference.media_id, target)

    return DownloadedAsset(path=str(target), url=_join_url(config.base_url, user, filename))
