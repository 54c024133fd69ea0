"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

IRC_SEND_FAILURE_POLICIES = ("log", "fatal")


@dataclass(frozen=True)
class MediaConfig:
    """Media mirroring settings for the Telegram -> IRC direction."""

    enabled: bool = False
    base_url: Optional[str] = None
    download_dir: Optional[str] = None
    max_bytes: Optional[int] = None

    @property
    def active(self) -> bool:
        # Mirroring needs both a place to write and a URL that serves it.
        return bool(self.enabled and self.base_url and self.download_dir)


@dataclass(frozen=True)
class RelayConfig:
    """Behaviour switches shared by both ingest loops."""

    debug: bool = False
    retry_sleep_seconds: float = 10.0
    irc_send_failure: str = "log"
    media: MediaConfig = field(default_factory=MediaConfig)

    def __post_init__(self) -> None:
        if self.irc_send_failure not in IRC_SEND_FAILURE_POLICIES:
            raise ValueError(
                f"irc_send_failure must be one of {', '.join(IRC_SEND_FAILURE_POLICIES)}"
            )
