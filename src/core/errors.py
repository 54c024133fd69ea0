"""Error types raised across the relay core and its adapters."""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for relay errors."""


class TransportError(BridgeError):
    """A transport stream failed; the ingest loop backs off and resumes."""


class MediaRelayError(BridgeError):
    """An attachment could not be mirrored; the message relays without it."""


class RelayFatalError(BridgeError):
    """The relay cannot keep running and the process should exit."""
