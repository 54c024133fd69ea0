"""Core domain package for telirc.

Core contains routing, discovery, media mirroring and relay logic without any
pydle, Telethon or storage-specific code, keeping the relay engine testable.
"""
