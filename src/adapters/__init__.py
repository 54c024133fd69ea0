"""Adapters wiring pydle, Telethon and SQLite to the relay core ports."""
