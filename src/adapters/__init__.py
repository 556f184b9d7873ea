"""Adapters that connect the core to Telegram, HTTP and SQLite."""
