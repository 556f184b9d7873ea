"""Core domain package for affibot.

Core contains tag validation, link classification, affiliate rewriting and
the conversion pipeline without any Telegram or storage-specific code.
"""
