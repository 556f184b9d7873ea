"""Application entry point for the affibot link converter."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv
from telethon import events

import settings
from adapters.http_resolver import HttpRedirectResolver
from adapters.sqlite_storage import SQLiteStorage
from adapters.telegram_bot_api import TelegramBotApiReplier
from adapters.telegram_mapper import message_from_event
from adapters.telegram_replier import TelethonReplier
from client import build_client, get_bot_token
from core.config import LinkConfig, ResolverConfig
from core.converter import LinkConverter
from core.errors import ConversionError, InvalidTagFormat
from core.links import LinkClassifier
from core.processor import MessageProcessor
from core.tags import is_valid_tag

NAME = "AFFIBOT"
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
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
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
        path = file_cfg.get("path", "logs/affibot.log")
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

    # httpx logs every request URL at INFO, including Bot API URLs.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.basicConfig(level=level, handlers=handlers)


def _build_classifier() -> LinkClassifier:
    return LinkClassifier(
        LinkConfig(
            marketplace_tlds=settings.MARKETPLACE_TLDS,
            shortener_domains=settings.SHORTENER_DOMAINS,
        )
    )


def _build_resolver() -> HttpRedirectResolver:
    return HttpRedirectResolver(
        ResolverConfig(
            max_redirects=settings.RESOLVER_MAX_REDIRECTS,
            timeout_seconds=settings.RESOLVER_TIMEOUT_SECONDS,
            user_agent=settings.RESOLVER_USER_AGENT,
        )
    )


def _open_storage() -> SQLiteStorage:
    logger = logging.getLogger(__name__)
    storage = SQLiteStorage(settings.DB_PATH, pending_ttl_minutes=settings.PENDING_TTL_MINUTES)
    # An unwritable database must stop startup, not fail per message.
    storage.init_db()
    removed = storage.cleanup_pending(settings.PENDING_TTL_MINUTES)
    logger.info("Storage ready: %s tags, %s stale /settag markers removed", storage.count_tags(), removed)
    return storage


def _build_processor(storage: SQLiteStorage, replier) -> MessageProcessor:
    converter = LinkConverter(
        classifier=_build_classifier(),
        resolver=_build_resolver(),
        tags=storage,
    )
    return MessageProcessor(
        converter=converter,
        tags=storage,
        pending=storage,
        replier=replier,
    )


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting affibot (polling)")

    bot_token = get_bot_token()
    storage = _open_storage()
    client = build_client()
    processor = _build_processor(storage, TelethonReplier(client))

    # Single handler keeps Telethon integration minimal and defers all
    # command and link handling to the core processor.
    @client.on(events.NewMessage(incoming=True))
    async def handler(event) -> None:
        try:
            message = message_from_event(event)
            if message is None:
                return
            await processor.handle(message)
        except Exception:
            logger.exception("Error while processing message")

    # Explicit lifecycle management makes start/shutdown behavior obvious.
    client.start(bot_token=bot_token)
    logger.info("Bot connected. Listening for incoming messages...")
    client.run_until_disconnected()


def _serve() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    import uvicorn

    from adapters.webhook import create_app

    logger.info("Starting affibot (webhook)")

    bot_token = get_bot_token()
    storage = _open_storage()
    processor = _build_processor(storage, TelegramBotApiReplier(bot_token))
    app = create_app(
        processor,
        path=settings.WEBHOOK_PATH,
        secret_token=os.getenv("WEBHOOK_SECRET") or None,
    )

    logger.info(
        "Listening for webhook updates on %s:%s%s",
        settings.WEBHOOK_HOST,
        settings.WEBHOOK_PORT,
        settings.WEBHOOK_PATH,
    )
    uvicorn.run(app, host=settings.WEBHOOK_HOST, port=settings.WEBHOOK_PORT, log_level="info")


class _SingleTagStore:
    """In-memory tag store for one-off conversions from the shell."""

    def __init__(self, tag: str) -> None:
        self._tag = tag

    def get_tag(self, user_id: int) -> Optional[str]:
        return self._tag

    def set_tag(self, user_id: int, tag: str) -> None:
        self._tag = tag


def _convert(url: str, tag: str) -> int:
    _configure_logging()

    if not is_valid_tag(tag):
        print(InvalidTagFormat.user_message, file=sys.stderr)
        return 2

    converter = LinkConverter(
        classifier=_build_classifier(),
        resolver=_build_resolver(),
        tags=_SingleTagStore(tag),
    )

    async def on_status(status: str) -> None:
        print(status, file=sys.stderr)

    try:
        conversion = asyncio.run(converter.convert(0, url, on_status=on_status))
    except ConversionError as exc:
        print(exc.user_message, file=sys.stderr)
        return 1

    print(conversion.affiliate_url)
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="affibot")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the long-polling bot")
    subparsers.add_parser("serve", help="Start the webhook server")
    convert_parser = subparsers.add_parser("convert", help="Convert one link and print the affiliate URL")
    convert_parser.add_argument("url", help="Amazon product link or short link")
    convert_parser.add_argument("--tag", required=True, help="Amazon Associate Tag, e.g. yourstore-20")

    args = parser.parse_args(argv)
    if args.command == "serve":
        _serve()
        return
    if args.command == "convert":
        raise SystemExit(_convert(args.url, args.tag))
    _run()


if __name__ == "__main__":
    main()
