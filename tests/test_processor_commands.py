from __future__ import annotations

import asyncio
from typing import Optional

from core.config import DEFAULT_MARKETPLACE_TLDS, DEFAULT_SHORTENER_DOMAINS, LinkConfig
from core.converter import RESOLVING_STATUS, LinkConverter
from core.errors import InvalidTagFormat, NoTagRegistered, NotAmazonLink
from core.links import LinkClassifier
from core.models import InboundMessage
from core.processor import (
    GENERIC_FAILURE,
    SETTAG_PROMPT,
    UNKNOWN_COMMAND,
    WELCOME_NEW,
    MessageProcessor,
    parse_command,
)


class FakeStorage:
    def __init__(self) -> None:
        self.tags: dict[int, str] = {}
        self.pending: set[int] = set()

    def get_tag(self, user_id: int) -> Optional[str]:
        return self.tags.get(user_id)

    def set_tag(self, user_id: int, tag: str) -> None:
        self.tags[user_id] = tag

    def is_pending(self, user_id: int) -> bool:
        return user_id in self.pending

    def set_pending(self, user_id: int) -> None:
        self.pending.add(user_id)

    def clear_pending(self, user_id: int) -> None:
        self.pending.discard(user_id)


class FakeReplier:
    def __init__(self) -> None:
        self.sent: list[tuple[int, str]] = []

    async def send(self, chat_id: int, text: str) -> None:
        self.sent.append((chat_id, text))

    @property
    def texts(self) -> list[str]:
        return [text for _, text in self.sent]


class FakeResolver:
    def __init__(self, landing: str) -> None:
        self.landing = landing

    async def resolve(self, url: str) -> str:
        return self.landing


class ExplodingStorage(FakeStorage):
    def get_tag(self, user_id: int) -> Optional[str]:
        raise RuntimeError("store unavailable")


def _processor(
    storage: FakeStorage,
    replier: FakeReplier,
    landing: str = "https://www.amazon.com/dp/B00005N5PF",
) -> MessageProcessor:
    classifier = LinkClassifier(
        LinkConfig(
            marketplace_tlds=DEFAULT_MARKETPLACE_TLDS,
            shortener_domains=DEFAULT_SHORTENER_DOMAINS,
        )
    )
    converter = LinkConverter(classifier=classifier, resolver=FakeResolver(landing), tags=storage)
    return MessageProcessor(converter=converter, tags=storage, pending=storage, replier=replier)


def _message(text: str, user_id: int = 7, chat_id: int = 70) -> InboundMessage:
    return InboundMessage(user_id=user_id, chat_id=chat_id, text=text)


def test_parse_command() -> None:
    assert parse_command("/settag store-20") == ("settag", "store-20")
    assert parse_command("/Start@AffiBot") == ("start", "")
    assert parse_command("hello /start") is None


def test_settag_flow_registers_tag() -> None:
    storage = FakeStorage()
    replier = FakeReplier()
    processor = _processor(storage, replier)

    asyncio.run(processor.handle(_message("/settag")))
    assert storage.is_pending(7)
    assert replier.texts[-1] == SETTAG_PROMPT

    asyncio.run(processor.handle(_message("  store-20  ")))
    assert storage.tags[7] == "store-20"
    assert not storage.is_pending(7)
    assert "store-20" in replier.texts[-1]
    assert all(chat_id == 70 for chat_id, _ in replier.sent)


def test_invalid_tag_keeps_pending_state() -> None:
    storage = FakeStorage()
    replier = FakeReplier()
    processor = _processor(storage, replier)

    asyncio.run(processor.handle(_message("/settag")))
    asyncio.run(processor.handle(_message("not a tag")))

    assert storage.is_pending(7)
    assert 7 not in storage.tags
    assert replier.texts[-1] == InvalidTagFormat.user_message


def test_inline_settag_needs_no_pending_state() -> None:
    storage = FakeStorage()
    replier = FakeReplier()
    processor = _processor(storage, replier)

    asyncio.run(processor.handle(_message("/settag shop-21")))

    assert storage.tags[7] == "shop-21"
    assert not storage.is_pending(7)


def test_start_resets_pending_and_reports_status() -> None:
    storage = FakeStorage()
    replier = FakeReplier()
    processor = _processor(storage, replier)

    asyncio.run(processor.handle(_message("/settag")))
    asyncio.run(processor.handle(_message("/start")))
    assert not storage.is_pending(7)
    assert replier.texts[-1] == WELCOME_NEW

    storage.set_tag(7, "store-20")
    asyncio.run(processor.handle(_message("/start")))
    assert "store-20" in replier.texts[-1]


def test_unknown_command() -> None:
    replier = FakeReplier()
    processor = _processor(FakeStorage(), replier)
    asyncio.run(processor.handle(_message("/frobnicate")))
    assert replier.texts == [UNKNOWN_COMMAND]


def test_direct_link_conversion_reply() -> None:
    storage = FakeStorage()
    storage.set_tag(7, "store-20")
    replier = FakeReplier()
    processor = _processor(storage, replier)

    asyncio.run(processor.handle(_message("https://www.amazon.com/dp/B00005N5PF?th=1")))

    assert len(replier.texts) == 1
    assert "https://www.amazon.com/dp/B00005N5PF?th=1&tag=store-20" in replier.texts[0]


def test_link_without_tag_asks_for_registration() -> None:
    replier = FakeReplier()
    processor = _processor(FakeStorage(), replier)

    asyncio.run(processor.handle(_message("https://www.amazon.com/dp/B00005N5PF")))

    assert replier.texts == [NoTagRegistered.user_message]


def test_short_link_sends_status_before_result() -> None:
    storage = FakeStorage()
    storage.set_tag(7, "store-20")
    replier = FakeReplier()
    processor = _processor(storage, replier, landing="https://example.com/elsewhere")

    asyncio.run(processor.handle(_message("https://amzn.to/abc123")))

    assert replier.texts == [RESOLVING_STATUS, NotAmazonLink.user_message]


def test_unexpected_errors_are_reported_not_raised() -> None:
    replier = FakeReplier()
    processor = _processor(ExplodingStorage(), replier)

    asyncio.run(processor.handle(_message("https://www.amazon.com/dp/B00005N5PF")))

    assert replier.texts == [GENERIC_FAILURE]


def test_blank_messages_are_ignored() -> None:
    replier = FakeReplier()
    processor = _processor(FakeStorage(), replier)
    asyncio.run(processor.handle(_message("   ")))
    assert replier.sent == []


class FailingReplier(FakeReplier):
    async def send(self, chat_id: int, text: str) -> None:
        self.sent.append((chat_id, text))
        raise RuntimeError("Bot API error 403: bot was blocked by the user")


def test_failing_replies_do_not_escape_the_processor() -> None:
    storage = FakeStorage()
    storage.set_tag(7, "store-20")
    replier = FailingReplier()
    processor = _processor(storage, replier)

    asyncio.run(processor.handle(_message("https://www.amazon.com/dp/B00005N5PF")))

    assert replier.texts[-1] == GENERIC_FAILURE
