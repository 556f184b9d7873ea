"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for storage, resolution and reply
adapters so that the core can be reused with different backends and with
either polling or webhook hosting.
"""

from __future__ import annotations

from typing import Optional, Protocol


class TagStorePort(Protocol):
    """Per-user affiliate tag storage. ``set_tag`` must be a single atomic write."""

    def get_tag(self, user_id: int) -> Optional[str]:
        ...

    def set_tag(self, user_id: int, tag: str) -> None:
        ...


class PendingStatePort(Protocol):
    """Tracks users whose next message is a tag candidate."""

    def is_pending(self, user_id: int) -> bool:
        ...

    def set_pending(self, user_id: int) -> None:
        ...

    def clear_pending(self, user_id: int) -> None:
        ...


class ResolverPort(Protocol):
    """Follows redirects for a short link and returns the landed URL."""

    async def resolve(self, url: str) -> str:
        ...


class ReplyPort(Protocol):
    """Outbound chat replies."""

    async def send(self, chat_id: int, text: str) -> None:
        ...
