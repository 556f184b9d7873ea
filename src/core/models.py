"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class InboundMessage:
    """Minimal message context used by the core processing pipeline."""

    user_id: int
    chat_id: int
    text: str


class LinkKind(Enum):
    DIRECT = "direct"
    SHORTENED = "shortened"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Conversion:
    """Result of a successful link conversion."""

    source_url: str
    resolved_url: str
    affiliate_url: str
    asin: str
