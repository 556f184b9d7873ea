"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LinkConfig:
    """Domain allow-lists used by the link classifier."""

    marketplace_tlds: tuple[str, ...]
    shortener_domains: tuple[str, ...]


@dataclass(frozen=True)
class ResolverConfig:
    """Redirect resolution limits consumed by resolver adapters."""

    max_redirects: int = 10
    timeout_seconds: float = 10.0
    user_agent: str = "Mozilla/5.0 (compatible; affibot/1.0)"


DEFAULT_MARKETPLACE_TLDS = (
    "com",
    "co.uk",
    "de",
    "fr",
    "es",
    "it",
    "ca",
    "com.au",
    "co.jp",
    "cn",
    "in",
)

DEFAULT_SHORTENER_DOMAINS = (
    "amzn.to",
    "a.co",
    "amzn-to.co",
    "amzn.eu",
    "amzn.asia",
)
