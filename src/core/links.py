"""Amazon link extraction, classification and affiliate rewriting (core domain)."""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from core.config import LinkConfig
from core.models import LinkKind

LOGGER = logging.getLogger(__name__)

# Query parameters that carry (possibly stale) affiliate attribution.
AFFILIATE_PARAMS = frozenset({"tag", "linkCode", "ascsubtag", "creativeASIN", "ref_"})

_SCHEME_URL_RE = re.compile(r"https?://\S+", re.IGNORECASE)
_PRODUCT_PATH_RE = re.compile(r"/(?:dp|gp/product)/([A-Z0-9]{10})", re.IGNORECASE)
_TRAILING_PUNCTUATION = ".,;:!?)]}>\"'"


def _host_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith(f".{domain}")


def _strip_trailing_punctuation(candidate: str) -> str:
    return candidate.rstrip(_TRAILING_PUNCTUATION)


class LinkClassifier:
    """Single source of truth for which URLs are Amazon products or short links.

    The classifier is strict: only URLs on a marketplace host whose path
    carries an ASIN (``/dp/<ASIN>`` or ``/gp/product/<ASIN>``) are direct.
    The same instance is used before and after redirect resolution.
    """

    def __init__(self, config: LinkConfig) -> None:
        self._marketplaces = tuple(f"amazon.{tld.lower().lstrip('.')}" for tld in config.marketplace_tlds)
        self._shorteners = tuple(domain.lower() for domain in config.shortener_domains)
        self._bare_url_re = self._build_bare_url_re(self._marketplaces + self._shorteners)

    @staticmethod
    def _build_bare_url_re(domains: Iterable[str]) -> re.Pattern:
        # Longest first so "amazon.com.au" wins over "amazon.com".
        alternatives = "|".join(re.escape(domain) for domain in sorted(domains, key=len, reverse=True))
        return re.compile(
            rf"(?<![\w@./-])(?:[\w-]+\.)*(?:{alternatives})(?=[/?#\s]|$)\S*",
            re.IGNORECASE,
        )

    def find_candidate(self, text: str) -> Optional[str]:
        """Return the first URL-like token in free text, or None.

        A ``http(s)://`` token always wins. Without one, a scheme-less token
        on a known Amazon or shortener host (``amazon.com/dp/...``) is
        accepted as is; :func:`normalize_url` adds the scheme later.
        """

        match = _SCHEME_URL_RE.search(text)
        if match is None:
            match = self._bare_url_re.search(text)
        if match is None:
            return None
        candidate = _strip_trailing_punctuation(match.group(0))
        return candidate or None

    def is_marketplace_host(self, host: str) -> bool:
        return any(_host_matches(host, domain) for domain in self._marketplaces)

    def is_shortener_host(self, host: str) -> bool:
        return any(_host_matches(host, domain) for domain in self._shorteners)

    def classify(self, url: str) -> LinkKind:
        """Classify a URL as a direct product link, a short link, or neither."""

        parts = _split(normalize_url(url))
        if parts is None or not parts.hostname:
            return LinkKind.UNKNOWN
        host = parts.hostname.lower()
        if self.is_marketplace_host(host) and _PRODUCT_PATH_RE.search(parts.path):
            return LinkKind.DIRECT
        if self.is_shortener_host(host):
            return LinkKind.SHORTENED
        return LinkKind.UNKNOWN

    def extract_asin(self, url: str) -> Optional[str]:
        """Return the upper-cased ASIN of a direct product link."""

        if self.classify(url) is not LinkKind.DIRECT:
            return None
        parts = _split(normalize_url(url))
        match = _PRODUCT_PATH_RE.search(parts.path)
        return match.group(1).upper()


def _split(url: str):
    try:
        return urlsplit(url)
    except ValueError:
        return None


def normalize_url(candidate: str) -> str:
    """Prefix scheme-less candidates with ``https://``."""

    if re.match(r"https?://", candidate, re.IGNORECASE):
        return candidate
    return f"https://{candidate}"


def rewrite_affiliate_url(url: str, tag: Optional[str]) -> str:
    """Return ``url`` with its affiliate attribution replaced by ``tag``.

    Existing affiliate parameters are stripped and a single ``tag`` is
    appended. Scheme, host, path, fragment and every other query parameter
    are kept in order. Without a tag, or when ``url`` has no scheme or host,
    the input is returned unchanged.
    """

    if not tag:
        return url

    parts = _split(url)
    if parts is None or not parts.scheme or not parts.netloc:
        LOGGER.debug("Not rewriting unparseable URL %s", url)
        return url

    params = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in AFFILIATE_PARAMS
    ]
    params.append(("tag", tag))
    return urlunsplit(parts._replace(query=urlencode(params)))


def has_only_tag(url: str, tag: str) -> bool:
    """True when ``url`` already carries ``tag`` as its single affiliate parameter."""

    parts = _split(url)
    if parts is None:
        return False
    affiliate = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key in AFFILIATE_PARAMS
    ]
    return affiliate == [("tag", tag)]
