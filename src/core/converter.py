"""Link conversion pipeline.

One inbound text goes through a strict order:
1) Extract the first URL-like token (AWAITING_URL)
2) Classify it; short links are resolved and re-classified (RESOLVING)
3) Look up the user's tag and rewrite the URL (REWRITING)
4) Return the affiliate URL (DONE)

Every rejection raises a ConversionError subclass, so each path ends either
in DONE or in exactly one error category.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from core.errors import NoTagRegistered, NoUrlFound, NotAmazonLink, ResolutionFailed, RewriteFailed
from core.links import LinkClassifier, has_only_tag, normalize_url, rewrite_affiliate_url
from core.models import Conversion, LinkKind
from core.ports import ResolverPort, TagStorePort

LOGGER = logging.getLogger(__name__)

RESOLVING_STATUS = "Detecting short link... Please wait while I resolve it for you."

StatusCallback = Callable[[str], Awaitable[None]]


class LinkConverter:
    """Turns free text into an affiliate URL for one user."""

    def __init__(
        self,
        classifier: LinkClassifier,
        resolver: ResolverPort,
        tags: TagStorePort,
    ) -> None:
        self._classifier = classifier
        self._resolver = resolver
        self._tags = tags

    async def convert(
        self,
        user_id: int,
        text: str,
        on_status: Optional[StatusCallback] = None,
    ) -> Conversion:
        """Run the pipeline and return the conversion, or raise ConversionError."""

        candidate = self._classifier.find_candidate(text)
        if candidate is None:
            raise NoUrlFound()
        source_url = normalize_url(candidate)

        kind = self._classifier.classify(source_url)
        if kind is LinkKind.UNKNOWN:
            raise NotAmazonLink(source_url)

        resolved_url = source_url
        if kind is LinkKind.SHORTENED:
            # The status reply is the user's only feedback while we block on the network.
            if on_status is not None:
                await on_status(RESOLVING_STATUS)
            resolved_url = await self._resolve(source_url)
            if self._classifier.classify(resolved_url) is not LinkKind.DIRECT:
                LOGGER.info("Short link %s landed outside Amazon products: %s", source_url, resolved_url)
                raise NotAmazonLink(resolved_url)

        tag = self._tags.get_tag(user_id)
        if not tag:
            raise NoTagRegistered()

        affiliate_url = rewrite_affiliate_url(resolved_url, tag)
        # An unchanged URL is only acceptable when it already carries this user's tag.
        if affiliate_url == resolved_url and not has_only_tag(resolved_url, tag):
            raise RewriteFailed(resolved_url)

        LOGGER.info("Converted link for user %s (%s)", user_id, kind.value)
        return Conversion(
            source_url=source_url,
            resolved_url=resolved_url,
            affiliate_url=affiliate_url,
            asin=self._classifier.extract_asin(resolved_url) or "",
        )

    async def _resolve(self, url: str) -> str:
        try:
            return await self._resolver.resolve(url)
        except ResolutionFailed:
            raise
        except Exception as exc:
            LOGGER.exception("Unexpected resolver error for %s", url)
            raise ResolutionFailed(str(exc)) from exc
