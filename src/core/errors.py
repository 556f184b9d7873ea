"""User-facing error taxonomy for the conversion pipeline.

Every error here is non-fatal: the processor turns it into a reply that
explains the cause and the expected input.
"""

from __future__ import annotations

from typing import Optional

TAG_EXAMPLE = "yourstore-20"


class AffibotError(Exception):
    """Base class for all affibot errors."""


class ConversionError(AffibotError):
    """A rejected message. ``user_message`` is sent back verbatim."""

    user_message = "Something went wrong while converting your link."

    def __init__(self, detail: Optional[str] = None) -> None:
        super().__init__(detail or self.user_message)
        self.detail = detail


class InvalidTagFormat(ConversionError):
    user_message = (
        "That does not appear to be a valid Amazon Associate Tag format. "
        f"Please try again with a format like {TAG_EXAMPLE}."
    )


class NoUrlFound(ConversionError):
    user_message = (
        "That doesn't look like a valid URL. Please send a full Amazon URL "
        "(e.g. amazon.com/dp/B0xxxxxxxx) or a short one (amzn.to/xxxx)."
    )


class NotAmazonLink(ConversionError):
    user_message = (
        "That doesn't look like a valid Amazon product link. Please send a full "
        "Amazon URL (e.g. amazon.com/dp/B0xxxxxxxx) or a short one (amzn.to/xxxx)."
    )


class ResolutionFailed(ConversionError):
    user_message = (
        "Sorry, I could not resolve the short link. Please try sending the full "
        "link or check if the short link is valid."
    )


class NoTagRegistered(ConversionError):
    user_message = (
        "You haven't set your Amazon Associate Tag yet. Use /settag to register "
        f"it first (e.g. /settag {TAG_EXAMPLE}), then send the link again."
    )


class RewriteFailed(ConversionError):
    user_message = (
        "Could not convert the link. Please ensure it's a valid Amazon product "
        "page URL (it should contain /dp/ or /gp/product/ and an ASIN)."
    )
