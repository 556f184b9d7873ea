"""Amazon Associate tag validation (core domain)."""

from __future__ import annotations

import re
from typing import NewType

AffiliateTag = NewType("AffiliateTag", str)

_TAG_RE = re.compile(r"[A-Za-z0-9]+(?:-[A-Za-z0-9]+)*-[0-9]{1,3}")


def is_valid_tag(value: str) -> bool:
    """Return True when the whole string is a well-formed associate tag.

    A tag is one or more hyphen-joined alphanumeric segments whose final
    segment is a 1-3 digit number, e.g. ``store-20``. Whitespace anywhere,
    including leading or trailing, is rejected.
    """

    return bool(_TAG_RE.fullmatch(value))
