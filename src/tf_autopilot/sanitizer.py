"""Strip Markdown packaging from generator output."""

from __future__ import annotations

import re

from tf_autopilot.errors import SanitizeError, SanitizeFailureKind

# The opener may carry trailing blanks and a CRLF line ending.
_OPENING_FENCE = re.compile(r"\A```(?:terraform|hcl)?[ \t]*(?:\r?\n|\Z)")
# Trailing whitespace after the closing fence is tolerated.
_CLOSING_FENCE = re.compile(r"```\s*\Z")


def sanitize(raw_text: str) -> str:
    """Remove a leading and/or trailing code fence and trim the remainder.

    The opening fence may name ``terraform`` or ``hcl``. Each fence is
    handled independently; text without fences only gets trimmed.

    Raises:
        SanitizeError: If ``raw_text`` is empty, or nothing is left after
            stripping.
    """
    if not raw_text:
        raise SanitizeError(SanitizeFailureKind.EMPTY_INPUT, "input code cannot be empty")

    cleaned = _OPENING_FENCE.sub("", raw_text, count=1)
    cleaned = _CLOSING_FENCE.sub("", cleaned, count=1).strip()
    if not cleaned:
        raise SanitizeError(
            SanitizeFailureKind.EMPTY_AFTER_CLEAN, "cleaned code is empty after processing"
        )
    return cleaned
