"""Action tags recorded in the audit log.

Tags are plain upper-case strings rather than a closed enum so a new
per-brand action can be recorded without touching the store.
"""

import re
from typing import Dict, Iterable, Tuple

from mailprefs.core.exceptions import ValidationError

PAUSE = "PAUSE"
UNPAUSE = "UNPAUSE"
BBAU = "BBAU"
UNSUBSCRIBE = "UNSUBSCRIBE"
SUBSCRIPTION_UPDATE = "SUBSCRIPTION_UPDATE"
UNSUBSCRIBE_ALL = "UNSUBSCRIBE_ALL"

KNOWN_ACTIONS: Tuple[str, ...] = (
    PAUSE,
    UNPAUSE,
    BBAU,
    UNSUBSCRIBE,
    SUBSCRIPTION_UPDATE,
    UNSUBSCRIBE_ALL,
)

# Always shown on the results page, even at zero.
SUMMARY_DEFAULTS: Tuple[str, ...] = (PAUSE, BBAU, UNSUBSCRIBE)

# Values of the ``action`` query parameter on the customer landing page.
QUERY_ACTIONS: Dict[str, str] = {
    "pause": PAUSE,
    "unpause": UNPAUSE,
    "international": BBAU,
    "unsubscribe": UNSUBSCRIBE,
}

_TAG_RE = re.compile(r"^[A-Z][A-Z0-9_]{0,63}$")


def normalize_action(tag: str) -> str:
    """Upper-case and check the shape of a tag. Unknown but well-formed tags pass."""
    normalized = (tag or "").strip().upper()
    if not _TAG_RE.match(normalized):
        raise ValidationError(f"Invalid action tag: {tag!r}")
    return normalized


def exportable_actions(extra: Iterable[str] = ()) -> Tuple[str, ...]:
    """Known tags plus any configured forward-compatible ones."""
    tags = list(KNOWN_ACTIONS)
    for tag in extra:
        normalized = normalize_action(tag)
        if normalized not in tags:
            tags.append(normalized)
    return tuple(tags)


def with_summary_defaults(summary: Dict[str, int]) -> Dict[str, int]:
    """Fill the always-displayed tags with 0 when absent."""
    filled = dict(summary)
    for tag in SUMMARY_DEFAULTS:
        filled.setdefault(tag, 0)
    return filled
