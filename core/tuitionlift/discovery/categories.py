"""Award categories inferred from a scholarship page."""

import re

NEED_BASED = "need_based"
MERIT = "merit"
MINORITY = "minority"
FIELD_SPECIFIC = "field_specific"
OTHER = "other"

_CATEGORY_PATTERNS = [
    (NEED_BASED, re.compile(r"\bneed[- ]?based\b|\blow income\b|\bpell\b")),
    (MERIT, re.compile(r"\bmerit")),
    (MINORITY, re.compile(r"\bminority\b|\bdiversity\b")),
    (FIELD_SPECIFIC, re.compile(r"\bengineering\b|\bstem\b|\bmajors?\b")),
]


def infer_categories(title: str, content: str) -> list[str]:
    """Every matching category in a fixed order; ``["other"]`` when none match."""
    text = f"{title} {content}".lower()
    categories = [name for name, pattern in _CATEGORY_PATTERNS if pattern.search(text)]
    return categories or [OTHER]
