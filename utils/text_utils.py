"""
Text utilities for Japanese marketplace exports.

Header names and cell values arrive with full-width characters, stray
quotes and ideographic spaces depending on the exporting shop system.
"""

import unicodedata
from typing import Optional


def normalize_header(header: Optional[str]) -> str:
    """
    Normalize a header cell for display and matching.

    - "＂売上ＩＤ＂" → "売上ID"
    - "購入者　名前" → "購入者 名前"
    - None → ""

    Args:
        header: Raw header cell

    Returns:
        NFKC-normalized, trimmed, quote-stripped string
    """
    if header is None:
        return ""

    # NFKC folds full-width ASCII and ideographic spaces
    text = unicodedata.normalize("NFKC", str(header)).strip()

    if len(text) >= 2 and text[0] == text[-1] == '"':
        text = text[1:-1].strip()

    return text


def fold_for_match(text: str) -> str:
    """Case-fold an already normalized string for substring matching."""
    return text.casefold()


def clean_cell(value: Optional[str]) -> str:
    """
    Clean a data cell for storage (preserves width and accents).

    Returns "" for None and whitespace-only values.
    """
    if value is None:
        return ""
    return str(value).strip()
