"""
Text processing for product embeddings: normalize values and format a catalog row
as "Field: value" lines.

Normalized text yields more consistent embeddings; image and URL fields are noise for
retrieval and are left out.
"""

import re
import unicodedata
from typing import Any

EXCLUDED_FIELDS: frozenset[str] = frozenset({"image", "url"})

_WHITESPACE = re.compile(r"\s+")


def normalize_value(value: Any) -> str:
    """NFKC-normalize and collapse all whitespace runs to single spaces."""
    if value is None:
        return ""
    text = unicodedata.normalize("NFKC", str(value))
    return _WHITESPACE.sub(" ", text).strip()


def _label(field: str) -> str:
    return field[:1].upper() + field[1:]


def product_to_text(record: dict[str, Any], excluded: frozenset[str] = EXCLUDED_FIELDS) -> str:
    """
    Format a product row for embedding, one "Field: value" line per column in column order.
    The first letter of each field name is upper-cased; excluded fields are skipped.
    """
    lines = [
        f"{_label(field)}: {normalize_value(value)}"
        for field, value in record.items()
        if field and field not in excluded
    ]
    return "\n".join(lines)
