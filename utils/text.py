"""Text normalization utilities for scraped provider content."""

import re
import unicodedata

_WS_RE = re.compile(r"\s+", re.UNICODE)


def clean_text(value):
    """Collapse runs of whitespace and strip the ends."""
    if not isinstance(value, str):
        return ""
    return _WS_RE.sub(" ", value).strip()


def normalize_paragraph(value):
    """Normalize one paragraph of chapter text.

    Leading full-width indentation is kept; control characters and trailing
    whitespace are dropped.
    """
    if value is None:
        return ""
    text = unicodedata.normalize("NFC", str(value))
    text = "".join(ch for ch in text if not unicodedata.category(ch).startswith("C"))
    return text.rstrip()
