"""Deterministic slug helpers for export filenames.

Responsibilities:
- Normalize free-form book titles into stable filesystem-safe names.
- Keep slug behavior locale-independent for reproducible filenames.
"""

from __future__ import annotations

import re
import unicodedata

_UNSAFE_FILENAME_RE = re.compile(r'[\\/:*?"<>|\x00-\x1f]+')


def slugify_title(value: str) -> str:
    """Return a deterministic filesystem-safe ASCII slug for a book title."""

    normalized = unicodedata.normalize("NFKD", value)
    ascii_only = normalized.encode("ascii", "ignore").decode("ascii")
    lowered = ascii_only.lower().strip()
    collapsed = re.sub(r"[^a-z0-9]+", "-", lowered)
    slug = collapsed.strip("-")
    return slug or "chat"


def export_filename(title: str, extension: str) -> str:
    """Build the delivered filename for a title, keeping non-ASCII titles readable.

    Path separators and reserved characters are replaced; titles that are
    empty after cleanup fall back to the ASCII slug.
    """

    cleaned = _UNSAFE_FILENAME_RE.sub("_", unicodedata.normalize("NFC", title)).strip(" ._")
    stem = cleaned or slugify_title(title)
    return f"{stem}.{extension.lstrip('.')}"
