"""Text rendering, sanitization, and accounting components.

The Markdown renderer is not re-exported here; it is loaded lazily through
`chat2ebook.capabilities`.
"""

from .sanitizer import SanitizeMode, sanitize, visible_text
from .slug import export_filename, slugify_title
from .stats import chapter_count, compute_stats, split_chapters, total_chars

__all__ = [
    "SanitizeMode",
    "chapter_count",
    "compute_stats",
    "export_filename",
    "sanitize",
    "slugify_title",
    "split_chapters",
    "total_chars",
    "visible_text",
]
