"""Top-level package for Chat2Ebook.

This package exports chat transcripts to EPUB, standalone HTML, Word, and
plain-text documents after applying user-configured regex rewrite rules.
The main orchestration entry point is `Chat2EbookPipeline`.
"""

from .pipeline import Chat2EbookPipeline

__all__ = ["Chat2EbookPipeline", "__version__"]

__version__ = "0.1.0"
