"""Chat2Ebook pipeline package.

This package contains orchestration and helper modules for transcript
extraction, document assembly, file delivery, and run manifests.
"""

from .extraction import TranscriptExtractor
from .orchestrator import Chat2EbookPipeline

__all__ = ["Chat2EbookPipeline", "TranscriptExtractor"]
