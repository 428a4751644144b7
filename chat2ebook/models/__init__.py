"""Shared typed data models for Chat2Ebook.

This package contains dataclasses used across export modules to avoid
cross-module coupling and circular imports.
"""

from .datatypes import (
    Chapter,
    ExportArtifact,
    ExportConfig,
    ExportFormat,
    ExportManifest,
    ExportStats,
    MessageRole,
    RawMessage,
    RenderRecord,
    RewriteRule,
    RuleTier,
    Transcript,
    TranscriptSummary,
)

__all__ = [
    "Chapter",
    "ExportArtifact",
    "ExportConfig",
    "ExportFormat",
    "ExportManifest",
    "ExportStats",
    "MessageRole",
    "RawMessage",
    "RenderRecord",
    "RewriteRule",
    "RuleTier",
    "Transcript",
    "TranscriptSummary",
]
