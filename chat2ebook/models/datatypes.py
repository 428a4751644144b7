"""Core datatypes shared across Chat2Ebook modules.

Responsibilities:
- Represent immutable records exchanged between export stages.
- Provide explicit typing for the transcript, rule, and render shapes.

Key types:
- `RawMessage`, `Transcript`, `RewriteRule`, `RenderRecord`, `ExportConfig`,
  `Chapter`, `ExportStats`, `ExportArtifact`, and `ExportManifest`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Mapping


class MessageRole(str, Enum):
    """Author role of a chat message."""

    USER = "user"
    AGENT = "agent"


class RuleTier(str, Enum):
    """Provenance tier of a rewrite rule, in application order."""

    GLOBAL = "global"
    CHARACTER = "character"
    PRESET = "preset"


class ExportFormat(str, Enum):
    """Supported output document formats."""

    EPUB = "epub"
    HTML = "html"
    DOCX = "docx"
    TXT = "txt"


@dataclass(frozen=True, slots=True)
class RawMessage:
    """One message as recorded by the host transcript.

    Attributes:
        sequence_index: 0-based position in the full transcript.
        is_user_authored: Whether the user (not the agent) wrote the message.
        author_name: Display name recorded with the message, may be blank.
        raw_text: Unrendered message text.
    """

    sequence_index: int
    is_user_authored: bool
    author_name: str
    raw_text: str


@dataclass(frozen=True, slots=True)
class Transcript:
    """Point-in-time snapshot of a chat transcript.

    Attributes:
        messages: Messages in ascending sequence order.
        user_name: Name of the human participant, when known.
        character_name: Name of the agent character, when known.
        materialized_count: Number of messages the host has rendered for display.
    """

    messages: tuple[RawMessage, ...]
    user_name: str | None = None
    character_name: str | None = None
    materialized_count: int | None = None

    @property
    def last_index(self) -> int:
        return len(self.messages) - 1

    @property
    def displayed_count(self) -> int:
        if self.materialized_count is None:
            return len(self.messages)
        return min(self.materialized_count, len(self.messages))


@dataclass(frozen=True, slots=True)
class RewriteRule:
    """Canonical regex rewrite rule built from one heterogeneous rule record.

    Attributes:
        source_tier: Provenance tier the rule was read from.
        name: Human-readable rule name.
        pattern: Regex body without literal delimiters.
        flags: JavaScript-style flag letters (`g`, `i`, `m`, `s`, ...).
        replacement: Replacement template with `$1`-style back-references.
        target_roles: Roles the rule applies to; empty means both.
        min_depth: Minimum message depth (inclusive), or `None`.
        max_depth: Maximum message depth (inclusive), or `None`.
        enabled: Whether the rule is active.
        trim_strings: Strings removed from the matched text before `$&` insertion.
        prompt_only: Whether the rule only rewrites model prompts, not displayed text.
    """

    source_tier: RuleTier
    name: str
    pattern: str
    flags: str
    replacement: str
    target_roles: frozenset[MessageRole] = field(default_factory=frozenset)
    min_depth: int | None = None
    max_depth: int | None = None
    enabled: bool = True
    trim_strings: tuple[str, ...] = field(default_factory=tuple)
    prompt_only: bool = False


@dataclass(frozen=True, slots=True)
class RenderRecord:
    """Fully processed form of one included message."""

    sequence_index: int
    speaker_name: str
    is_user_authored: bool
    rendered_html: str
    plain_text: str


@dataclass(frozen=True, slots=True)
class ExportConfig:
    """Per-export document settings, read-only for the duration of one run.

    Attributes:
        title: Book title.
        author: Book author.
        range_start: First message index to export (inclusive).
        range_end: Last message index to export (inclusive).
        include_user: Whether user-authored messages are exported.
        include_agent: Whether agent-authored messages are exported.
        hide_agent_name: Whether speaker labels are omitted for agent messages.
        chapter_size: Messages per EPUB chapter.
        language: Document language code for EPUB metadata.
    """

    title: str = "Chat2Ebook"
    author: str = "User"
    range_start: int = 0
    range_end: int = 99999
    include_user: bool = False
    include_agent: bool = True
    hide_agent_name: bool = True
    chapter_size: int = 1
    language: str = "en"

    @property
    def effective_chapter_size(self) -> int:
        return self.chapter_size if self.chapter_size > 0 else 1

    def includes(self, is_user_authored: bool) -> bool:
        """Return whether messages of the given role pass the role gate."""

        return self.include_user if is_user_authored else self.include_agent

    def shows_label(self, is_user_authored: bool) -> bool:
        """Return whether a speaker label is rendered for the given role."""

        return is_user_authored or not self.hide_agent_name


@dataclass(frozen=True, slots=True)
class Chapter:
    """Contiguous group of render records used for EPUB pagination."""

    index: int
    title: str
    records: tuple[RenderRecord, ...]


@dataclass(frozen=True, slots=True)
class ExportStats:
    """Size accounting shown in generated front matter."""

    record_count: int
    chapter_count: int
    total_chars: int
    exported_at: datetime


@dataclass(frozen=True, slots=True)
class ExportArtifact:
    """One assembled output document ready for delivery."""

    format: ExportFormat
    filename: str
    media_type: str
    payload: bytes


@dataclass(frozen=True, slots=True)
class ExportManifest:
    """Deterministic record of a Chat2Ebook export run.

    Attributes:
        run_id: Stable run identifier.
        config_hash: Hash of canonical export configuration.
        stats: Size accounting for the exported records.
        artifacts: Delivered artifact paths keyed by format id.
        skipped_rules: Names of rules skipped because they failed to compile or apply.
        extra: Additional implementation-specific metadata.
    """

    run_id: str
    config_hash: str
    stats: ExportStats
    artifacts: Mapping[str, Path] = field(default_factory=dict)
    skipped_rules: tuple[str, ...] = field(default_factory=tuple)
    extra: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class TranscriptSummary:
    """Read-only overview of a transcript and what an export would select.

    Attributes:
        message_count: Total messages in the transcript.
        user_count: User-authored messages.
        agent_count: Agent-authored messages.
        displayed_count: Messages the host has materialized for display.
        selected_count: Messages passing the configured range and role gates.
        user_name: Name of the human participant, when known.
        character_name: Name of the agent character, when known.
    """

    message_count: int
    user_count: int
    agent_count: int
    displayed_count: int
    selected_count: int
    user_name: str | None = None
    character_name: str | None = None
