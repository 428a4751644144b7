"""Transcript extraction into per-message render records.

Responsibilities:
- Select the configured message range and roles from a transcript snapshot.
- Run rewrite rules, Markdown rendering, and sanitization for each message.
- Return an empty list, not an error, when nothing is selected.
"""

from __future__ import annotations

from typing import Protocol, Sequence

from ..capabilities import MARKDOWN_CAPABILITY
from ..models.datatypes import ExportConfig, RawMessage, RenderRecord, RewriteRule, Transcript
from ..rules.aggregator import RuleAggregator
from ..rules.engine import RewriteEngine
from ..text.sanitizer import SanitizeMode, sanitize

DEFAULT_USER_SPEAKER = "You"
DEFAULT_AGENT_SPEAKER = "AI"


class HtmlRenderer(Protocol):
    """Text to HTML conversion capability."""

    def render(self, text: str) -> str:
        """Return HTML for `text`."""


def create_markdown_renderer() -> HtmlRenderer:
    """Load the Markdown capability and return a fresh renderer instance."""

    MARKDOWN_CAPABILITY.ensure_ready()
    from ..text.markdown_renderer import MarkdownRenderer

    return MarkdownRenderer()


def speaker_name(message: RawMessage) -> str:
    """Return the display name for a message, with role defaults for blank names."""

    if message.author_name:
        return message.author_name
    return DEFAULT_USER_SPEAKER if message.is_user_authored else DEFAULT_AGENT_SPEAKER


def selected_indices(transcript: Transcript, config: ExportConfig) -> range:
    """Return the clamped inclusive index range to export."""

    start = max(0, config.range_start)
    end = min(transcript.last_index, config.range_end)
    return range(start, end + 1)


class TranscriptExtractor:
    """Turn transcript messages into render records for document assembly."""

    def __init__(
        self,
        aggregator: RuleAggregator | None = None,
        engine: RewriteEngine | None = None,
        renderer: HtmlRenderer | None = None,
    ) -> None:
        """Initialize collaborators; the renderer is created on first use when omitted."""

        self._aggregator = aggregator
        self.engine = engine or RewriteEngine()
        self._renderer = renderer

    def _resolve_renderer(self) -> HtmlRenderer:
        if self._renderer is None:
            self._renderer = create_markdown_renderer()
        return self._renderer

    def collect_rules(self) -> tuple[RewriteRule, ...]:
        """Return the aggregated rule list, or no rules without an aggregator."""

        if self._aggregator is None:
            return tuple()
        return self._aggregator.collect().rules

    def extract(
        self,
        transcript: Transcript,
        config: ExportConfig,
        rules: Sequence[RewriteRule] | None = None,
    ) -> list[RenderRecord]:
        """Return render records for every selected message in ascending order.

        Args:
            transcript: Transcript snapshot.
            config: Export settings supplying range and role filters.
            rules: Pre-collected rules; collected once here when omitted.
        """

        if not transcript.messages:
            return []
        indices = selected_indices(transcript, config)
        if not indices:
            return []

        active_rules = tuple(rules) if rules is not None else self.collect_rules()
        renderer = self._resolve_renderer()
        last_index = transcript.last_index
        records: list[RenderRecord] = []
        for index in indices:
            message = transcript.messages[index]
            if not config.includes(message.is_user_authored):
                continue
            rewritten = self.engine.render(
                message.raw_text,
                message.is_user_authored,
                active_rules,
                depth=last_index - index,
            )
            html = sanitize(renderer.render(rewritten), SanitizeMode.HTML)
            records.append(
                RenderRecord(
                    sequence_index=message.sequence_index,
                    speaker_name=speaker_name(message),
                    is_user_authored=message.is_user_authored,
                    rendered_html=html,
                    plain_text=sanitize(html, SanitizeMode.PLAIN_TEXT),
                )
            )
        return records
