"""Unit tests for Markdown rendering and transcript extraction."""

from __future__ import annotations

from chat2ebook.models.datatypes import (
    ExportConfig,
    MessageRole,
    RawMessage,
    RewriteRule,
    RuleTier,
    Transcript,
)
from chat2ebook.pipeline.extraction import TranscriptExtractor, speaker_name
from chat2ebook.text.markdown_renderer import MarkdownRenderer


def _agent_rule(pattern: str, replacement: str, **kwargs: object) -> RewriteRule:
    return RewriteRule(
        source_tier=RuleTier.GLOBAL,
        name=f"{pattern}->{replacement}",
        pattern=pattern,
        flags="g",
        replacement=replacement,
        **kwargs,
    )


def test_markdown_renderer_supports_chat_formatting() -> None:
    """Bold, line breaks, strikethrough, and emoji shortcodes should render."""

    renderer = MarkdownRenderer()

    assert renderer.render("Hello **world**") == "<p>Hello <strong>world</strong></p>"
    assert "<br" in renderer.render("one\ntwo")
    assert "<del>gone</del>" in renderer.render("~~gone~~")
    assert "\N{THUMBS UP SIGN}" in renderer.render("nice :thumbsup:")
    assert ":notanemoji:" in renderer.render("keep :notanemoji:")
    assert renderer.render("   ") == ""


def test_extract_renders_bold_agent_message() -> None:
    """A bold agent message should produce strong markup and plain visible text."""

    transcript = Transcript(messages=(RawMessage(0, False, "AI", "Hello **world**"),))
    extractor = TranscriptExtractor(renderer=MarkdownRenderer())

    records = extractor.extract(transcript, ExportConfig(include_agent=True))

    assert len(records) == 1
    assert "<strong>world</strong>" in records[0].rendered_html
    assert records[0].plain_text == "Hello world"


def test_extract_filters_by_role_and_range(sample_transcript: Transcript) -> None:
    """Records should fall inside the range and pass the role gates."""

    extractor = TranscriptExtractor(renderer=MarkdownRenderer())

    agent_only = extractor.extract(sample_transcript, ExportConfig())
    ranged = extractor.extract(
        sample_transcript,
        ExportConfig(include_user=True, range_start=1, range_end=2),
    )

    assert [record.sequence_index for record in agent_only] == [0, 2]
    assert all(not record.is_user_authored for record in agent_only)
    assert [record.sequence_index for record in ranged] == [1, 2]


def test_extract_clamps_range_and_returns_empty_when_nothing_selected(
    sample_transcript: Transcript,
) -> None:
    extractor = TranscriptExtractor(renderer=MarkdownRenderer())

    clamped = extractor.extract(
        sample_transcript,
        ExportConfig(include_user=True, range_start=2, range_end=99999),
    )
    inverted = extractor.extract(sample_transcript, ExportConfig(range_start=3, range_end=1))
    no_roles = extractor.extract(
        sample_transcript,
        ExportConfig(include_user=False, include_agent=False),
    )
    empty = extractor.extract(Transcript(messages=()), ExportConfig())

    assert [record.sequence_index for record in clamped] == [2, 3]
    assert inverted == []
    assert no_roles == []
    assert empty == []


def test_extract_measures_depth_from_newest_message_in_transcript(
    sample_transcript: Transcript,
) -> None:
    """Depth 0 is the newest message overall, even when it is filtered out."""

    rule = _agent_rule("forest", "woods", max_depth=1)
    extractor = TranscriptExtractor(renderer=MarkdownRenderer())

    records = extractor.extract(sample_transcript, ExportConfig(), rules=[rule])

    assert records[0].plain_text == "Welcome, traveler."
    assert records[1].plain_text == "The woods is quiet tonight."


def test_extract_applies_role_targeted_rules(sample_transcript: Transcript) -> None:
    rule = _agent_rule("Hello", "Hi", target_roles=frozenset({MessageRole.AGENT}))
    extractor = TranscriptExtractor(renderer=MarkdownRenderer())

    records = extractor.extract(
        sample_transcript,
        ExportConfig(include_user=True, include_agent=False),
        rules=[rule],
    )

    assert records[0].plain_text == "Hello there"


def test_extract_sanitizes_markup_from_rules_and_messages() -> None:
    """HTML injected by messages or replacements should lose scripts and handlers."""

    transcript = Transcript(
        messages=(RawMessage(0, False, "AI", "hi <script>alert(1)</script>"),)
    )
    rule = _agent_rule("hi", '<span onclick="x()">hey</span>')
    extractor = TranscriptExtractor(renderer=MarkdownRenderer())

    records = extractor.extract(transcript, ExportConfig(), rules=[rule])

    assert "script" not in records[0].rendered_html
    assert "onclick" not in records[0].rendered_html
    assert records[0].plain_text == "hey"


def test_speaker_name_defaults_by_role() -> None:
    assert speaker_name(RawMessage(0, True, "", "x")) == "You"
    assert speaker_name(RawMessage(0, False, "", "x")) == "AI"
    assert speaker_name(RawMessage(0, False, "Seraphina", "x")) == "Seraphina"
