"""Unit tests for the single-page HTML and plain-text assemblers."""

from __future__ import annotations

from dataclasses import replace

from bs4 import BeautifulSoup

from chat2ebook.export.html import HtmlAssembler
from chat2ebook.export.plain_text import MESSAGE_SEPARATOR, PlainTextAssembler
from chat2ebook.models.datatypes import ExportConfig, ExportFormat, ExportStats, RenderRecord


def test_plain_text_starts_with_banner_and_info_block(
    sample_records: list[RenderRecord],
    export_config: ExportConfig,
    export_stats: ExportStats,
) -> None:
    """The front matter should be a fixed banner followed by labelled info rows."""

    text = PlainTextAssembler().render(sample_records, export_config, export_stats)
    lines = text.splitlines()

    assert lines[:4] == ["=" * 30, "      Night Walk", "      By Alex", "=" * 30]
    assert "[Book Information]" in lines
    assert "Chapters: 3 chapters (3 messages)" in lines
    assert "Total size: about 57 characters" in lines
    assert "Exported at: 2024-05-01 12:30:00" in lines
    assert "Generated by: Chat2Ebook" in lines
    assert "[Text Begins]" in lines


def test_plain_text_separates_messages_and_labels_only_user_turns(
    sample_records: list[RenderRecord],
    export_config: ExportConfig,
    export_stats: ExportStats,
) -> None:
    text = PlainTextAssembler().render(sample_records, export_config, export_stats)
    separator = f"\n\n{MESSAGE_SEPARATOR}\n\n"

    assert text.endswith(separator)
    assert text.count(separator) == 3
    assert f"Welcome, traveler.{separator}Alex:\nHello there{separator}" in text
    assert "Seraphina:" not in text


def test_plain_text_shows_agent_label_when_names_are_visible(
    sample_records: list[RenderRecord],
    export_config: ExportConfig,
    export_stats: ExportStats,
) -> None:
    config = replace(export_config, hide_agent_name=False)

    text = PlainTextAssembler().render(sample_records, config, export_stats)

    assert "Seraphina:\nWelcome, traveler." in text


def test_plain_text_artifact_is_utf8_encoded(
    export_config: ExportConfig,
    export_stats: ExportStats,
    record_factory,
) -> None:
    records = [record_factory(0, "Café ☕")]

    artifact = PlainTextAssembler().assemble(records, export_config, export_stats)

    assert artifact.format is ExportFormat.TXT
    assert artifact.filename == "Night Walk.txt"
    assert "Café ☕" in artifact.payload.decode("utf-8")


def test_html_page_contains_cover_info_and_messages(
    sample_records: list[RenderRecord],
    export_config: ExportConfig,
    export_stats: ExportStats,
) -> None:
    html = HtmlAssembler().render(sample_records, export_config, export_stats)
    soup = BeautifulSoup(html, "html.parser")

    assert html.startswith("<!DOCTYPE html>\n")
    assert soup.find("html")["lang"] == "en"
    assert soup.select_one(".cover h1").get_text() == "Night Walk"
    assert soup.select_one(".info h2").get_text() == "Book Information"
    assert len(soup.select(".msg")) == 3
    assert [label.get_text() for label in soup.select(".msg .speaker")] == ["Alex:"]
    assert soup.select(".msg .text")[2].get_text() == "The forest is quiet tonight."


def test_html_page_escapes_title_and_author(
    sample_records: list[RenderRecord],
    export_stats: ExportStats,
) -> None:
    """Markup in the title or author should never become document structure."""

    config = ExportConfig(title="<b>Bold</b> & Co", author="<i>Me</i>")

    html = HtmlAssembler().render(sample_records, config, export_stats)
    soup = BeautifulSoup(html, "html.parser")

    assert "&lt;b&gt;Bold&lt;/b&gt; &amp; Co" in html
    assert soup.find("title").get_text() == "<b>Bold</b> & Co"
    assert soup.select_one(".cover p").get_text() == "<i>Me</i>"
    assert soup.select_one(".cover b") is None


def test_html_page_drops_scripts_from_message_html(
    export_config: ExportConfig,
    export_stats: ExportStats,
    record_factory,
) -> None:
    record = record_factory(0, "safe<script>alert(1)</script>")

    html = HtmlAssembler().render([record], export_config, export_stats)

    assert "alert" not in html
    assert "safe" in html


def test_html_artifact_uses_title_filename(
    sample_records: list[RenderRecord],
    export_config: ExportConfig,
    export_stats: ExportStats,
) -> None:
    artifact = HtmlAssembler().assemble(sample_records, export_config, export_stats)

    assert artifact.format is ExportFormat.HTML
    assert artifact.filename == "Night Walk.html"
    assert artifact.media_type == "text/html"
