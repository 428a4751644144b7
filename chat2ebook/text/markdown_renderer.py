"""Markdown to HTML rendering for rewritten message text.

Line breaks render as `<br />`, and strikethrough, tables, fenced code and
`:shortcode:` emoji are enabled. Obtain instances through
`create_markdown_renderer`, which loads the backing libraries lazily.
"""

from __future__ import annotations

import xml.etree.ElementTree as etree

import emoji
import markdown
from markdown.extensions import Extension
from markdown.inlinepatterns import InlineProcessor, SimpleTagInlineProcessor

STRIKETHROUGH_RE = r"(~{2})(.+?)~{2}"
EMOJI_SHORTCODE_RE = r":([a-zA-Z0-9_+\-]+):"


class StrikethroughExtension(Extension):
    """Render `~~text~~` as `<del>text</del>`."""

    def extendMarkdown(self, md: markdown.Markdown) -> None:
        # Above emphasis so `~~**x**~~` nests correctly.
        md.inlinePatterns.register(
            SimpleTagInlineProcessor(STRIKETHROUGH_RE, "del"), "strikethrough", 65
        )


class EmojiInlineProcessor(InlineProcessor):
    """Replace known `:shortcode:` aliases with emoji characters."""

    def handleMatch(  # type: ignore[override]
        self, m, data: str
    ) -> tuple[etree.Element | str | None, int | None, int | None]:
        shortcode = m.group(0)
        rendered = emoji.emojize(shortcode, language="alias")
        if rendered == shortcode:
            return None, None, None
        return rendered, m.start(0), m.end(0)


class EmojiExtension(Extension):
    """Register the emoji shortcode processor."""

    def extendMarkdown(self, md: markdown.Markdown) -> None:
        md.inlinePatterns.register(EmojiInlineProcessor(EMOJI_SHORTCODE_RE, md), "emoji", 25)


class MarkdownRenderer:
    """Convert message text to HTML with chat-style formatting features."""

    EXTENSIONS = ("nl2br", "tables", "fenced_code", "sane_lists")

    def __init__(self) -> None:
        """Build one reusable converter instance."""

        self._markdown = markdown.Markdown(
            extensions=[*self.EXTENSIONS, StrikethroughExtension(), EmojiExtension()],
        )

    def render(self, text: str) -> str:
        """Return HTML for `text`; blank input renders as an empty string."""

        if not text or not text.strip():
            return ""
        return self._markdown.reset().convert(text)
