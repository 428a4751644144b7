"""HTML to `.docx` conversion backed by python-docx.

Responsibilities:
- Walk a parsed HTML tree and emit Word paragraphs, headings, lists, and tables.
- Map inline formatting tags and `color:` styles onto run properties.
- Honor `page-break-before:always` blocks and configurable page margins.

Import through `DOCX_CAPABILITY`; this module imports python-docx eagerly.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import io
import re
from typing import Iterable

from bs4 import BeautifulSoup, Comment, NavigableString, PageElement, Tag
from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Cm, RGBColor
from docx.text.paragraph import Paragraph

MONOSPACE_FONT = "Courier New"
SCENE_BREAK = "* * *"
INLINE_TAGS = frozenset(
    {
        "a",
        "abbr",
        "b",
        "bdi",
        "br",
        "cite",
        "code",
        "del",
        "em",
        "font",
        "i",
        "img",
        "ins",
        "kbd",
        "label",
        "mark",
        "q",
        "s",
        "samp",
        "small",
        "span",
        "strike",
        "strong",
        "sub",
        "sup",
        "time",
        "u",
        "var",
    }
)
HEADING_TAGS = {f"h{level}": level for level in range(1, 7)}
_WHITESPACE_RE = re.compile(r"\s+")
_COLOR_RE = re.compile(r"(?:^|;)\s*color\s*:\s*#([0-9a-fA-F]{3}|[0-9a-fA-F]{6})\b")
_PAGE_BREAK_RE = re.compile(r"page-break-before\s*:\s*always", re.IGNORECASE)
_CENTER_RE = re.compile(r"text-align\s*:\s*center", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class RunStyle:
    """Character formatting accumulated from enclosing inline tags."""

    bold: bool = False
    italic: bool = False
    underline: bool = False
    strike: bool = False
    monospace: bool = False
    superscript: bool = False
    subscript: bool = False
    color: str | None = None

    def nested(self, tag: Tag) -> RunStyle:
        """Return the style in effect inside `tag`."""

        name = tag.name
        style = self
        if name in {"b", "strong"}:
            style = replace(style, bold=True)
        elif name in {"i", "em", "cite", "var"}:
            style = replace(style, italic=True)
        elif name in {"u", "ins", "a"}:
            style = replace(style, underline=True)
        elif name in {"s", "del", "strike"}:
            style = replace(style, strike=True)
        elif name in {"code", "kbd", "samp"}:
            style = replace(style, monospace=True)
        elif name == "sup":
            style = replace(style, superscript=True)
        elif name == "sub":
            style = replace(style, subscript=True)

        color = parse_color(tag)
        if color is not None:
            style = replace(style, color=color)
        return style


def parse_color(tag: Tag) -> str | None:
    """Return a six-digit hex color from `style` or a `<font color>` attribute."""

    raw = tag.get("style")
    match = _COLOR_RE.search(raw) if isinstance(raw, str) else None
    if match is None and tag.name == "font":
        value = tag.get("color")
        if isinstance(value, str):
            match = re.fullmatch(r"#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})", value.strip())
    if match is None:
        return None
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(char * 2 for char in digits)
    return digits.upper()


def is_page_break(tag: Tag) -> bool:
    style = tag.get("style")
    return isinstance(style, str) and _PAGE_BREAK_RE.search(style) is not None


def is_centered(tag: Tag) -> bool:
    style = tag.get("style")
    return isinstance(style, str) and _CENTER_RE.search(style) is not None


def _is_inline(node: PageElement) -> bool:
    if isinstance(node, NavigableString):
        return True
    return isinstance(node, Tag) and node.name in INLINE_TAGS


def _has_only_inline_children(tag: Tag) -> bool:
    return all(_is_inline(child) for child in tag.children)


class DocxConverter:
    """Convert one HTML document into `.docx` bytes."""

    def __init__(self, margin_cm: float = 2.0) -> None:
        self.margin_cm = margin_cm

    def convert(self, html: str) -> bytes:
        """Return the Word document built from `html`."""

        document = Document()
        for section in document.sections:
            margin = Cm(self.margin_cm)
            section.top_margin = margin
            section.bottom_margin = margin
            section.left_margin = margin
            section.right_margin = margin

        soup = BeautifulSoup(html, "html.parser")
        root = soup.body or soup
        self._convert_blocks(document, root.children)

        buffer = io.BytesIO()
        document.save(buffer)
        return buffer.getvalue()

    def _convert_blocks(
        self,
        document,
        nodes: Iterable[PageElement],
        paragraph_style: str | None = None,
    ) -> None:
        pending: list[PageElement] = []
        for node in list(nodes):
            if isinstance(node, Comment):
                continue
            if _is_inline(node):
                pending.append(node)
                continue
            self._flush_inline(document, pending, paragraph_style)
            pending = []
            self._convert_block(document, node, paragraph_style)
        self._flush_inline(document, pending, paragraph_style)

    def _flush_inline(
        self,
        document,
        nodes: list[PageElement],
        paragraph_style: str | None,
    ) -> None:
        if not any(
            not isinstance(node, NavigableString) or node.strip() for node in nodes
        ):
            return
        paragraph = document.add_paragraph(style=paragraph_style)
        for node in nodes:
            self._add_inline(paragraph, node, RunStyle())

    def _convert_block(self, document, tag: Tag, paragraph_style: str | None) -> None:
        name = tag.name
        if name in HEADING_TAGS:
            paragraph = document.add_heading(level=HEADING_TAGS[name])
            self._add_children(paragraph, tag, RunStyle())
        elif name in {"ul", "ol"}:
            self._convert_list(document, tag, level=0)
        elif name == "blockquote":
            self._convert_container(document, tag, "Quote")
        elif name == "pre":
            self._convert_preformatted(document, tag)
        elif name == "hr":
            paragraph = document.add_paragraph(SCENE_BREAK)
            paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        elif name == "table":
            self._convert_table(document, tag)
        else:
            if is_page_break(tag):
                document.add_page_break()
            self._convert_container(document, tag, paragraph_style)

    def _convert_container(self, document, tag: Tag, paragraph_style: str | None) -> None:
        if _has_only_inline_children(tag):
            if not tag.get_text().strip() and tag.find(["br", "img"]) is None:
                return
            paragraph = document.add_paragraph(style=paragraph_style)
            if tag.name == "center" or is_centered(tag):
                paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
            self._add_children(paragraph, tag, RunStyle().nested(tag))
            return
        self._convert_blocks(document, tag.children, paragraph_style)

    def _convert_list(self, document, tag: Tag, level: int) -> None:
        base = "List Number" if tag.name == "ol" else "List Bullet"
        style_name = base if level == 0 else f"{base} {min(level + 1, 3)}"
        for item in tag.find_all("li", recursive=False):
            nested_lists = [child for child in item.children if isinstance(child, Tag) and child.name in {"ul", "ol"}]
            paragraph = document.add_paragraph(style=style_name)
            for child in item.children:
                if child in nested_lists:
                    continue
                self._add_inline(paragraph, child, RunStyle())
            for nested in nested_lists:
                self._convert_list(document, nested, level + 1)

    def _convert_preformatted(self, document, tag: Tag) -> None:
        for br in tag.find_all("br"):
            br.replace_with("\n")
        lines = tag.get_text().strip("\n").split("\n")
        paragraph = document.add_paragraph()
        run = paragraph.add_run()
        run.font.name = MONOSPACE_FONT
        for position, line in enumerate(lines):
            if position:
                run.add_break()
            run.add_text(line)

    def _convert_table(self, document, tag: Tag) -> None:
        rows = [row.find_all(["td", "th"], recursive=False) for row in tag.find_all("tr")]
        rows = [cells for cells in rows if cells]
        if not rows:
            return
        columns = max(len(cells) for cells in rows)
        table = document.add_table(rows=len(rows), cols=columns)
        table.style = "Table Grid"
        for row_index, cells in enumerate(rows):
            for column_index, cell in enumerate(cells):
                paragraph = table.cell(row_index, column_index).paragraphs[0]
                style = RunStyle(bold=cell.name == "th")
                self._add_children(paragraph, cell, style)

    def _add_children(self, paragraph: Paragraph, tag: Tag, style: RunStyle) -> None:
        for child in tag.children:
            self._add_inline(paragraph, child, style)

    def _add_inline(self, paragraph: Paragraph, node: PageElement, style: RunStyle) -> None:
        if isinstance(node, Comment):
            return
        if isinstance(node, NavigableString):
            text = _WHITESPACE_RE.sub(" ", str(node))
            if not text.strip() and not paragraph.text:
                return
            self._apply_style(paragraph.add_run(text), style)
            return
        if not isinstance(node, Tag):
            return
        if node.name == "br":
            paragraph.add_run().add_break()
            return
        if node.name == "img":
            alt = node.get("alt")
            if isinstance(alt, str) and alt.strip():
                self._apply_style(paragraph.add_run(f"[{alt.strip()}]"), style)
            return
        if node.name in {"ul", "ol"}:
            # Lists nested inside inline context degrade to one line per item.
            for item in node.find_all("li", recursive=False):
                paragraph.add_run().add_break()
                self._apply_style(paragraph.add_run(f"- {item.get_text(' ', strip=True)}"), style)
            return
        nested = style.nested(node)
        for child in node.children:
            self._add_inline(paragraph, child, nested)

    def _apply_style(self, run, style: RunStyle) -> None:
        if style.bold:
            run.bold = True
        if style.italic:
            run.italic = True
        if style.underline:
            run.underline = True
        if style.strike:
            run.font.strike = True
        if style.monospace:
            run.font.name = MONOSPACE_FONT
        if style.superscript:
            run.font.superscript = True
        if style.subscript:
            run.font.subscript = True
        if style.color is not None:
            run.font.color.rgb = RGBColor.from_string(style.color)
