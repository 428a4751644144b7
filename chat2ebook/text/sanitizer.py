"""Per-format HTML sanitization.

Responsibilities:
- Remove non-content elements (scripts, styles, embeds, vector graphics)
  from rendered message HTML in every mode.
- Extract browser-style visible text for the plain-text mode.
- Strip presentation attributes for the word-processor converter.
- Re-serialize from a parse tree so void elements are self-closed for XHTML.
- Drop control characters that XML 1.0 forbids.

`sanitize` never raises; malformed input degrades to best effort.
"""

from __future__ import annotations

from enum import Enum
import re

from bs4 import BeautifulSoup, Comment, Declaration, Doctype, NavigableString, ProcessingInstruction
from loguru import logger


class SanitizeMode(str, Enum):
    """Output mode of `sanitize`."""

    HTML = "html"
    PLAIN_TEXT = "plain-text"
    RICHTEXT_PORTABLE = "richtext-portable"
    XHTML_STRICT = "xhtml-strict"


CRUFT_TAGS = (
    "style",
    "script",
    "link",
    "meta",
    "title",
    "object",
    "embed",
    "iframe",
    "svg",
    "canvas",
    "noscript",
    "template",
)
PORTABLE_STRIPPED_ATTRIBUTES = frozenset({"style", "class", "id"})
BLOCK_TAGS = (
    "address",
    "article",
    "aside",
    "blockquote",
    "dd",
    "details",
    "div",
    "dl",
    "dt",
    "fieldset",
    "figcaption",
    "figure",
    "footer",
    "form",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "header",
    "hr",
    "li",
    "main",
    "nav",
    "ol",
    "pre",
    "section",
    "summary",
    "table",
    "tr",
    "ul",
)
_PRESERVE_WHITESPACE_TAGS = ("pre", "textarea")
_NON_CONTENT_NODES = (Comment, Declaration, Doctype, ProcessingInstruction)

_INLINE_WHITESPACE_RE = re.compile(r"[ \t\r\n\f]+")
_SPACES_AROUND_NEWLINE_RE = re.compile(r"[ \t]*\n[ ]*")
_REPEATED_SPACES_RE = re.compile(r" {2,}")
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")
_XML_INVALID_CHARS_RE = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")
_PRESERVED_TOKEN = "\x00{index}\x00"
_PRESERVED_TOKEN_RE = re.compile(r"\x00(\d+)\x00")


def _remove_cruft(soup: BeautifulSoup) -> None:
    """Drop non-content elements, markup declarations and script hooks."""

    for tag in soup.find_all(CRUFT_TAGS):
        tag.decompose()
    for node in soup.find_all(string=lambda value: isinstance(value, _NON_CONTENT_NODES)):
        node.extract()
    for tag in soup.find_all(True):
        for attribute in list(tag.attrs):
            if attribute.lower().startswith("on"):
                del tag.attrs[attribute]
        href = tag.get("href")
        if isinstance(href, str) and href.strip().lower().startswith("javascript:"):
            del tag.attrs["href"]


def _strip_presentation_attributes(soup: BeautifulSoup) -> None:
    for tag in soup.find_all(True):
        for attribute in list(tag.attrs):
            if attribute.lower() in PORTABLE_STRIPPED_ATTRIBUTES:
                del tag.attrs[attribute]


def visible_text(soup: BeautifulSoup) -> str:
    """Return text the way a browser's `innerText` lays it out.

    Inline whitespace collapses to single spaces, `<br>` and block
    boundaries become newlines, and paragraphs are separated by a blank line.
    Preformatted content keeps its whitespace.
    """

    preserved: list[str] = []
    for block in soup.find_all(_PRESERVE_WHITESPACE_TAGS):
        if block.find_parent(_PRESERVE_WHITESPACE_TAGS) is not None:
            continue
        for br in block.find_all("br"):
            br.replace_with("\n")
        preserved.append(block.get_text().strip("\n"))
        block.clear()
        block.append(_PRESERVED_TOKEN.format(index=len(preserved) - 1))

    for node in soup.find_all(string=True):
        if not isinstance(node, NavigableString) or _PRESERVED_TOKEN_RE.fullmatch(str(node)):
            continue
        collapsed = _INLINE_WHITESPACE_RE.sub(" ", str(node))
        if collapsed != str(node):
            node.replace_with(collapsed)

    for br in soup.find_all("br"):
        br.replace_with("\n")
    for cell in soup.find_all(["td", "th"]):
        cell.insert_after("\t")
    for paragraph in soup.find_all("p"):
        paragraph.insert_before("\n\n")
        paragraph.insert_after("\n\n")
    for block in soup.find_all(BLOCK_TAGS):
        block.insert_before("\n")
        block.insert_after("\n")

    text = soup.get_text()
    text = _REPEATED_SPACES_RE.sub(" ", text)
    text = text.replace("\t\n", "\n")
    text = _SPACES_AROUND_NEWLINE_RE.sub("\n", text)
    text = _EXCESS_NEWLINES_RE.sub("\n\n", text)
    text = text.strip()
    return _PRESERVED_TOKEN_RE.sub(lambda match: preserved[int(match.group(1))], text)


def strip_xml_invalid(text: str) -> str:
    """Remove control characters that XML 1.0 documents cannot carry."""

    return _XML_INVALID_CHARS_RE.sub("", text)


def sanitize(html: str | None, mode: SanitizeMode | str = SanitizeMode.HTML) -> str:
    """Sanitize rendered HTML for one output mode.

    Args:
        html: Rendered message HTML.
        mode: Target mode; unknown values fall back to `html`.

    Returns:
        HTML (or visible text for `plain-text`), empty string when nothing remains.
    """

    if not html:
        return ""
    try:
        resolved = SanitizeMode(mode)
    except ValueError:
        resolved = SanitizeMode.HTML

    try:
        soup = BeautifulSoup(strip_xml_invalid(html), "html.parser")
        _remove_cruft(soup)
        if resolved is SanitizeMode.PLAIN_TEXT:
            return strip_xml_invalid(visible_text(soup))
        if resolved is SanitizeMode.RICHTEXT_PORTABLE:
            _strip_presentation_attributes(soup)
        return strip_xml_invalid(soup.decode(formatter="minimal")).strip()
    except Exception as exc:
        logger.warning("Sanitizer fell back to empty output: {exc}", exc=exc)
        return ""
