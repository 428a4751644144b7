"""Document-tree helpers for HTML-based assemblers.

Documents are built as BeautifulSoup trees and serialized once, so titles,
author names, and speaker labels are always escaped.
"""

from __future__ import annotations

from bs4 import BeautifulSoup, Tag

from ..text.sanitizer import strip_xml_invalid


def new_soup() -> BeautifulSoup:
    return BeautifulSoup("", "html.parser")


def element(
    soup: BeautifulSoup,
    name: str,
    text: str | None = None,
    attrs: dict[str, str] | None = None,
) -> Tag:
    """Create a tag with optional escaped text content and attributes."""

    tag = soup.new_tag(name, attrs=attrs or {})
    if text is not None:
        tag.string = text
    return tag


def append_html(parent: Tag, html: str) -> None:
    """Parse an HTML fragment and append its nodes to `parent`."""

    if not html:
        return
    fragment = BeautifulSoup(html, "html.parser")
    for node in list(fragment.contents):
        parent.append(node.extract())


def speaker_label(
    soup: BeautifulSoup,
    name: str,
    color: str,
    tag_name: str = "strong",
    extra_style: str = "",
) -> Tag:
    """Build the `Name:` label shown above a message."""

    style = f"color:{color};{extra_style}"
    return element(soup, tag_name, f"{name}:", {"style": style})


def serialize(soup: BeautifulSoup) -> str:
    return strip_xml_invalid(soup.decode(formatter="minimal"))
