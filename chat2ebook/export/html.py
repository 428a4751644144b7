"""Standalone single-page HTML assembly."""

from __future__ import annotations

from typing import Sequence

from bs4 import BeautifulSoup, Tag

from ..models.datatypes import (
    ExportArtifact,
    ExportConfig,
    ExportFormat,
    ExportStats,
    RenderRecord,
)
from ..text.sanitizer import SanitizeMode, sanitize
from ..text.slug import export_filename
from .front_matter import INFO_HEADING, info_rows, label_color
from .markup import append_html, element, new_soup, serialize, speaker_label

PAGE_CSS = (
    "body{max-width:800px;margin:0 auto;padding:2em;font-family:sans-serif;line-height:1.6;}"
    ".cover{text-align:center;margin:4em 0;}"
    ".info{border-top:1px solid #ccc;border-bottom:1px solid #ccc;padding:1em 0;margin-bottom:2em;}"
    ".msg{margin-bottom:1.5em;}.speaker{display:block;margin-bottom:0.2em;}"
    "img{max-width:100%;}"
)


class HtmlAssembler:
    """Render cover, information block, and all records into one HTML page."""

    format = ExportFormat.HTML
    media_type = "text/html"

    def build_page(
        self,
        records: Sequence[RenderRecord],
        config: ExportConfig,
        stats: ExportStats,
    ) -> BeautifulSoup:
        soup = new_soup()
        html = element(soup, "html", attrs={"lang": config.language})
        head = element(soup, "head")
        head.append(element(soup, "meta", attrs={"charset": "utf-8"}))
        head.append(element(soup, "title", config.title))
        head.append(element(soup, "style", PAGE_CSS))
        body = element(soup, "body")

        cover = element(soup, "div", attrs={"class": "cover"})
        cover.append(element(soup, "h1", config.title))
        cover.append(element(soup, "p", config.author))
        body.append(cover)
        body.append(self._info_block(soup, config, stats))

        for record in records:
            body.append(self._message_block(soup, record, config))

        html.append(head)
        html.append(body)
        soup.append(html)
        return soup

    def _info_block(self, soup: BeautifulSoup, config: ExportConfig, stats: ExportStats) -> Tag:
        info = element(soup, "div", attrs={"class": "info"})
        info.append(element(soup, "h2", INFO_HEADING))
        for label, value in info_rows(config, stats):
            row = element(soup, "p")
            row.append(element(soup, "strong", f"{label}:"))
            row.append(f" {value}")
            info.append(row)
        return info

    def _message_block(self, soup: BeautifulSoup, record: RenderRecord, config: ExportConfig) -> Tag:
        block = element(soup, "div", attrs={"class": "msg"})
        if config.shows_label(record.is_user_authored):
            label = speaker_label(soup, record.speaker_name, label_color(record.is_user_authored))
            label["class"] = "speaker"
            block.append(label)
        text = element(soup, "div", attrs={"class": "text"})
        append_html(text, sanitize(record.rendered_html, SanitizeMode.HTML))
        block.append(text)
        return block

    def render(
        self,
        records: Sequence[RenderRecord],
        config: ExportConfig,
        stats: ExportStats,
    ) -> str:
        """Return the complete HTML document text."""

        return f"<!DOCTYPE html>\n{serialize(self.build_page(records, config, stats))}"

    def assemble(
        self,
        records: Sequence[RenderRecord],
        config: ExportConfig,
        stats: ExportStats,
    ) -> ExportArtifact:
        """Build the HTML artifact."""

        return ExportArtifact(
            format=self.format,
            filename=export_filename(config.title, "html"),
            media_type=self.media_type,
            payload=self.render(records, config, stats).encode("utf-8"),
        )
