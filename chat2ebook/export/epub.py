"""EPUB2 document assembly.

Responsibilities:
- Build cover, information, and chapter XHTML pages from render records.
- Package pages with an OPF manifest/spine and an NCX navigation map.
- Write the uncompressed `mimetype` entry first, as EPUB readers require.
"""

from __future__ import annotations

from datetime import datetime
import io
from typing import Sequence
import uuid
import xml.etree.ElementTree as ET
import zipfile

from bs4 import BeautifulSoup, Tag

from ..models.datatypes import (
    Chapter,
    ExportArtifact,
    ExportConfig,
    ExportFormat,
    ExportStats,
    RenderRecord,
)
from ..text.sanitizer import SanitizeMode, sanitize, strip_xml_invalid
from ..text.slug import export_filename
from ..text.stats import split_chapters
from .front_matter import INFO_HEADING, info_rows, label_color
from .markup import append_html, element, new_soup, serialize, speaker_label

EPUB_MIMETYPE = "application/epub+zip"
XHTML_MEDIA_TYPE = "application/xhtml+xml"
NCX_MEDIA_TYPE = "application/x-dtbncx+xml"
XHTML_NS = "http://www.w3.org/1999/xhtml"
OPF_NS = "http://www.idpf.org/2007/opf"
DC_NS = "http://purl.org/dc/elements/1.1/"
NCX_NS = "http://www.daisy.org/z3986/2005/ncx/"
CONTAINER_NS = "urn:oasis:names:tc:opendocument:xmlns:container"
XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>'

COVER_CSS = "body{text-align:center;margin-top:30%;font-family:sans-serif;}"
INFO_CSS = "body{padding:10%;font-family:sans-serif;line-height:1.8;}"
CHAPTER_CSS = (
    "body{font-family:sans-serif;padding:5%;}img{max-width:100%;}"
    ".msg{margin-bottom:1.5em;}.text{line-height:1.6;}"
    ".speaker{display:block;margin-bottom:0.2em;}"
    "h2.chapter{text-align:center;margin-bottom:1.5em;color:#555;}"
)


def _page(title: str, css: str) -> tuple[BeautifulSoup, Tag]:
    """Create an XHTML page skeleton and return the soup and its body."""

    soup = new_soup()
    html = element(soup, "html", attrs={"xmlns": XHTML_NS})
    head = element(soup, "head")
    head.append(element(soup, "title", title))
    head.append(element(soup, "style", css, {"type": "text/css"}))
    body = element(soup, "body")
    html.append(head)
    html.append(body)
    soup.append(html)
    return soup, body


def _serialize_page(soup: BeautifulSoup) -> str:
    return f"{XML_DECLARATION}\n<!DOCTYPE html>\n{serialize(soup)}"


def _serialize_xml(root: ET.Element) -> str:
    return f"{XML_DECLARATION}\n{strip_xml_invalid(ET.tostring(root, encoding='unicode'))}"


class EpubAssembler:
    """Assemble an EPUB2 container from render records."""

    format = ExportFormat.EPUB
    media_type = "application/epub+zip"

    def cover_page(self, config: ExportConfig) -> str:
        soup, body = _page("Cover", COVER_CSS)
        body.append(element(soup, "h1", config.title, {"style": "font-size:2.5em;margin-bottom:0.5em;"}))
        body.append(element(soup, "p", config.author, {"style": "font-size:1.5em;color:#555;"}))
        return _serialize_page(soup)

    def info_page(self, config: ExportConfig, stats: ExportStats) -> str:
        soup, body = _page("Info", INFO_CSS)
        body.append(
            element(
                soup,
                "h2",
                INFO_HEADING,
                {"style": "border-bottom:1px solid #ccc;padding-bottom:10px;"},
            )
        )
        for label, value in info_rows(config, stats):
            row = element(soup, "p")
            row.append(element(soup, "strong", f"{label}:"))
            row.append(f" {value}")
            body.append(row)
        return _serialize_page(soup)

    def chapter_page(self, chapter: Chapter, config: ExportConfig) -> str:
        """Render one chapter; void elements come out self-closed."""

        soup, body = _page(config.title, CHAPTER_CSS)
        if config.effective_chapter_size > 1 or chapter.index == 1:
            body.append(element(soup, "h2", chapter.title, {"class": "chapter"}))
            body.append(element(soup, "hr"))

        for record in chapter.records:
            block = element(soup, "div", attrs={"class": "msg"})
            if config.shows_label(record.is_user_authored):
                label = speaker_label(soup, record.speaker_name, label_color(record.is_user_authored))
                label["class"] = "speaker"
                block.append(label)
            text = element(soup, "div", attrs={"class": "text"})
            append_html(text, sanitize(record.rendered_html, SanitizeMode.XHTML_STRICT))
            block.append(text)
            body.append(block)
        return _serialize_page(soup)

    def container_xml(self) -> str:
        root = ET.Element("container", {"version": "1.0", "xmlns": CONTAINER_NS})
        rootfiles = ET.SubElement(root, "rootfiles")
        ET.SubElement(
            rootfiles,
            "rootfile",
            {"full-path": "OEBPS/content.opf", "media-type": "application/oebps-package+xml"},
        )
        return _serialize_xml(root)

    def content_opf(
        self, config: ExportConfig, chapters: Sequence[Chapter], identifier: str
    ) -> str:
        """Build the OPF package document with a linear spine."""

        package = ET.Element(
            "package",
            {"xmlns": OPF_NS, "unique-identifier": "BookID", "version": "2.0"},
        )
        metadata = ET.SubElement(package, "metadata", {"xmlns:dc": DC_NS, "xmlns:opf": OPF_NS})
        ET.SubElement(metadata, "dc:title").text = config.title
        ET.SubElement(metadata, "dc:creator", {"opf:role": "aut"}).text = config.author
        ET.SubElement(metadata, "dc:language").text = config.language
        ET.SubElement(metadata, "dc:identifier", {"id": "BookID"}).text = identifier

        manifest = ET.SubElement(package, "manifest")
        spine = ET.SubElement(package, "spine", {"toc": "ncx"})
        ET.SubElement(manifest, "item", {"id": "ncx", "href": "toc.ncx", "media-type": NCX_MEDIA_TYPE})
        for item_id, href in self._page_entries(chapters):
            ET.SubElement(manifest, "item", {"id": item_id, "href": href, "media-type": XHTML_MEDIA_TYPE})
            ET.SubElement(spine, "itemref", {"idref": item_id, "linear": "yes"})
        return _serialize_xml(package)

    def toc_ncx(
        self, config: ExportConfig, chapters: Sequence[Chapter], identifier: str
    ) -> str:
        """Build the NCX map; cover and info share `playOrder="0"`."""

        ncx = ET.Element("ncx", {"xmlns": NCX_NS, "version": "2005-1"})
        head = ET.SubElement(ncx, "head")
        for name, content in (
            ("dtb:uid", identifier),
            ("dtb:depth", "1"),
            ("dtb:totalPageCount", "0"),
            ("dtb:maxPageNumber", "0"),
        ):
            ET.SubElement(head, "meta", {"name": name, "content": content})
        doc_title = ET.SubElement(ncx, "docTitle")
        ET.SubElement(doc_title, "text").text = config.title
        nav_map = ET.SubElement(ncx, "navMap")

        entries = [("nav_cover", "0", "Cover", "cover.xhtml"), ("nav_info", "0", "Information", "info.xhtml")]
        entries.extend(
            (f"nav{chapter.index}", str(chapter.index), chapter.title, f"chapter{chapter.index}.xhtml")
            for chapter in chapters
        )
        for nav_id, play_order, label, src in entries:
            nav_point = ET.SubElement(nav_map, "navPoint", {"id": nav_id, "playOrder": play_order})
            nav_label = ET.SubElement(nav_point, "navLabel")
            ET.SubElement(nav_label, "text").text = label
            ET.SubElement(nav_point, "content", {"src": src})
        return _serialize_xml(ncx)

    def _page_entries(self, chapters: Sequence[Chapter]) -> list[tuple[str, str]]:
        entries = [("cover", "cover.xhtml"), ("info", "info.xhtml")]
        entries.extend((f"ch{chapter.index}", f"chapter{chapter.index}.xhtml") for chapter in chapters)
        return entries

    def build_archive(
        self,
        records: Sequence[RenderRecord],
        config: ExportConfig,
        stats: ExportStats,
        identifier: str | None = None,
    ) -> bytes:
        """Return EPUB container bytes."""

        book_id = identifier or f"urn:uuid:{uuid.uuid4()}"
        chapters = split_chapters(records, config.effective_chapter_size)
        entries: list[tuple[str, str]] = [
            ("META-INF/container.xml", self.container_xml()),
            ("OEBPS/cover.xhtml", self.cover_page(config)),
            ("OEBPS/info.xhtml", self.info_page(config, stats)),
        ]
        entries.extend(
            (f"OEBPS/chapter{chapter.index}.xhtml", self.chapter_page(chapter, config))
            for chapter in chapters
        )
        entries.append(("OEBPS/content.opf", self.content_opf(config, chapters, book_id)))
        entries.append(("OEBPS/toc.ncx", self.toc_ncx(config, chapters, book_id)))

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            self._write_entry(archive, "mimetype", EPUB_MIMETYPE, stats.exported_at, zipfile.ZIP_STORED)
            for name, content in entries:
                self._write_entry(archive, name, content, stats.exported_at, zipfile.ZIP_DEFLATED)
        return buffer.getvalue()

    def _write_entry(
        self,
        archive: zipfile.ZipFile,
        name: str,
        content: str,
        timestamp: datetime,
        compress_type: int,
    ) -> None:
        info = zipfile.ZipInfo(name, date_time=timestamp.timetuple()[:6])
        info.compress_type = compress_type
        archive.writestr(info, content.encode("utf-8"))

    def assemble(
        self,
        records: Sequence[RenderRecord],
        config: ExportConfig,
        stats: ExportStats,
        identifier: str | None = None,
    ) -> ExportArtifact:
        """Build the EPUB artifact."""

        return ExportArtifact(
            format=self.format,
            filename=export_filename(config.title, "epub"),
            media_type=self.media_type,
            payload=self.build_archive(records, config, stats, identifier),
        )
