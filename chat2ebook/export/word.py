"""Word document assembly.

Records are reduced to portable rich text, laid out as one HTML document
(cover, page break, information, page break, body), and converted with
`DocxConverter` once the `docx` capability is loaded.
"""

from __future__ import annotations

from typing import Sequence

from loguru import logger

from ..capabilities import DOCX_CAPABILITY
from ..errors import ConversionError
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

PAGE_BREAK_STYLE = "page-break-before:always"


class WordAssembler:
    """Produce a `.docx` document from render records."""

    format = ExportFormat.DOCX
    media_type = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

    def __init__(self, margin_cm: float = 2.0) -> None:
        self.margin_cm = margin_cm

    def build_html(
        self,
        records: Sequence[RenderRecord],
        config: ExportConfig,
        stats: ExportStats,
    ) -> str:
        """Return the intermediate HTML document handed to the converter."""

        soup = new_soup()
        body = element(soup, "body")

        cover = element(soup, "div", attrs={"style": "text-align:center"})
        cover.append(element(soup, "h1", config.title))
        body.append(cover)
        body.append(element(soup, "p", config.author, {"style": "text-align:center"}))

        body.append(element(soup, "div", attrs={"style": PAGE_BREAK_STYLE}))
        body.append(element(soup, "h2", INFO_HEADING))
        for label, value in info_rows(config, stats):
            row = element(soup, "p")
            row.append(element(soup, "strong", f"{label}:"))
            row.append(f" {value}")
            body.append(row)

        body.append(element(soup, "div", attrs={"style": PAGE_BREAK_STYLE}))
        for record in records:
            block = element(soup, "div")
            if config.shows_label(record.is_user_authored):
                label_paragraph = element(soup, "p")
                label_paragraph.append(
                    speaker_label(soup, record.speaker_name, label_color(record.is_user_authored))
                )
                block.append(label_paragraph)
            append_html(block, sanitize(record.rendered_html, SanitizeMode.RICHTEXT_PORTABLE))
            body.append(block)

        soup.append(body)
        return serialize(soup)

    def convert(self, html: str) -> bytes:
        """Convert the intermediate HTML to `.docx` bytes.

        Raises:
            CapabilityUnavailableError: When python-docx cannot be imported.
            ConversionError: When conversion fails.
        """

        DOCX_CAPABILITY.ensure_ready()
        from .docx_converter import DocxConverter

        try:
            return DocxConverter(self.margin_cm).convert(html)
        except Exception as exc:
            logger.error("Word conversion failed: {exc}", exc=exc)
            raise ConversionError(
                detail=f"Word conversion failed: {exc}",
                hint="Try another output format or simplify the message markup.",
            ) from exc

    def assemble(
        self,
        records: Sequence[RenderRecord],
        config: ExportConfig,
        stats: ExportStats,
    ) -> ExportArtifact:
        """Build the Word artifact."""

        return ExportArtifact(
            format=self.format,
            filename=export_filename(config.title, "docx"),
            media_type=self.media_type,
            payload=self.convert(self.build_html(records, config, stats)),
        )
