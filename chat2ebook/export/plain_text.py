"""Plain-text document assembly."""

from __future__ import annotations

from typing import Sequence

from ..models.datatypes import (
    ExportArtifact,
    ExportConfig,
    ExportFormat,
    ExportStats,
    RenderRecord,
)
from ..text.sanitizer import SanitizeMode, sanitize
from ..text.slug import export_filename
from .front_matter import INFO_HEADING, info_rows

BANNER = "=" * 30
MESSAGE_SEPARATOR = "-" * 20


class PlainTextAssembler:
    """Render records as UTF-8 text with a fixed front-matter block."""

    format = ExportFormat.TXT
    media_type = "text/plain"

    def render(
        self,
        records: Sequence[RenderRecord],
        config: ExportConfig,
        stats: ExportStats,
    ) -> str:
        """Return the full text document."""

        lines = [
            BANNER,
            f"      {config.title}",
            f"      By {config.author}",
            BANNER,
            "",
            f"[{INFO_HEADING}]",
        ]
        lines.extend(f"{label}: {value}" for label, value in info_rows(config, stats))
        lines.extend(["", BANNER, "[Text Begins]", "", ""])
        parts = ["\n".join(lines)]

        for record in records:
            label = f"{record.speaker_name}:\n" if config.shows_label(record.is_user_authored) else ""
            text = sanitize(record.rendered_html, SanitizeMode.PLAIN_TEXT)
            parts.append(f"{label}{text}\n\n{MESSAGE_SEPARATOR}\n\n")
        return "".join(parts)

    def assemble(
        self,
        records: Sequence[RenderRecord],
        config: ExportConfig,
        stats: ExportStats,
    ) -> ExportArtifact:
        """Build the text artifact."""

        return ExportArtifact(
            format=self.format,
            filename=export_filename(config.title, "txt"),
            media_type=self.media_type,
            payload=self.render(records, config, stats).encode("utf-8"),
        )
