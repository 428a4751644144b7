"""Chaptering and size accounting for export front matter."""

from __future__ import annotations

from datetime import datetime
import math
from typing import Sequence

from ..models.datatypes import Chapter, ExportStats, RenderRecord


def chapter_title(index: int) -> str:
    """Return the display title for a 1-based chapter index."""

    return f"Chapter {index}"


def chapter_count(record_count: int, chapter_size: int) -> int:
    """Return `ceil(record_count / chapter_size)` with `chapter_size` clamped to >= 1."""

    size = chapter_size if chapter_size > 0 else 1
    return math.ceil(record_count / size)


def total_chars(records: Sequence[RenderRecord]) -> int:
    """Return the summed length of every record's visible text."""

    return sum(len(record.plain_text) for record in records)


def split_chapters(records: Sequence[RenderRecord], chapter_size: int) -> list[Chapter]:
    """Group records into contiguous chapters of `chapter_size`; the last may be shorter."""

    size = chapter_size if chapter_size > 0 else 1
    chapters: list[Chapter] = []
    for offset in range(0, len(records), size):
        index = len(chapters) + 1
        chapters.append(
            Chapter(
                index=index,
                title=chapter_title(index),
                records=tuple(records[offset : offset + size]),
            )
        )
    return chapters


def compute_stats(
    records: Sequence[RenderRecord],
    chapter_size: int,
    exported_at: datetime | None = None,
) -> ExportStats:
    """Compute the size accounting shown in generated front matter."""

    return ExportStats(
        record_count=len(records),
        chapter_count=chapter_count(len(records), chapter_size),
        total_chars=total_chars(records),
        exported_at=exported_at or datetime.now().astimezone(),
    )
