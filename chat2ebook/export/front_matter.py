"""Front matter and presentation constants shared by document assemblers."""

from __future__ import annotations

from ..models.datatypes import ExportConfig, ExportStats

GENERATOR_NAME = "Chat2Ebook"
INFO_HEADING = "Book Information"
USER_LABEL_COLOR = "#2c3e50"
AGENT_LABEL_COLOR = "#800000"


def label_color(is_user_authored: bool) -> str:
    return USER_LABEL_COLOR if is_user_authored else AGENT_LABEL_COLOR


def format_timestamp(stats: ExportStats) -> str:
    return stats.exported_at.strftime("%Y-%m-%d %H:%M:%S")


def info_rows(config: ExportConfig, stats: ExportStats) -> list[tuple[str, str]]:
    """Return ordered `(label, value)` rows for the information page."""

    return [
        ("Title", config.title),
        ("Author", config.author),
        (
            "Chapters",
            f"{stats.chapter_count} chapters ({stats.record_count} messages)",
        ),
        ("Total size", f"about {stats.total_chars} characters"),
        ("Exported at", format_timestamp(stats)),
        ("Generated by", GENERATOR_NAME),
    ]
