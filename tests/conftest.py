"""Shared pytest fixtures for the full Chat2Ebook test suite."""

from __future__ import annotations

from datetime import datetime, timezone
import json
from pathlib import Path

import pytest

from chat2ebook.models.datatypes import (
    ExportConfig,
    ExportStats,
    RawMessage,
    RenderRecord,
    Transcript,
)


def make_record(
    index: int,
    text: str,
    is_user_authored: bool = False,
    speaker_name: str = "Seraphina",
) -> RenderRecord:
    """Build a render record whose HTML is one paragraph of `text`."""

    return RenderRecord(
        sequence_index=index,
        speaker_name=speaker_name,
        is_user_authored=is_user_authored,
        rendered_html=f"<p>{text}</p>",
        plain_text=text,
    )


@pytest.fixture
def sample_transcript() -> Transcript:
    """Provide a four-message transcript alternating user and agent turns."""

    return Transcript(
        messages=(
            RawMessage(0, False, "Seraphina", "Welcome, *traveler*."),
            RawMessage(1, True, "Alex", "Hello **there**"),
            RawMessage(2, False, "Seraphina", "The forest is quiet tonight."),
            RawMessage(3, True, "Alex", "Let's go."),
        ),
        user_name="Alex",
        character_name="Seraphina",
    )


@pytest.fixture
def sample_records() -> list[RenderRecord]:
    """Provide agent and user render records for assembler tests."""

    return [
        make_record(0, "Welcome, traveler."),
        make_record(1, "Hello there", is_user_authored=True, speaker_name="Alex"),
        make_record(2, "The forest is quiet tonight."),
    ]


@pytest.fixture
def export_config() -> ExportConfig:
    """Provide document settings with user messages included."""

    return ExportConfig(title="Night Walk", author="Alex", include_user=True)


@pytest.fixture
def export_stats() -> ExportStats:
    """Provide fixed size accounting with a deterministic timestamp."""

    return ExportStats(
        record_count=3,
        chapter_count=3,
        total_chars=57,
        exported_at=datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def chat_file(tmp_path: Path) -> Path:
    """Write a host-style `.jsonl` chat with a header line and four messages."""

    lines = [
        {"user_name": "Alex", "character_name": "Seraphina", "create_date": "2024-05-01"},
        {"name": "Seraphina", "is_user": False, "mes": "Welcome, *traveler*."},
        {"name": "Alex", "is_user": True, "mes": "Hello **there**"},
        {"name": "Seraphina", "is_user": False, "mes": "The forest is quiet tonight."},
        {"name": "Alex", "is_user": True, "mes": "Let's go."},
    ]
    path = tmp_path / "chat.jsonl"
    path.write_text("\n".join(json.dumps(line) for line in lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def record_factory():
    """Provide `make_record` to tests that build their own record lists."""

    return make_record
