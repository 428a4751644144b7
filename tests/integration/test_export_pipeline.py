"""Integration tests for full export runs through `Chat2EbookPipeline`."""

from __future__ import annotations

import io
import json
from pathlib import Path
import zipfile

import docx
import pytest

from chat2ebook.config import Chat2EbookConfig
from chat2ebook.errors import EmptySelectionError, PipelineStageError
from chat2ebook.io.transcript_source import StaticTranscriptSource
from chat2ebook.models.datatypes import ExportFormat, RawMessage, Transcript
from chat2ebook.pipeline import Chat2EbookPipeline
from chat2ebook.pipeline.manifesting import MANIFEST_FILENAME
from chat2ebook.telemetry.logger import RunLogger


def _write_rules(path: Path, records: list[dict[str, object]]) -> Path:
    path.write_text(json.dumps(records), encoding="utf-8")
    return path


def _config(chat_file: Path, tmp_path: Path, **overrides: object) -> Chat2EbookConfig:
    settings: dict[str, object] = {
        "input_chat": chat_file,
        "output_dir": tmp_path / "out",
        "formats": tuple(ExportFormat),
        "title": "Night Walk",
        "include_user": True,
    }
    settings.update(overrides)
    return Chat2EbookConfig(**settings)


def test_run_delivers_every_requested_format_and_manifest(chat_file: Path, tmp_path: Path) -> None:
    """A full run should write all four documents plus the run manifest."""

    manifest = Chat2EbookPipeline().run(_config(chat_file, tmp_path))

    assert set(manifest.artifacts) == {"epub", "html", "docx", "txt"}
    for path in manifest.artifacts.values():
        assert Path(path).exists()
    run_dir = tmp_path / "out" / manifest.run_id
    assert (run_dir / MANIFEST_FILENAME).exists()
    assert manifest.stats.record_count == 4
    assert manifest.stats.chapter_count == 4
    assert manifest.extra["manifest_path"] == str(run_dir / MANIFEST_FILENAME)

    payload = json.loads((run_dir / MANIFEST_FILENAME).read_text(encoding="utf-8"))
    assert payload["run_id"] == manifest.run_id
    assert payload["stats"]["record_count"] == 4
    assert payload["extra"]["formats"] == "epub,html,docx,txt"


def test_run_outputs_share_rewritten_content(chat_file: Path, tmp_path: Path) -> None:
    """Every format should show the same rule-rewritten message text."""

    rules = _write_rules(
        tmp_path / "global.json",
        [{"scriptName": "Forest", "findRegex": "/forest/gi", "replaceString": "grove"}],
    )
    manifest = Chat2EbookPipeline().run(_config(chat_file, tmp_path, global_rules=rules))

    text = Path(manifest.artifacts["txt"]).read_text(encoding="utf-8")
    html = Path(manifest.artifacts["html"]).read_text(encoding="utf-8")
    with zipfile.ZipFile(manifest.artifacts["epub"]) as archive:
        chapter = archive.read("OEBPS/chapter3.xhtml").decode("utf-8")
    document = docx.Document(io.BytesIO(Path(manifest.artifacts["docx"]).read_bytes()))
    docx_text = "\n".join(paragraph.text for paragraph in document.paragraphs)

    for rendered in (text, html, chapter, docx_text):
        assert "The grove is quiet tonight." in rendered
        assert "forest" not in rendered
    assert "By Alex" in text


def test_run_is_deterministic_for_same_configuration(chat_file: Path, tmp_path: Path) -> None:
    pipeline = Chat2EbookPipeline()
    config = _config(chat_file, tmp_path, formats=(ExportFormat.EPUB,))

    first = pipeline.run(config)
    first_bytes = Path(first.artifacts["epub"]).read_bytes()
    second = pipeline.run(config)

    assert first.run_id == second.run_id
    assert first.config_hash == second.config_hash
    with zipfile.ZipFile(io.BytesIO(first_bytes)) as archive:
        first_opf = archive.read("OEBPS/content.opf")
    with zipfile.ZipFile(second.artifacts["epub"]) as archive:
        assert archive.read("OEBPS/content.opf") == first_opf


def test_run_raises_empty_selection_without_writing_files(chat_file: Path, tmp_path: Path) -> None:
    config = _config(chat_file, tmp_path, include_user=False, include_agent=False)

    with pytest.raises(EmptySelectionError) as exc_info:
        Chat2EbookPipeline().run(config)

    assert exc_info.value.stage == "extract"
    assert exc_info.value.hint
    assert not (tmp_path / "out").exists()


def test_run_reports_missing_transcript_at_load_stage(tmp_path: Path) -> None:
    config = _config(tmp_path / "absent.jsonl", tmp_path)

    with pytest.raises(PipelineStageError) as exc_info:
        Chat2EbookPipeline().run(config)

    assert exc_info.value.stage == "load"
    assert "Transcript is unavailable" in exc_info.value.detail


def test_run_rejects_invalid_configuration_at_config_stage(chat_file: Path, tmp_path: Path) -> None:
    with pytest.raises(PipelineStageError) as exc_info:
        Chat2EbookPipeline().run(_config(chat_file, tmp_path, chapter_size=0))

    assert exc_info.value.stage == "config"


def test_run_records_unavailable_tiers_and_skipped_rules(chat_file: Path, tmp_path: Path) -> None:
    """Missing tiers and broken rules are contained and reported, not fatal."""

    rules = _write_rules(
        tmp_path / "global.json",
        [
            {"scriptName": "Broken", "findRegex": "/(unclosed/g", "replaceString": "x"},
            {"scriptName": "Quiet", "findRegex": "quiet", "replaceString": "still"},
        ],
    )
    sink = io.StringIO()
    pipeline = Chat2EbookPipeline(run_logger=RunLogger(sink=sink))

    manifest = pipeline.run(
        _config(
            chat_file,
            tmp_path,
            formats=(ExportFormat.TXT,),
            global_rules=rules,
            character_rules=tmp_path / "missing-card.json",
        )
    )

    assert manifest.skipped_rules == ("Broken",)
    assert "unavailable_rules_character" in manifest.extra
    assert "still tonight" in Path(manifest.artifacts["txt"]).read_text(encoding="utf-8")
    log = sink.getvalue()
    assert "event=tier_unavailable" in log
    assert "event=rule_skipped" in log
    assert "rule=Broken" in log


def test_run_reports_stage_progress_in_order(chat_file: Path, tmp_path: Path) -> None:
    seen: list[tuple[str, int, int]] = []
    pipeline = Chat2EbookPipeline(
        stage_progress_callback=lambda stage, index, total: seen.append((stage, index, total))
    )

    pipeline.run(_config(chat_file, tmp_path, formats=(ExportFormat.TXT,)))

    assert [stage for stage, _, _ in seen] == [
        "load",
        "rules",
        "extract",
        "assemble",
        "deliver",
        "manifest",
    ]
    assert seen[-1][1:] == (6, 6)


def test_run_accepts_in_memory_transcript_source(tmp_path: Path) -> None:
    transcript = Transcript(
        messages=(RawMessage(0, False, "", "Only **one** line"),),
        user_name=None,
    )
    config = _config(tmp_path / "unused.jsonl", tmp_path, formats=(ExportFormat.TXT,))

    manifest = Chat2EbookPipeline().run(config, StaticTranscriptSource(transcript))
    text = Path(manifest.artifacts["txt"]).read_text(encoding="utf-8")

    assert "By User" in text
    assert "Only one line" in text


def test_describe_transcript_counts_roles_and_selection(chat_file: Path, tmp_path: Path) -> None:
    summary = Chat2EbookPipeline().describe_transcript(
        _config(chat_file, tmp_path, include_user=False, range_start=1)
    )

    assert summary.message_count == 4
    assert (summary.user_count, summary.agent_count) == (2, 2)
    assert summary.selected_count == 1
    assert summary.user_name == "Alex"
    assert summary.character_name == "Seraphina"


def test_run_warns_when_host_displays_only_part_of_transcript(tmp_path: Path) -> None:
    transcript = Transcript(
        messages=(
            RawMessage(0, True, "Alex", "first"),
            RawMessage(1, False, "Seraphina", "second"),
        ),
        user_name="Alex",
        materialized_count=1,
    )
    sink = io.StringIO()
    config = _config(tmp_path / "unused.jsonl", tmp_path, formats=(ExportFormat.TXT,))

    manifest = Chat2EbookPipeline(run_logger=RunLogger(sink=sink)).run(
        config, StaticTranscriptSource(transcript)
    )
    summary = Chat2EbookPipeline().describe_transcript(config, StaticTranscriptSource(transcript))

    assert manifest.stats.record_count == 2
    assert "event=partial_display displayed=1 total=2" in sink.getvalue()
    assert summary.displayed_count == 1
