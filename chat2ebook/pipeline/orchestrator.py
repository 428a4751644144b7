"""Pipeline orchestration for Chat2Ebook.

Responsibilities:
- Define the stage order for one export run.
- Snapshot the transcript and configuration once per run.
- Assemble every requested format before delivering any file.

Key types:
- `Chat2EbookPipeline`: orchestration facade.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Sequence

from ..config import Chat2EbookConfig
from ..errors import EmptySelectionError, PipelineStageError, SourceUnavailableError
from ..export import EpubAssembler, HtmlAssembler, PlainTextAssembler, WordAssembler
from ..io.storage import ArtifactStore
from ..io.transcript_source import TranscriptSource
from ..models.datatypes import (
    ExportArtifact,
    ExportConfig,
    ExportFormat,
    ExportManifest,
    ExportStats,
    RenderRecord,
    RewriteRule,
    Transcript,
    TranscriptSummary,
)
from ..rules.aggregator import RuleAggregator, RuleCollection
from ..rules.engine import RewriteEngine
from ..telemetry.logger import RunLogger
from ..text.stats import compute_stats
from .extraction import TranscriptExtractor, selected_indices
from .manifesting import PipelineManifestMixin
from .runtime import PipelineRuntimeMixin
from .telemetry import PipelineTelemetryMixin


class Chat2EbookPipeline(
    PipelineTelemetryMixin,
    PipelineRuntimeMixin,
    PipelineManifestMixin,
):
    """Coordinate all stages for a single Chat2Ebook export."""

    def __init__(
        self,
        run_logger: RunLogger | None = None,
        stage_progress_callback: Callable[[str, int, int], None] | None = None,
    ) -> None:
        """Initialize optional runtime logging and progress reporting hooks."""

        self._run_logger = run_logger
        self._stage_progress_callback = stage_progress_callback

    def run(
        self,
        config: Chat2EbookConfig,
        transcript_source: TranscriptSource | None = None,
    ) -> ExportManifest:
        """Run the export and return the persisted manifest.

        Args:
            config: Export run configuration.
            transcript_source: Optional source overriding `config.input_chat`.

        Raises:
            EmptySelectionError: When the range and role filters select nothing.
            PipelineStageError: When any stage fails; no file is delivered
                unless every requested format assembled successfully.
        """

        run_id, config_hash, store = self._prepare_run(config)
        transcript = self._run_stage(
            "load", lambda: self._load_transcript(config, transcript_source)
        )
        if transcript.displayed_count < len(transcript.messages):
            self._on_warning(
                "load",
                "partial_display",
                displayed=transcript.displayed_count,
                total=len(transcript.messages),
            )
        export_config = config.export_config(transcript)
        collection = self._run_stage("rules", lambda: self._collect_rules(config))
        engine = RewriteEngine()
        records = self._run_stage(
            "extract",
            lambda: self._extract(transcript, export_config, collection.rules, engine),
        )
        for rule_name in engine.skipped_rules:
            self._on_warning("extract", "rule_skipped", rule=rule_name)

        stats = compute_stats(records, export_config.effective_chapter_size)
        artifacts = self._run_stage(
            "assemble",
            lambda: self._assemble(config, records, export_config, stats, config_hash),
        )
        artifact_paths = self._run_stage("deliver", lambda: self._deliver(artifacts, store))
        return self._run_stage(
            "manifest",
            lambda: self._write_manifest(
                config=config,
                run_id=run_id,
                config_hash=config_hash,
                stats=stats,
                artifact_paths=artifact_paths,
                skipped_rules=engine.skipped_rules,
                unavailable_tiers=collection.unavailable_tiers,
                store=store,
            ),
        )

    def collect_rules(self, config: Chat2EbookConfig) -> RuleCollection:
        """Return the aggregated rule list the configured tiers would apply."""

        return self._collect_rules(config)

    def describe_transcript(
        self,
        config: Chat2EbookConfig,
        transcript_source: TranscriptSource | None = None,
    ) -> TranscriptSummary:
        """Summarize the transcript and how many messages an export would select."""

        transcript = self._load_transcript(config, transcript_source)
        export_config = config.export_config(transcript)
        user_count = sum(1 for message in transcript.messages if message.is_user_authored)
        selected_count = sum(
            1
            for index in selected_indices(transcript, export_config)
            if export_config.includes(transcript.messages[index].is_user_authored)
        )
        return TranscriptSummary(
            message_count=len(transcript.messages),
            user_count=user_count,
            agent_count=len(transcript.messages) - user_count,
            displayed_count=transcript.displayed_count,
            selected_count=selected_count,
            user_name=transcript.user_name,
            character_name=transcript.character_name,
        )

    def _load_transcript(
        self,
        config: Chat2EbookConfig,
        transcript_source: TranscriptSource | None,
    ) -> Transcript:
        source = transcript_source or self._transcript_source(config)
        try:
            return source.read()
        except SourceUnavailableError as exc:
            raise PipelineStageError(
                stage="load",
                detail=f"Transcript is unavailable: {exc.detail}",
                hint="Pass a chat exported as `.jsonl` or `.json`.",
            ) from exc

    def _collect_rules(self, config: Chat2EbookConfig) -> RuleCollection:
        collection = RuleAggregator(self._rule_sources(config)).collect()
        for tier, detail in collection.unavailable_tiers.items():
            self._on_warning("rules", "tier_unavailable", tier=tier.value, detail=detail)
        return collection

    def _extract(
        self,
        transcript: Transcript,
        export_config: ExportConfig,
        rules: Sequence[RewriteRule],
        engine: RewriteEngine,
    ) -> list[RenderRecord]:
        try:
            records = TranscriptExtractor(engine=engine).extract(transcript, export_config, rules)
        except PipelineStageError:
            raise
        except Exception as exc:
            raise PipelineStageError(
                stage="extract",
                detail=f"Failed to render messages: {exc}",
            ) from exc
        if not records:
            raise EmptySelectionError(
                hint="Widen the message range or include more message roles.",
            )
        return records

    def _assemble(
        self,
        config: Chat2EbookConfig,
        records: Sequence[RenderRecord],
        export_config: ExportConfig,
        stats: ExportStats,
        config_hash: str,
    ) -> list[ExportArtifact]:
        """Build every requested artifact in memory."""

        artifacts: list[ExportArtifact] = []
        for export_format in config.formats:
            try:
                if export_format is ExportFormat.EPUB:
                    artifact = EpubAssembler().assemble(
                        records, export_config, stats, self._book_identifier(config_hash)
                    )
                elif export_format is ExportFormat.HTML:
                    artifact = HtmlAssembler().assemble(records, export_config, stats)
                elif export_format is ExportFormat.DOCX:
                    artifact = WordAssembler(config.docx_margin_cm).assemble(
                        records, export_config, stats
                    )
                else:
                    artifact = PlainTextAssembler().assemble(records, export_config, stats)
            except PipelineStageError:
                raise
            except Exception as exc:
                raise PipelineStageError(
                    stage="assemble",
                    detail=f"Failed to assemble {export_format.value} document: {exc}",
                ) from exc
            artifacts.append(artifact)
        return artifacts

    def _deliver(
        self,
        artifacts: Sequence[ExportArtifact],
        store: ArtifactStore,
    ) -> dict[str, Path]:
        try:
            return {
                artifact.format.value: store.save_bytes(Path(artifact.filename), artifact.payload)
                for artifact in artifacts
            }
        except OSError as exc:
            raise PipelineStageError(
                stage="deliver",
                detail=f"Failed to write export file: {exc}",
                hint="Verify output directory is writable.",
            ) from exc
