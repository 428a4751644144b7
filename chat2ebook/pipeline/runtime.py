"""Runtime configuration and run-identity helpers for the Chat2Ebook pipeline.

Responsibilities:
- Validate export configuration before execution.
- Compute deterministic configuration hashes and run identifiers.
- Resolve transcript and rule-tier sources from configuration.
"""

from __future__ import annotations

from hashlib import sha256
import json
import uuid

from ..config import Chat2EbookConfig
from ..errors import PipelineStageError
from ..io.rule_sources import JsonRuleSource, RuleSource
from ..io.storage import ArtifactStore
from ..io.transcript_source import FileTranscriptSource, TranscriptSource
from ..models.datatypes import RuleTier


class PipelineRuntimeMixin:
    """Provide runtime/config helper methods for pipeline orchestration."""

    def _prepare_run(self, config: Chat2EbookConfig) -> tuple[str, str, ArtifactStore]:
        """Create deterministic run identifiers and artifact storage for a config."""

        self._validate_config(config)
        config_hash = self._config_hash(config)
        run_id = f"run-{config_hash[:12]}"
        store = ArtifactStore(config.output_dir / run_id)
        return run_id, config_hash, store

    def _validate_config(self, config: Chat2EbookConfig) -> None:
        """Validate top-level configuration and map failures to stage-aware error."""

        try:
            config.validate()
        except ValueError as exc:
            raise PipelineStageError(
                stage="config",
                detail=str(exc),
                hint="Update export options and rerun the command.",
            ) from exc

    def _config_hash(self, config: Chat2EbookConfig) -> str:
        """Compute deterministic hash for run-defining configuration fields."""

        def optional_path(value: object) -> str | None:
            return None if value is None else str(value)

        payload = {
            "input_chat": str(config.input_chat),
            "output_dir": str(config.output_dir),
            "formats": [export_format.value for export_format in config.formats],
            "global_rules": optional_path(config.global_rules),
            "character_rules": optional_path(config.character_rules),
            "preset_rules": optional_path(config.preset_rules),
            "title": config.title,
            "author": config.author,
            "range_start": config.range_start,
            "range_end": config.range_end,
            "include_user": config.include_user,
            "include_agent": config.include_agent,
            "hide_agent_name": config.hide_agent_name,
            "chapter_size": config.chapter_size,
            "language": config.language,
            "docx_margin_cm": config.docx_margin_cm,
            "extra": dict(config.extra),
        }
        canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return sha256(canonical.encode("utf-8")).hexdigest()

    def _book_identifier(self, config_hash: str) -> str:
        """Return a stable `urn:uuid:` book identifier for one configuration."""

        return f"urn:uuid:{uuid.uuid5(uuid.NAMESPACE_URL, f'chat2ebook:{config_hash}')}"

    def _transcript_source(self, config: Chat2EbookConfig) -> TranscriptSource:
        return FileTranscriptSource(config.input_chat)

    def _rule_sources(self, config: Chat2EbookConfig) -> list[RuleSource]:
        """Return JSON rule sources for every configured tier, in tier order."""

        tier_paths = (
            (RuleTier.GLOBAL, config.global_rules),
            (RuleTier.CHARACTER, config.character_rules),
            (RuleTier.PRESET, config.preset_rules),
        )
        return [JsonRuleSource(path, tier) for tier, path in tier_paths if path is not None]
