"""Manifest-writing helpers for the Chat2Ebook pipeline.

Responsibilities:
- Build the typed `ExportManifest` record for a completed run.
- Persist manifest payload to a deterministic artifact path.
- Map unexpected failures to stage-aware manifest errors.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping

from ..config import Chat2EbookConfig
from ..errors import PipelineStageError
from ..io.storage import ArtifactStore
from ..models.datatypes import ExportManifest, ExportStats, RuleTier

MANIFEST_FILENAME = "run_manifest.json"


def manifest_payload(manifest: ExportManifest) -> dict[str, object]:
    """Serialize a manifest into a JSON-compatible mapping."""

    return {
        "run_id": manifest.run_id,
        "config_hash": manifest.config_hash,
        "stats": {
            "record_count": manifest.stats.record_count,
            "chapter_count": manifest.stats.chapter_count,
            "total_chars": manifest.stats.total_chars,
            "exported_at": manifest.stats.exported_at.isoformat(),
        },
        "artifacts": {key: str(path) for key, path in manifest.artifacts.items()},
        "skipped_rules": list(manifest.skipped_rules),
        "extra": dict(manifest.extra),
    }


class PipelineManifestMixin:
    """Provide run-manifest serialization and persistence helpers."""

    def _write_manifest(
        self,
        config: Chat2EbookConfig,
        run_id: str,
        config_hash: str,
        stats: ExportStats,
        artifact_paths: Mapping[str, Path],
        skipped_rules: tuple[str, ...],
        unavailable_tiers: Mapping[RuleTier, str],
        store: ArtifactStore,
    ) -> ExportManifest:
        """Build and persist a run manifest with deterministic identifiers."""

        try:
            extra = {
                "input_chat": str(config.input_chat),
                "formats": ",".join(export_format.value for export_format in config.formats),
                **{
                    f"unavailable_rules_{tier.value}": detail
                    for tier, detail in unavailable_tiers.items()
                },
                **config.extra,
            }
            manifest = ExportManifest(
                run_id=run_id,
                config_hash=config_hash,
                stats=stats,
                artifacts=dict(artifact_paths),
                skipped_rules=skipped_rules,
                extra=extra,
            )
            manifest_path = store.save_json(Path(MANIFEST_FILENAME), manifest_payload(manifest))
            return ExportManifest(
                run_id=manifest.run_id,
                config_hash=manifest.config_hash,
                stats=manifest.stats,
                artifacts=manifest.artifacts,
                skipped_rules=manifest.skipped_rules,
                extra={**manifest.extra, "manifest_path": str(manifest_path)},
            )
        except PipelineStageError:
            raise
        except Exception as exc:
            raise PipelineStageError(
                stage="manifest",
                detail=f"Failed to write run manifest: {exc}",
                hint="Verify output directory is writable.",
            ) from exc
