"""Artifact storage and file delivery.

Responsibilities:
- Provide deterministic filesystem storage for exported documents and JSON.
- Write each artifact in one step so no partially written file is left behind.
"""

from __future__ import annotations

import json
import os
from pathlib import Path


class ArtifactStore:
    """Filesystem-backed artifact store rooted at one run directory."""

    def __init__(self, root: Path) -> None:
        """Initialize the store with a root output directory."""

        self.root = root

    def save_bytes(self, relative_path: Path, data: bytes) -> Path:
        """Save binary content via a temporary sibling file and return final path."""

        path = self.root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        temporary = path.with_name(f".{path.name}.partial")
        temporary.write_bytes(data)
        os.replace(temporary, path)
        return path

    def save_text(self, relative_path: Path, content: str) -> Path:
        """Save UTF-8 text content and return final path."""

        return self.save_bytes(relative_path, content.encode("utf-8"))

    def save_json(self, relative_path: Path, payload: dict[str, object]) -> Path:
        """Save JSON-serializable payload and return final path."""

        return self.save_text(
            relative_path,
            json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True),
        )
