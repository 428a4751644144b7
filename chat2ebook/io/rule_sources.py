"""Read-only rule-tier lookups.

Responsibilities:
- Locate rewrite-rule records inside the JSON documents a chat host keeps
  (settings file, character card, generation preset, or a bare list).
- Report missing or unreadable documents as `SourceUnavailableError`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
from pathlib import Path
from typing import Any, Mapping, Protocol, Sequence

from ..errors import SourceUnavailableError
from ..models.datatypes import RuleTier

# Paths tried in order when a document is a mapping rather than a bare list.
_RECORD_PATHS: tuple[tuple[str, ...], ...] = (
    ("regex",),
    ("regex_scripts",),
    ("extension_settings", "regex"),
    ("data", "extensions", "regex_scripts"),
    ("extensions", "regex_scripts"),
)


class RuleSource(Protocol):
    """Protocol for one rule tier lookup."""

    tier: RuleTier

    def load_records(self) -> list[Mapping[str, Any]]:
        """Return raw rule records for this tier."""


def extract_rule_records(document: object) -> list[Mapping[str, Any]]:
    """Return the rule record list embedded in a host JSON document.

    Raises:
        ValueError: When no rule list can be located in the document.
    """

    if isinstance(document, list):
        return [item for item in document if isinstance(item, Mapping)]
    if not isinstance(document, Mapping):
        raise ValueError("rule document must be a JSON list or object")

    for path in _RECORD_PATHS:
        node: object = document
        for key in path:
            if not isinstance(node, Mapping) or key not in node:
                node = None
                break
            node = node[key]
        if isinstance(node, list):
            return [item for item in node if isinstance(item, Mapping)]

    if any(key in document for key in ("findRegex", "regex", "pattern")):
        return [document]
    raise ValueError("no rewrite rule list found in document")


@dataclass(frozen=True, slots=True)
class JsonRuleSource:
    """Rule tier backed by a JSON document on disk."""

    path: Path
    tier: RuleTier

    def load_records(self) -> list[Mapping[str, Any]]:
        """Read and extract rule records from the JSON document."""

        if not self.path.exists():
            raise SourceUnavailableError(
                f"{self.tier.value} rules", f"file not found: `{self.path}`"
            )
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SourceUnavailableError(
                f"{self.tier.value} rules", f"cannot read `{self.path}`: {exc}"
            ) from exc
        try:
            return extract_rule_records(document)
        except ValueError as exc:
            raise SourceUnavailableError(
                f"{self.tier.value} rules", f"`{self.path}`: {exc}"
            ) from exc


@dataclass(frozen=True, slots=True)
class StaticRuleSource:
    """Rule tier backed by in-memory records, used by embedding hosts and tests."""

    tier: RuleTier
    records: Sequence[Mapping[str, Any]] = field(default_factory=tuple)

    def load_records(self) -> list[Mapping[str, Any]]:
        return list(self.records)
