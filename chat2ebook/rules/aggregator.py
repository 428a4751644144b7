"""Rule aggregation across provenance tiers.

Responsibilities:
- Collect raw records from global, character, and preset tiers.
- Normalize and merge them into one ordered, filtered rule list.
- Treat an unavailable tier as contributing zero rules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from loguru import logger

from ..errors import SourceUnavailableError
from ..io.rule_sources import RuleSource
from ..models.datatypes import RewriteRule, RuleTier
from .normalizer import normalize_rule

TIER_ORDER: tuple[RuleTier, ...] = (RuleTier.GLOBAL, RuleTier.CHARACTER, RuleTier.PRESET)


@dataclass(frozen=True, slots=True)
class RuleCollection:
    """Aggregated rules plus tier diagnostics.

    Attributes:
        rules: Active rules in application order.
        unavailable_tiers: Tiers whose lookup failed, with the failure detail.
        dropped_count: Rules dropped as disabled, empty, or prompt-only.
    """

    rules: tuple[RewriteRule, ...]
    unavailable_tiers: dict[RuleTier, str] = field(default_factory=dict)
    dropped_count: int = 0


def is_active(rule: RewriteRule) -> bool:
    """Return whether a normalized rule takes part in display rewriting."""

    return rule.enabled and bool(rule.pattern) and not rule.prompt_only


class RuleAggregator:
    """Merge rule tiers in global, character, preset order."""

    def __init__(self, sources: Sequence[RuleSource]) -> None:
        """Initialize with tier sources; several sources per tier keep their order."""

        self._sources = sorted(sources, key=lambda source: TIER_ORDER.index(source.tier))

    def collect(self) -> RuleCollection:
        """Normalize and merge every tier, never failing the whole export."""

        rules: list[RewriteRule] = []
        unavailable: dict[RuleTier, str] = {}
        dropped = 0
        for source in self._sources:
            try:
                records = source.load_records()
            except SourceUnavailableError as exc:
                unavailable[source.tier] = exc.detail
                logger.warning(
                    "Rule tier {tier} unavailable: {detail}",
                    tier=source.tier.value,
                    detail=exc.detail,
                )
                continue

            for position, record in enumerate(records, start=1):
                rule = normalize_rule(
                    record,
                    source.tier,
                    fallback_name=f"{source.tier.value}-{position}",
                )
                if is_active(rule):
                    rules.append(rule)
                else:
                    dropped += 1

        return RuleCollection(
            rules=tuple(rules),
            unavailable_tiers=unavailable,
            dropped_count=dropped,
        )
