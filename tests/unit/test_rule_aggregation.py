"""Unit tests for rule-tier lookups and aggregation order."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from chat2ebook.errors import SourceUnavailableError
from chat2ebook.io.rule_sources import JsonRuleSource, StaticRuleSource, extract_rule_records
from chat2ebook.models.datatypes import RuleTier
from chat2ebook.rules.aggregator import RuleAggregator


def test_aggregator_orders_tiers_global_character_preset() -> None:
    """Rules should come out in tier order regardless of source order."""

    aggregator = RuleAggregator(
        [
            StaticRuleSource(RuleTier.PRESET, [{"scriptName": "p", "findRegex": "p"}]),
            StaticRuleSource(RuleTier.GLOBAL, [{"scriptName": "g", "findRegex": "g"}]),
            StaticRuleSource(RuleTier.CHARACTER, [{"scriptName": "c", "findRegex": "c"}]),
        ]
    )

    collection = aggregator.collect()

    assert [rule.name for rule in collection.rules] == ["g", "c", "p"]


def test_aggregator_keeps_record_order_within_tier() -> None:
    aggregator = RuleAggregator(
        [
            StaticRuleSource(
                RuleTier.GLOBAL,
                [{"findRegex": "first"}, {"findRegex": "second"}],
            )
        ]
    )

    collection = aggregator.collect()

    assert [rule.pattern for rule in collection.rules] == ["first", "second"]
    assert [rule.name for rule in collection.rules] == ["global-1", "global-2"]


def test_aggregator_drops_disabled_empty_and_prompt_only_rules() -> None:
    """Only rules that rewrite displayed chat text should be kept."""

    aggregator = RuleAggregator(
        [
            StaticRuleSource(
                RuleTier.GLOBAL,
                [
                    {"findRegex": "kept"},
                    {"findRegex": "off", "disabled": True},
                    {"findRegex": ""},
                    {"findRegex": "prompt", "promptOnly": True},
                ],
            )
        ]
    )

    collection = aggregator.collect()

    assert [rule.pattern for rule in collection.rules] == ["kept"]
    assert collection.dropped_count == 3


def test_aggregator_treats_unavailable_tier_as_empty(tmp_path: Path) -> None:
    """A missing tier should contribute zero rules and be reported, not raise."""

    aggregator = RuleAggregator(
        [
            JsonRuleSource(tmp_path / "missing.json", RuleTier.CHARACTER),
            StaticRuleSource(RuleTier.PRESET, [{"findRegex": "p"}]),
        ]
    )

    collection = aggregator.collect()

    assert [rule.pattern for rule in collection.rules] == ["p"]
    assert RuleTier.CHARACTER in collection.unavailable_tiers
    assert "file not found" in collection.unavailable_tiers[RuleTier.CHARACTER]


def test_json_rule_source_reads_character_card(tmp_path: Path) -> None:
    """Character cards keep their rules under `data.extensions.regex_scripts`."""

    card = {
        "spec": "chara_card_v2",
        "data": {
            "name": "Seraphina",
            "extensions": {
                "regex_scripts": [{"scriptName": "Card rule", "findRegex": "/a/g"}],
            },
        },
    }
    path = tmp_path / "card.json"
    path.write_text(json.dumps(card), encoding="utf-8")

    records = JsonRuleSource(path, RuleTier.CHARACTER).load_records()

    assert records == [{"scriptName": "Card rule", "findRegex": "/a/g"}]


def test_json_rule_source_rejects_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(SourceUnavailableError, match="cannot read"):
        JsonRuleSource(path, RuleTier.GLOBAL).load_records()


def test_extract_rule_records_supports_known_document_shapes() -> None:
    """Bare lists, settings files, presets, and single rules should all resolve."""

    rule = {"findRegex": "x"}

    assert extract_rule_records([rule, "junk"]) == [rule]
    assert extract_rule_records({"extension_settings": {"regex": [rule]}}) == [rule]
    assert extract_rule_records({"extensions": {"regex_scripts": [rule]}}) == [rule]
    assert extract_rule_records(rule) == [rule]
    with pytest.raises(ValueError):
        extract_rule_records({"unrelated": True})
