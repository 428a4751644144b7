"""Rewrite-rule normalization, aggregation, and application."""

from .aggregator import RuleAggregator, RuleCollection
from .engine import RewriteEngine, expand_replacement
from .normalizer import normalize_rule

__all__ = [
    "RewriteEngine",
    "RuleAggregator",
    "RuleCollection",
    "expand_replacement",
    "normalize_rule",
]
