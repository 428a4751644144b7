"""Input and output adapters: transcript and rule sources, artifact storage."""

from .rule_sources import JsonRuleSource, RuleSource, StaticRuleSource, extract_rule_records
from .storage import ArtifactStore
from .transcript_source import FileTranscriptSource, StaticTranscriptSource, TranscriptSource

__all__ = [
    "ArtifactStore",
    "FileTranscriptSource",
    "JsonRuleSource",
    "RuleSource",
    "StaticRuleSource",
    "StaticTranscriptSource",
    "TranscriptSource",
    "extract_rule_records",
]
