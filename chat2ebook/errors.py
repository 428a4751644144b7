"""Domain exceptions for export pipeline and CLI diagnostics.

Contained failures (`RuleCompilationError`, `SourceUnavailableError`) are
caught where they happen and never stop an export. Stage errors are surfaced
to the CLI with a stage name and an optional hint.
"""

from __future__ import annotations


class PipelineStageError(RuntimeError):
    """Raised when a specific pipeline stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped pipeline error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint


class CapabilityUnavailableError(PipelineStageError):
    """Raised when a rendering or packaging capability cannot be loaded."""

    def __init__(self, *, capability: str, detail: str, hint: str | None = None) -> None:
        super().__init__(stage="capability", detail=detail, hint=hint)
        self.capability = capability


class ConversionError(PipelineStageError):
    """Raised when the HTML to word-processor conversion fails."""

    def __init__(self, *, detail: str, hint: str | None = None) -> None:
        super().__init__(stage="assemble", detail=detail, hint=hint)


class EmptySelectionError(PipelineStageError):
    """Raised when the configured range and role filters select no messages."""

    def __init__(self, *, detail: str = "Nothing to export.", hint: str | None = None) -> None:
        super().__init__(stage="extract", detail=detail, hint=hint)


class RuleCompilationError(ValueError):
    """Raised when a rewrite rule pattern or its flags do not form a valid regex."""

    def __init__(self, rule_name: str, detail: str) -> None:
        super().__init__(f"Rule `{rule_name}` failed to compile: {detail}")
        self.rule_name = rule_name
        self.detail = detail


class SourceUnavailableError(LookupError):
    """Raised when a transcript or rule source cannot be resolved."""

    def __init__(self, source: str, detail: str) -> None:
        super().__init__(f"{source}: {detail}")
        self.source = source
        self.detail = detail
