"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
export summaries, rule listings, and transcript overviews.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .errors import EmptySelectionError, PipelineStageError
from .models.datatypes import ExportManifest, RewriteRule, TranscriptSummary
from .rules.aggregator import RuleCollection


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, EmptySelectionError):
        typer.secho(f"{command_name}: {exc.detail}", fg=typer.colors.YELLOW, err=True)
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    elif isinstance(exc, PipelineStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_export_summary(manifest: ExportManifest) -> None:
    """Print delivered documents and size accounting for one export."""

    typer.echo(f"Run id: {manifest.run_id}")
    typer.echo(
        f"Messages: {manifest.stats.record_count} "
        f"(chapters: {manifest.stats.chapter_count}, characters: {manifest.stats.total_chars})"
    )
    for format_id in sorted(manifest.artifacts):
        typer.echo(f"Document [{format_id}]: {manifest.artifacts[format_id]}")
    if manifest.skipped_rules:
        typer.echo(f"Skipped rules: {', '.join(manifest.skipped_rules)}")
    typer.echo(f"Manifest: {manifest.extra.get('manifest_path', '(not written)')}")


def _describe_targeting(rule: RewriteRule) -> str:
    roles = ",".join(sorted(role.value for role in rule.target_roles)) or "all"
    low = "0" if rule.min_depth is None else str(rule.min_depth)
    high = "*" if rule.max_depth is None else str(rule.max_depth)
    return f"roles={roles} depth={low}..{high}"


def echo_rule_list(collection: RuleCollection) -> None:
    """Print rules in application order, then tier diagnostics."""

    if not collection.rules:
        typer.echo("No active rewrite rules.")
    for position, rule in enumerate(collection.rules, start=1):
        typer.echo(
            f"{position}. [{rule.source_tier.value}] {rule.name}: "
            f"/{rule.pattern}/{rule.flags} -> {rule.replacement!r} ({_describe_targeting(rule)})"
        )
    for tier, detail in collection.unavailable_tiers.items():
        typer.echo(f"Tier unavailable [{tier.value}]: {detail}")
    if collection.dropped_count:
        typer.echo(f"Inactive rules ignored: {collection.dropped_count}")


def echo_transcript_summary(summary: TranscriptSummary) -> None:
    """Print transcript counts and the number of messages an export would select."""

    typer.echo(f"User: {summary.user_name or '(unknown)'}")
    typer.echo(f"Character: {summary.character_name or '(unknown)'}")
    typer.echo(
        f"Messages: {summary.message_count} "
        f"(user: {summary.user_count}, agent: {summary.agent_count})"
    )
    if summary.displayed_count < summary.message_count:
        typer.echo(
            f"Displayed: {summary.displayed_count} of {summary.message_count} "
            "(the host has not displayed every message)"
        )
    typer.echo(f"Selected for export: {summary.selected_count}")
