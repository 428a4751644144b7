"""Command-line interface for Chat2Ebook.

Responsibilities:
- Expose user-facing commands for exporting and inspecting chat transcripts.
- Convert CLI arguments and YAML defaults into `Chat2EbookConfig`.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Annotated, Any

import typer

from .cli_rendering import (
    echo_export_summary,
    echo_rule_list,
    echo_transcript_summary,
    exit_with_command_error,
)
from .config import Chat2EbookConfig, ConfigLoader, parse_formats
from .errors import PipelineStageError
from .pipeline import Chat2EbookPipeline
from .telemetry.logger import RunLogger

app = typer.Typer(
    name="chat2ebook",
    no_args_is_help=True,
    help="Chat2Ebook CLI: export chat transcripts as e-books and documents.",
)

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Path to YAML config file with command defaults."),
]
GlobalRulesOption = Annotated[
    Path | None,
    typer.Option("--global-rules", help="JSON file with global rewrite rules."),
]
CharacterRulesOption = Annotated[
    Path | None,
    typer.Option(
        "--character-rules",
        help="JSON file with character rewrite rules, or a character card.",
    ),
]
PresetRulesOption = Annotated[
    Path | None,
    typer.Option("--preset-rules", help="JSON file with preset rewrite rules, or a preset."),
]
StartOption = Annotated[
    int | None,
    typer.Option("--start", min=0, help="First message index to export (inclusive)."),
]
EndOption = Annotated[
    int | None,
    typer.Option("--end", min=0, help="Last message index to export (inclusive)."),
]
IncludeUserOption = Annotated[
    bool | None,
    typer.Option("--include-user/--no-include-user", help="Export user-authored messages."),
]
IncludeAgentOption = Annotated[
    bool | None,
    typer.Option("--include-agent/--no-include-agent", help="Export agent-authored messages."),
]


class BuildProgressIndicator:
    """Render deterministic per-stage progress lines for export commands."""

    _SPINNER_FRAMES = "|/-\\"

    def __init__(self, command_name: str) -> None:
        self._command_name = command_name

    def on_stage_start(self, stage_name: str, stage_index: int, stage_total: int) -> None:
        """Print one progress line for a stage start transition."""

        spinner = self._SPINNER_FRAMES[(stage_index - 1) % len(self._SPINNER_FRAMES)]
        typer.echo(
            f"[progress] command={self._command_name} "
            f"{spinner} {stage_index}/{stage_total} stage={stage_name}"
        )


def _load_yaml_config(config_path: Path | None) -> Chat2EbookConfig | None:
    """Load a YAML config file when requested and map failures to stage errors."""

    if config_path is None:
        return None

    try:
        return ConfigLoader.from_yaml(config_path)
    except FileNotFoundError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid config file `{config_path}`: {exc}",
            hint="Fix config schema/values and rerun.",
        ) from exc


def _resolve_command_config(
    config_file: Path | None,
    input_chat: Path | None,
    require_input: bool = True,
    **overrides: Any,
) -> Chat2EbookConfig:
    """Resolve effective config from YAML defaults and explicit CLI overrides.

    Overrides whose value is `None` keep the YAML (or default) value.
    """

    loaded_config = _load_yaml_config(config_file)
    explicit = {key: value for key, value in overrides.items() if value is not None}
    if "formats" in explicit:
        try:
            explicit["formats"] = parse_formats(explicit["formats"])
        except ValueError as exc:
            raise PipelineStageError(
                stage="config",
                detail=str(exc),
                hint="Use `--formats epub,html,docx,txt`.",
            ) from exc

    if loaded_config is None:
        if input_chat is None:
            if require_input:
                raise PipelineStageError(
                    stage="config",
                    detail="Chat transcript path is required when `--config` is not provided.",
                    hint="Pass `<chat.jsonl>` or use `--config <path.yaml>` with `input_chat`.",
                )
            input_chat = Path(".")
        return Chat2EbookConfig(input_chat=input_chat, **explicit)

    if input_chat is not None:
        explicit["input_chat"] = input_chat
    return replace(loaded_config, **explicit)


@app.command("export")
def export_command(
    input_chat: Annotated[
        Path | None,
        typer.Argument(
            help="Path to the chat transcript (`.jsonl` or `.json`). Required unless provided by `--config`.",
        ),
    ] = None,
    out: Annotated[
        Path | None,
        typer.Option("--out", help="Output directory (overrides config file value)."),
    ] = None,
    config_file: ConfigOption = None,
    formats: Annotated[
        str | None,
        typer.Option("--formats", help="Comma-separated formats: `epub`, `html`, `docx`, `txt`."),
    ] = None,
    title: Annotated[str | None, typer.Option("--title", help="Book title.")] = None,
    author: Annotated[
        str | None,
        typer.Option("--author", help="Book author (defaults to the chat's user name)."),
    ] = None,
    start: StartOption = None,
    end: EndOption = None,
    include_user: IncludeUserOption = None,
    include_agent: IncludeAgentOption = None,
    hide_agent_name: Annotated[
        bool | None,
        typer.Option(
            "--hide-agent-name/--show-agent-name",
            help="Omit the speaker label above agent messages.",
        ),
    ] = None,
    chapter_size: Annotated[
        int | None,
        typer.Option("--chapter-size", min=1, help="Messages per EPUB chapter."),
    ] = None,
    language: Annotated[
        str | None,
        typer.Option("--language", help="Document language code, e.g. `en`."),
    ] = None,
    docx_margin_cm: Annotated[
        float | None,
        typer.Option("--docx-margin-cm", min=0.0, help="Word document page margins in cm."),
    ] = None,
    global_rules: GlobalRulesOption = None,
    character_rules: CharacterRulesOption = None,
    preset_rules: PresetRulesOption = None,
) -> None:
    """Export a chat transcript to the requested document formats."""

    try:
        config = _resolve_command_config(
            config_file,
            input_chat,
            output_dir=out,
            formats=formats,
            title=title,
            author=author,
            range_start=start,
            range_end=end,
            include_user=include_user,
            include_agent=include_agent,
            hide_agent_name=hide_agent_name,
            chapter_size=chapter_size,
            language=language,
            docx_margin_cm=docx_margin_cm,
            global_rules=global_rules,
            character_rules=character_rules,
            preset_rules=preset_rules,
        )
        progress = BuildProgressIndicator(command_name="export")
        pipeline = Chat2EbookPipeline(
            run_logger=RunLogger(),
            stage_progress_callback=progress.on_stage_start,
        )
        manifest = pipeline.run(config)
    except Exception as exc:
        exit_with_command_error("export", exc)

    echo_export_summary(manifest)


@app.command("rules")
def rules_command(
    config_file: ConfigOption = None,
    global_rules: GlobalRulesOption = None,
    character_rules: CharacterRulesOption = None,
    preset_rules: PresetRulesOption = None,
) -> None:
    """List the rewrite rules an export would apply, in application order."""

    try:
        config = _resolve_command_config(
            config_file,
            None,
            require_input=False,
            global_rules=global_rules,
            character_rules=character_rules,
            preset_rules=preset_rules,
        )
        collection = Chat2EbookPipeline().collect_rules(config)
    except Exception as exc:
        exit_with_command_error("rules", exc)

    echo_rule_list(collection)


@app.command("info")
def info_command(
    input_chat: Annotated[
        Path | None,
        typer.Argument(help="Path to the chat transcript (`.jsonl` or `.json`)."),
    ] = None,
    config_file: ConfigOption = None,
    start: StartOption = None,
    end: EndOption = None,
    include_user: IncludeUserOption = None,
    include_agent: IncludeAgentOption = None,
) -> None:
    """Show transcript counts and how many messages an export would select."""

    try:
        config = _resolve_command_config(
            config_file,
            input_chat,
            range_start=start,
            range_end=end,
            include_user=include_user,
            include_agent=include_agent,
        )
        summary = Chat2EbookPipeline().describe_transcript(config)
    except Exception as exc:
        exit_with_command_error("info", exc)

    echo_transcript_summary(summary)


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
