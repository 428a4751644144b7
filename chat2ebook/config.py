"""Configuration model and loaders for Chat2Ebook.

Responsibilities:
- Define export run configuration as a typed dataclass.
- Provide loader entry points for file- and environment-based configuration.
- Derive the per-run `ExportConfig` once the transcript is known.

Key types:
- `Chat2EbookConfig`: normalized settings for one export run.
- `ConfigLoader`: static construction helpers for `Chat2EbookConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .models.datatypes import ExportConfig, ExportFormat, Transcript
from .parsing import normalize_optional_string, parse_permissive_boolean

DEFAULT_TITLE = "Chat2Ebook"
DEFAULT_AUTHOR = "User"
DEFAULT_RANGE_END = 99999
_SUPPORTED_FORMATS = tuple(export_format.value for export_format in ExportFormat)


def parse_formats(value: object) -> tuple[ExportFormat, ...]:
    """Parse a comma-separated string or list of format ids, keeping first-seen order.

    Raises:
        ValueError: When a format id is unknown or nothing is selected.
    """

    if isinstance(value, str):
        tokens = value.split(",")
    elif isinstance(value, (list, tuple)):
        tokens = [str(item) for item in value]
    else:
        raise ValueError("`formats` must be a comma-separated string or a list.")

    formats: list[ExportFormat] = []
    for token in tokens:
        normalized = normalize_optional_string(token)
        if normalized is None:
            continue
        try:
            export_format = ExportFormat(normalized.lower())
        except ValueError as exc:
            supported = ", ".join(_SUPPORTED_FORMATS)
            raise ValueError(
                f"Unsupported export format `{normalized}`; supported: {supported}."
            ) from exc
        if export_format not in formats:
            formats.append(export_format)
    if not formats:
        raise ValueError("`formats` must name at least one export format.")
    return tuple(formats)


@dataclass(slots=True)
class Chat2EbookConfig:
    """Configuration for one export run.

    Attributes:
        input_chat: Path to the chat transcript (`.jsonl` or `.json`).
        output_dir: Output directory for delivered documents.
        formats: Output formats produced by the run.
        global_rules: Optional rule file for the global tier.
        character_rules: Optional rule file (or character card) for the character tier.
        preset_rules: Optional rule file (or preset) for the preset tier.
        title: Book title.
        author: Book author; defaults to the chat's user name.
        range_start: First message index to export (inclusive).
        range_end: Last message index to export (inclusive).
        include_user: Whether user-authored messages are exported.
        include_agent: Whether agent-authored messages are exported.
        hide_agent_name: Whether agent speaker labels are omitted.
        chapter_size: Messages per EPUB chapter.
        language: Document language code.
        docx_margin_cm: Page margins of Word output, in centimeters.
        extra: Additional metadata copied into the run manifest.
    """

    input_chat: Path
    output_dir: Path = Path("out")
    formats: tuple[ExportFormat, ...] = (ExportFormat.EPUB,)
    global_rules: Path | None = None
    character_rules: Path | None = None
    preset_rules: Path | None = None
    title: str = DEFAULT_TITLE
    author: str | None = None
    range_start: int = 0
    range_end: int = DEFAULT_RANGE_END
    include_user: bool = False
    include_agent: bool = True
    hide_agent_name: bool = True
    chapter_size: int = 1
    language: str = "en"
    docx_margin_cm: float = 2.0
    extra: dict[str, str] = field(default_factory=dict)

    def validate(self) -> None:
        """Validate configuration values before an export run."""

        if not self.formats:
            raise ValueError("`formats` must name at least one export format.")
        for export_format in self.formats:
            if not isinstance(export_format, ExportFormat):
                raise ValueError(f"Unsupported export format `{export_format}`.")
        if not isinstance(self.title, str) or not self.title.strip():
            raise ValueError("`title` must be a non-empty string.")
        if not isinstance(self.language, str) or not self.language.strip():
            raise ValueError("`language` must be a non-empty string.")
        if self.range_start < 0:
            raise ValueError("`range_start` must be a non-negative integer.")
        if self.range_end < 0:
            raise ValueError("`range_end` must be a non-negative integer.")
        if self.chapter_size <= 0:
            raise ValueError("`chapter_size` must be a positive integer.")
        if self.docx_margin_cm < 0:
            raise ValueError("`docx_margin_cm` must not be negative.")

    def export_config(self, transcript: Transcript) -> ExportConfig:
        """Return the read-only document settings for one run over `transcript`."""

        author = (
            normalize_optional_string(self.author)
            or normalize_optional_string(transcript.user_name)
            or DEFAULT_AUTHOR
        )
        return ExportConfig(
            title=self.title.strip(),
            author=author,
            range_start=self.range_start,
            range_end=self.range_end,
            include_user=self.include_user,
            include_agent=self.include_agent,
            hide_agent_name=self.hide_agent_name,
            chapter_size=self.chapter_size,
            language=self.language.strip(),
        )


class ConfigLoader:
    """Factory methods for creating `Chat2EbookConfig` from external sources."""

    _REQUIRED_YAML_KEYS = frozenset({"input_chat"})
    _SUPPORTED_YAML_KEYS = frozenset(
        {
            "input_chat",
            "output_dir",
            "formats",
            "global_rules",
            "character_rules",
            "preset_rules",
            "title",
            "author",
            "range_start",
            "range_end",
            "include_user",
            "include_agent",
            "hide_agent_name",
            "chapter_size",
            "language",
            "docx_margin_cm",
            "extra",
        }
    )

    @staticmethod
    def from_yaml(path: Path) -> Chat2EbookConfig:
        """Create a validated config from a YAML file."""

        path_text = path.read_text(encoding="utf-8")
        payload = ConfigLoader._parse_yaml_payload(path_text, path)
        return ConfigLoader._build_config_from_mapping(payload, source_label=f"YAML `{path}`")

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> Chat2EbookConfig:
        """Create a validated config from `CHAT2EBOOK_*` environment variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env

        input_chat = ConfigLoader._optional_env_string(env_map, "CHAT2EBOOK_INPUT_CHAT")
        if input_chat is None:
            raise ValueError("Environment variable `CHAT2EBOOK_INPUT_CHAT` is required.")

        formats_raw = ConfigLoader._optional_env_string(env_map, "CHAT2EBOOK_FORMATS")
        try:
            formats = parse_formats(formats_raw) if formats_raw else (ExportFormat.EPUB,)
        except ValueError as exc:
            raise ValueError(f"Environment variable `CHAT2EBOOK_FORMATS`: {exc}") from exc

        config = Chat2EbookConfig(
            input_chat=Path(input_chat),
            output_dir=ConfigLoader._optional_env_path(env_map, "CHAT2EBOOK_OUTPUT_DIR")
            or Path("out"),
            formats=formats,
            global_rules=ConfigLoader._optional_env_path(env_map, "CHAT2EBOOK_GLOBAL_RULES"),
            character_rules=ConfigLoader._optional_env_path(
                env_map, "CHAT2EBOOK_CHARACTER_RULES"
            ),
            preset_rules=ConfigLoader._optional_env_path(env_map, "CHAT2EBOOK_PRESET_RULES"),
            title=ConfigLoader._optional_env_string(env_map, "CHAT2EBOOK_TITLE") or DEFAULT_TITLE,
            author=ConfigLoader._optional_env_string(env_map, "CHAT2EBOOK_AUTHOR"),
            range_start=ConfigLoader._optional_env_int(env_map, "CHAT2EBOOK_RANGE_START", 0),
            range_end=ConfigLoader._optional_env_int(
                env_map, "CHAT2EBOOK_RANGE_END", DEFAULT_RANGE_END
            ),
            include_user=ConfigLoader._optional_env_boolean(
                env_map, "CHAT2EBOOK_INCLUDE_USER", False
            ),
            include_agent=ConfigLoader._optional_env_boolean(
                env_map, "CHAT2EBOOK_INCLUDE_AGENT", True
            ),
            hide_agent_name=ConfigLoader._optional_env_boolean(
                env_map, "CHAT2EBOOK_HIDE_AGENT_NAME", True
            ),
            chapter_size=ConfigLoader._optional_env_int(env_map, "CHAT2EBOOK_CHAPTER_SIZE", 1),
            language=ConfigLoader._optional_env_string(env_map, "CHAT2EBOOK_LANGUAGE") or "en",
            docx_margin_cm=ConfigLoader._optional_env_float(
                env_map, "CHAT2EBOOK_DOCX_MARGIN_CM", 2.0
            ),
        )
        config.validate()
        return config

    @staticmethod
    def _parse_yaml_payload(raw_text: str, path: Path) -> Mapping[str, Any]:
        """Parse YAML text and enforce a mapping root payload."""

        try:
            payload = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ValueError(f"YAML config `{path}` is not valid YAML: {exc}") from exc

        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return payload

    @staticmethod
    def _build_config_from_mapping(
        payload: Mapping[str, Any],
        source_label: str,
    ) -> Chat2EbookConfig:
        """Build a validated config from a normalized mapping payload."""

        ConfigLoader._validate_yaml_keys(payload, source_label)

        input_chat = ConfigLoader._required_path(payload, "input_chat", source_label)
        output_dir = ConfigLoader._optional_path(payload, "output_dir") or Path("out")

        formats: tuple[ExportFormat, ...] = (ExportFormat.EPUB,)
        if payload.get("formats") is not None:
            try:
                formats = parse_formats(payload["formats"])
            except ValueError as exc:
                raise ValueError(f"{source_label} field `formats`: {exc}") from exc

        config = Chat2EbookConfig(
            input_chat=input_chat,
            output_dir=output_dir,
            formats=formats,
            global_rules=ConfigLoader._optional_path(payload, "global_rules"),
            character_rules=ConfigLoader._optional_path(payload, "character_rules"),
            preset_rules=ConfigLoader._optional_path(payload, "preset_rules"),
            title=ConfigLoader._optional_non_empty_string(payload, "title") or DEFAULT_TITLE,
            author=ConfigLoader._optional_non_empty_string(payload, "author"),
            range_start=ConfigLoader._optional_non_negative_int(
                payload, "range_start", source_label, default=0
            ),
            range_end=ConfigLoader._optional_non_negative_int(
                payload, "range_end", source_label, default=DEFAULT_RANGE_END
            ),
            include_user=ConfigLoader._optional_boolean(
                payload, "include_user", source_label, default=False
            ),
            include_agent=ConfigLoader._optional_boolean(
                payload, "include_agent", source_label, default=True
            ),
            hide_agent_name=ConfigLoader._optional_boolean(
                payload, "hide_agent_name", source_label, default=True
            ),
            chapter_size=ConfigLoader._optional_positive_int(
                payload, "chapter_size", source_label, default=1
            ),
            language=ConfigLoader._optional_non_empty_string(payload, "language") or "en",
            docx_margin_cm=ConfigLoader._optional_float(
                payload, "docx_margin_cm", source_label, default=2.0
            ),
            extra=ConfigLoader._optional_string_map(payload, "extra", source_label),
        )
        config.validate()
        return config

    @staticmethod
    def _validate_yaml_keys(payload: Mapping[str, Any], source_label: str) -> None:
        """Validate supported and required YAML keys."""

        unknown = sorted(str(key) for key in set(payload).difference(ConfigLoader._SUPPORTED_YAML_KEYS))
        if unknown:
            key_list = ", ".join(unknown)
            raise ValueError(f"{source_label} includes unsupported key(s): {key_list}.")

        missing = sorted(
            key for key in ConfigLoader._REQUIRED_YAML_KEYS if key not in payload
        )
        if missing:
            key_list = ", ".join(missing)
            raise ValueError(f"{source_label} is missing required key(s): {key_list}.")

    @staticmethod
    def _required_path(payload: Mapping[str, Any], key: str, source_label: str) -> Path:
        """Read a required non-empty path-like field from a payload."""

        value = ConfigLoader._optional_non_empty_string(payload, key)
        if value is None:
            raise ValueError(f"{source_label} requires non-empty `{key}`.")
        return Path(value)

    @staticmethod
    def _optional_path(payload: Mapping[str, Any], key: str) -> Path | None:
        value = ConfigLoader._optional_non_empty_string(payload, key)
        return Path(value) if value is not None else None

    @staticmethod
    def _optional_non_empty_string(payload: Mapping[str, Any], key: str) -> str | None:
        """Read an optional string field and normalize blank values to `None`."""

        if key not in payload:
            return None
        return normalize_optional_string(payload[key])

    @staticmethod
    def _optional_int(
        payload: Mapping[str, Any], key: str, source_label: str, default: int, message: str
    ) -> int:
        if key not in payload:
            return default

        raw_value = payload[key]
        if isinstance(raw_value, bool):
            raise ValueError(f"{source_label} field `{key}` must be {message}.")
        if isinstance(raw_value, int):
            return raw_value
        normalized = normalize_optional_string(raw_value)
        if normalized is None:
            return default
        try:
            return int(normalized)
        except ValueError as exc:
            raise ValueError(f"{source_label} field `{key}` must be {message}.") from exc

    @staticmethod
    def _optional_positive_int(
        payload: Mapping[str, Any], key: str, source_label: str, default: int
    ) -> int:
        """Read and validate a positive integer payload field."""

        message = "a positive integer"
        parsed = ConfigLoader._optional_int(payload, key, source_label, default, message)
        if parsed <= 0:
            raise ValueError(f"{source_label} field `{key}` must be {message}.")
        return parsed

    @staticmethod
    def _optional_non_negative_int(
        payload: Mapping[str, Any], key: str, source_label: str, default: int
    ) -> int:
        """Read and validate a non-negative integer payload field."""

        message = "a non-negative integer"
        parsed = ConfigLoader._optional_int(payload, key, source_label, default, message)
        if parsed < 0:
            raise ValueError(f"{source_label} field `{key}` must be {message}.")
        return parsed

    @staticmethod
    def _optional_float(
        payload: Mapping[str, Any], key: str, source_label: str, default: float
    ) -> float:
        if key not in payload or payload[key] is None:
            return default
        raw_value = payload[key]
        if isinstance(raw_value, bool):
            raise ValueError(f"{source_label} field `{key}` must be a number.")
        try:
            return float(raw_value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{source_label} field `{key}` must be a number.") from exc

    @staticmethod
    def _optional_boolean(
        payload: Mapping[str, Any], key: str, source_label: str, default: bool
    ) -> bool:
        """Read and validate a boolean field from a payload."""

        if key not in payload:
            return default

        parsed = parse_permissive_boolean(payload[key])
        if parsed is None:
            raise ValueError(
                f"{source_label} field `{key}` must be a boolean value "
                "(`true`/`false`, `1`/`0`, `yes`/`no`)."
            )
        return parsed

    @staticmethod
    def _optional_string_map(
        payload: Mapping[str, Any], key: str, source_label: str
    ) -> dict[str, str]:
        """Read an optional mapping with non-empty string keys and values."""

        if key not in payload:
            return {}

        raw = payload[key]
        if raw is None:
            return {}
        if not isinstance(raw, Mapping):
            raise ValueError(f"{source_label} field `{key}` must be a mapping/object.")

        normalized: dict[str, str] = {}
        for raw_key, raw_value in raw.items():
            key_value = normalize_optional_string(raw_key)
            value_value = normalize_optional_string(raw_value)
            if key_value is None:
                raise ValueError(f"{source_label} field `{key}` contains a blank key.")
            if value_value is None:
                raise ValueError(
                    f"{source_label} field `{key}` contains blank value for `{key_value}`."
                )
            normalized[key_value] = value_value
        return normalized

    @staticmethod
    def _optional_env_path(env: Mapping[str, str], key: str) -> Path | None:
        """Read an optional path value from environment mapping."""

        value = ConfigLoader._optional_env_string(env, key)
        if value is None:
            return None
        return Path(value)

    @staticmethod
    def _optional_env_string(env: Mapping[str, str], key: str) -> str | None:
        """Read and normalize optional string environment variable values."""

        if key not in env:
            return None
        return normalize_optional_string(env.get(key))

    @staticmethod
    def _optional_env_int(env: Mapping[str, str], key: str, default: int) -> int:
        raw_value = ConfigLoader._optional_env_string(env, key)
        if raw_value is None:
            return default
        try:
            return int(raw_value)
        except ValueError as exc:
            raise ValueError(f"Environment variable `{key}` must be an integer.") from exc

    @staticmethod
    def _optional_env_float(env: Mapping[str, str], key: str, default: float) -> float:
        raw_value = ConfigLoader._optional_env_string(env, key)
        if raw_value is None:
            return default
        try:
            return float(raw_value)
        except ValueError as exc:
            raise ValueError(f"Environment variable `{key}` must be a number.") from exc

    @staticmethod
    def _optional_env_boolean(env: Mapping[str, str], key: str, default: bool) -> bool:
        """Read an optional boolean from environment mapping."""

        if ConfigLoader._optional_env_string(env, key) is None:
            return default
        parsed = parse_permissive_boolean(env.get(key))
        if parsed is None:
            raise ValueError(
                f"Environment variable `{key}` must be a boolean value "
                "(`true`/`false`, `1`/`0`, `yes`/`no`)."
            )
        return parsed
