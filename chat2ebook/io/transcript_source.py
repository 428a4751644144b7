"""Transcript sources.

Responsibilities:
- Read chat transcripts saved by a chat host (`.jsonl` with an optional
  header line, or a `.json` message list) into an immutable `Transcript`.
- Keep every message line so sequence indices match the host's numbering.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
from typing import Any, Mapping, Protocol

from ..errors import SourceUnavailableError
from ..models.datatypes import RawMessage, Transcript
from ..parsing import normalize_optional_string, parse_permissive_boolean

_HEADER_KEYS = frozenset({"user_name", "character_name", "chat_metadata"})
_TEXT_KEYS = ("mes", "content", "text", "message")
_NAME_KEYS = ("name", "author", "author_name", "speaker")


class TranscriptSource(Protocol):
    """Protocol for read-only transcript access."""

    def read(self) -> Transcript:
        """Return a point-in-time snapshot of the transcript."""


def _first_present(payload: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return None


def _is_user_authored(payload: Mapping[str, Any]) -> bool:
    flag = parse_permissive_boolean(payload.get("is_user"))
    if flag is not None:
        return flag
    role = normalize_optional_string(payload.get("role"))
    return role is not None and role.lower() in {"user", "human"}


def message_from_payload(sequence_index: int, payload: Mapping[str, Any]) -> RawMessage:
    """Build a `RawMessage` from one host message object."""

    text = _first_present(payload, _TEXT_KEYS)
    if isinstance(text, list):
        text = "\n".join(
            str(part.get("text", "")) if isinstance(part, Mapping) else str(part)
            for part in text
        )
    return RawMessage(
        sequence_index=sequence_index,
        is_user_authored=_is_user_authored(payload),
        author_name=normalize_optional_string(_first_present(payload, _NAME_KEYS)) or "",
        raw_text="" if text is None else str(text),
    )


def _is_header(payload: Mapping[str, Any]) -> bool:
    return not any(key in payload for key in _TEXT_KEYS) and any(
        key in payload for key in _HEADER_KEYS
    )


def parse_transcript_payloads(payloads: list[Any]) -> Transcript:
    """Build a transcript from decoded host objects, honoring a leading header.

    Entries that are not objects become blank messages so later entries keep
    the host's numbering.
    """

    user_name: str | None = None
    character_name: str | None = None
    if payloads and isinstance(payloads[0], Mapping) and _is_header(payloads[0]):
        header = payloads[0]
        user_name = normalize_optional_string(header.get("user_name"))
        character_name = normalize_optional_string(header.get("character_name"))
        payloads = payloads[1:]

    messages = tuple(
        message_from_payload(index, payload if isinstance(payload, Mapping) else {})
        for index, payload in enumerate(payloads)
    )
    return Transcript(
        messages=messages,
        user_name=user_name,
        character_name=character_name,
    )


@dataclass(frozen=True, slots=True)
class FileTranscriptSource:
    """Transcript stored as `.jsonl` (one object per line) or `.json`."""

    path: Path

    def read(self) -> Transcript:
        """Read and parse the transcript file.

        Raises:
            SourceUnavailableError: When the file is missing or not valid JSON.
        """

        if not self.path.exists():
            raise SourceUnavailableError("transcript", f"file not found: `{self.path}`")
        try:
            raw_text = self.path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as exc:
            raise SourceUnavailableError("transcript", f"cannot read `{self.path}`: {exc}") from exc

        try:
            payloads = self._decode(raw_text)
        except json.JSONDecodeError as exc:
            raise SourceUnavailableError(
                "transcript", f"`{self.path}` is not valid JSON: {exc}"
            ) from exc
        return parse_transcript_payloads(payloads)

    def _decode(self, raw_text: str) -> list[Any]:
        stripped = raw_text.strip()
        if not stripped:
            return []
        if self.path.suffix.lower() == ".json" or stripped.startswith("["):
            document = json.loads(stripped)
            if isinstance(document, Mapping):
                messages = document.get("messages", document.get("chat", []))
                header = {key: document[key] for key in _HEADER_KEYS if key in document}
                document = ([header] if header else []) + list(messages or [])
            return list(document) if isinstance(document, list) else []
        return [json.loads(line) for line in stripped.splitlines() if line.strip()]


@dataclass(frozen=True, slots=True)
class StaticTranscriptSource:
    """Transcript held in memory, used by embedding hosts and tests."""

    transcript: Transcript

    def read(self) -> Transcript:
        return self.transcript
