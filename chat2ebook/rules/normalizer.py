"""Normalization of heterogeneous rewrite-rule records.

Responsibilities:
- Map rule records with inconsistent field names onto one `RewriteRule` shape.
- Unwrap `/body/flags` regex literals and resolve role placement.
- Never raise: malformed records become rules with an empty pattern.

Field names are resolved through `_FIELD_PRIORITY`, first present key wins.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from ..models.datatypes import MessageRole, RewriteRule, RuleTier
from ..parsing import (
    normalize_optional_string,
    parse_optional_non_negative_int,
    parse_permissive_boolean,
)

DEFAULT_FLAGS = "g"

_FIELD_PRIORITY: dict[str, tuple[str, ...]] = {
    "name": ("scriptName", "name", "id"),
    "pattern": ("findRegex", "regex", "pattern", "find"),
    "replacement": ("replaceString", "replacement", "replace"),
    "flags": ("flags",),
    "placement": ("placement", "placements", "target_roles"),
    "user_input": ("user_input", "userInput", "applies_to_user"),
    "ai_output": ("ai_output", "aiOutput", "applies_to_agent"),
    "min_depth": ("minDepth", "min_depth"),
    "max_depth": ("maxDepth", "max_depth"),
    "disabled": ("disabled",),
    "enabled": ("enabled",),
    "trim_strings": ("trimStrings", "trim_strings"),
    "prompt_only": ("promptOnly", "prompt_only"),
}

_USER_PLACEMENTS = frozenset({"1", "user", "user_input", "userinput"})
_AGENT_PLACEMENTS = frozenset({"2", "ai", "agent", "ai_output", "aioutput", "assistant"})

_REGEX_LITERAL_RE = re.compile(r"^/(?P<body>[\s\S]+)/(?P<flags>[a-z]*)$")


def _lookup(record: Mapping[str, Any], concept: str) -> Any:
    """Return the first present value for a concept from the priority table."""

    for key in _FIELD_PRIORITY[concept]:
        if key in record and record[key] is not None:
            return record[key]
    return None


def split_regex_literal(raw_pattern: str) -> tuple[str, str | None]:
    """Split `/body/flags` literal notation into body and embedded flags.

    Returns the raw string and `None` when the input is not a literal.
    """

    match = _REGEX_LITERAL_RE.match(raw_pattern)
    if match is None:
        return raw_pattern, None
    return match.group("body"), match.group("flags")


def _resolve_roles(record: Mapping[str, Any]) -> tuple[frozenset[MessageRole], bool]:
    """Resolve target roles and whether the placement names any chat message role.

    Returns `(roles, applicable)`; an empty role set means both roles.
    """

    placement = _lookup(record, "placement")
    if isinstance(placement, (str, int)) and not isinstance(placement, bool):
        placement = [placement]
    if isinstance(placement, (list, tuple, set, frozenset)):
        if not placement:
            return frozenset(), True
        roles: set[MessageRole] = set()
        for entry in placement:
            token = str(entry).strip().lower()
            if token in _USER_PLACEMENTS:
                roles.add(MessageRole.USER)
            elif token in _AGENT_PLACEMENTS:
                roles.add(MessageRole.AGENT)
        if not roles:
            return frozenset(), False
        if roles == {MessageRole.USER, MessageRole.AGENT}:
            return frozenset(), True
        return frozenset(roles), True

    user_flag = parse_permissive_boolean(_lookup(record, "user_input"))
    agent_flag = parse_permissive_boolean(_lookup(record, "ai_output"))
    if user_flag is None and agent_flag is None:
        return frozenset(), True
    legacy_roles: set[MessageRole] = set()
    if user_flag:
        legacy_roles.add(MessageRole.USER)
    if agent_flag:
        legacy_roles.add(MessageRole.AGENT)
    if not legacy_roles:
        return frozenset(), False
    if len(legacy_roles) == 2:
        return frozenset(), True
    return frozenset(legacy_roles), True


def _resolve_enabled(record: Mapping[str, Any]) -> bool:
    disabled = parse_permissive_boolean(_lookup(record, "disabled"))
    if disabled is not None:
        return not disabled
    enabled = parse_permissive_boolean(_lookup(record, "enabled"))
    return True if enabled is None else enabled


def _resolve_trim_strings(record: Mapping[str, Any]) -> tuple[str, ...]:
    raw = _lookup(record, "trim_strings")
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, (list, tuple)):
        return tuple()
    return tuple(str(item) for item in raw if isinstance(item, str) and item)


def _empty_rule(tier: RuleTier, name: str) -> RewriteRule:
    return RewriteRule(
        source_tier=tier,
        name=name,
        pattern="",
        flags=DEFAULT_FLAGS,
        replacement="",
        enabled=False,
    )


def normalize_rule(
    record: object,
    tier: RuleTier,
    default_flags: str = DEFAULT_FLAGS,
    fallback_name: str | None = None,
) -> RewriteRule:
    """Convert one raw rule record into a canonical `RewriteRule`.

    Args:
        record: Raw rule record of unknown shape.
        tier: Provenance tier the record was read from.
        default_flags: Flags used when neither the record nor a literal supplies any.
        fallback_name: Name used when the record carries none.

    Returns:
        Canonical rule. Malformed input yields a rule with an empty pattern.
    """

    default_name = fallback_name or f"{tier.value}-rule"
    if not isinstance(record, Mapping):
        return _empty_rule(tier, default_name)

    name = normalize_optional_string(_lookup(record, "name")) or default_name
    raw_pattern = _lookup(record, "pattern")
    if not isinstance(raw_pattern, str) or not raw_pattern.strip():
        return _empty_rule(tier, name)

    body, literal_flags = split_regex_literal(raw_pattern.strip())
    external_flags = _lookup(record, "flags")
    if literal_flags is not None:
        flags = literal_flags
    elif isinstance(external_flags, str):
        flags = external_flags.strip()
    else:
        flags = default_flags

    replacement = _lookup(record, "replacement")
    if not isinstance(replacement, str):
        replacement = "" if replacement is None else str(replacement)

    roles, applicable = _resolve_roles(record)
    enabled = _resolve_enabled(record) and applicable

    return RewriteRule(
        source_tier=tier,
        name=name,
        pattern=body,
        flags=flags,
        replacement=replacement,
        target_roles=roles,
        min_depth=parse_optional_non_negative_int(_lookup(record, "min_depth")),
        max_depth=parse_optional_non_negative_int(_lookup(record, "max_depth")),
        enabled=enabled,
        trim_strings=_resolve_trim_strings(record),
        prompt_only=bool(parse_permissive_boolean(_lookup(record, "prompt_only"))),
    )
