"""Regex rewrite engine applied to raw message text.

Responsibilities:
- Apply an ordered rule list to one message, honoring role and depth targeting.
- Translate JavaScript-style flags, named groups, and replacement templates.
- Contain per-rule failures so one broken rule never stops an export.
"""

from __future__ import annotations

import re
from typing import Sequence

from loguru import logger

from ..errors import RuleCompilationError
from ..models.datatypes import MessageRole, RewriteRule

_FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
}
_ACCEPTED_NOOP_FLAGS = frozenset("guyd")

_NAMED_GROUP_RE = re.compile(r"(?<!\\)\(\?<(?![=!])")
_NAMED_BACKREF_RE = re.compile(r"\\k<([A-Za-z_][A-Za-z0-9_]*)>")
_TEMPLATE_TOKEN_RE = re.compile(r"\$(\$|&|`|'|<[A-Za-z_][A-Za-z0-9_]*>|\d{1,2})|\{\{match\}\}")
_EMPTY_CLASS = "(?!)"
_ANY_CHAR_CLASS = r"[\s\S]"
_END_OF_INPUT = r"\Z"


def translate_flags(flags: str) -> int:
    """Translate JavaScript regex flag letters into Python `re` flags.

    Raises:
        ValueError: On an unknown or repeated flag letter.
    """

    compiled = 0
    seen: set[str] = set()
    for letter in flags:
        if letter in seen:
            raise ValueError(f"duplicate flag `{letter}`")
        seen.add(letter)
        if letter in _FLAG_MAP:
            compiled |= _FLAG_MAP[letter]
        elif letter not in _ACCEPTED_NOOP_FLAGS:
            raise ValueError(f"unsupported flag `{letter}`")
    return compiled


def _translate_syntax(pattern: str, multiline: bool) -> str:
    """Rewrite JavaScript character-class and anchor syntax outside escapes."""

    parts: list[str] = []
    in_class = False
    index = 0
    while index < len(pattern):
        char = pattern[index]
        if char == "\\":
            parts.append(pattern[index : index + 2])
            index += 2
            continue
        if in_class:
            if char == "]":
                in_class = False
            elif char == "[":
                char = "\\["
            parts.append(char)
        elif pattern.startswith("[]", index):
            parts.append(_EMPTY_CLASS)
            index += 1
        elif pattern.startswith("[^]", index):
            parts.append(_ANY_CHAR_CLASS)
            index += 2
        elif char == "[":
            in_class = True
            parts.append(char)
        elif char == "$" and not multiline:
            parts.append(_END_OF_INPUT)
        else:
            parts.append(char)
        index += 1
    return "".join(parts)


def translate_pattern(pattern: str, multiline: bool = False) -> str:
    """Rewrite JavaScript-only regex syntax into the Python dialect.

    `[^]` matches any character, `[]` never matches, and without the `m`
    flag `$` anchors only at the very end of the input.
    """

    translated = _translate_syntax(pattern, multiline)
    translated = _NAMED_GROUP_RE.sub("(?P<", translated)
    return _NAMED_BACKREF_RE.sub(r"(?P=\1)", translated)


def compile_rule(rule: RewriteRule) -> re.Pattern[str]:
    """Compile a rule's pattern and flags.

    Raises:
        RuleCompilationError: When the pattern or flags are invalid.
    """

    try:
        flags = translate_flags(rule.flags)
        return re.compile(translate_pattern(rule.pattern, bool(flags & re.MULTILINE)), flags)
    except (re.error, ValueError) as exc:
        raise RuleCompilationError(rule.name, str(exc)) from exc


def _trimmed_match(text: str, trim_strings: Sequence[str]) -> str:
    for trim in trim_strings:
        text = text.replace(trim, "")
    return text


def expand_replacement(
    template: str,
    match: re.Match[str],
    trim_strings: Sequence[str] = (),
) -> str:
    """Expand a JavaScript-style replacement template for one match.

    Supports `$1`..`$99`, `$<name>`, `$&`, `` $` ``, `$'`, `$$`, and the
    `{{match}}` macro. Unknown references are kept literally.
    """

    source = match.string
    group_count = match.re.groups

    def _expand(token: re.Match[str]) -> str:
        whole = token.group(0)
        if whole == "{{match}}":
            return _trimmed_match(match.group(0), trim_strings)
        ref = token.group(1)
        if ref == "$":
            return "$"
        if ref == "&":
            return _trimmed_match(match.group(0), trim_strings)
        if ref == "`":
            return source[: match.start()]
        if ref == "'":
            return source[match.end():]
        if ref.startswith("<"):
            name = ref[1:-1]
            if name not in match.re.groupindex:
                return whole
            return match.group(name) or ""
        number = int(ref)
        if 1 <= number <= group_count:
            return match.group(number) or ""
        # `$12` with only one group reads as `$1` followed by a literal `2`.
        if len(ref) == 2 and 1 <= int(ref[0]) <= group_count:
            return (match.group(int(ref[0])) or "") + ref[1]
        return whole

    return _TEMPLATE_TOKEN_RE.sub(_expand, template)


def rule_applies(rule: RewriteRule, role: MessageRole, depth: int) -> bool:
    """Return whether role and depth targeting select this rule for a message."""

    if rule.target_roles and role not in rule.target_roles:
        return False
    if rule.min_depth is not None and depth < rule.min_depth:
        return False
    if rule.max_depth is not None and depth > rule.max_depth:
        return False
    return True


class RewriteEngine:
    """Apply ordered rewrite rules to raw message text."""

    def __init__(self) -> None:
        """Initialize compiled-pattern cache and skipped-rule diagnostics."""

        self._compiled: dict[tuple[str, str], re.Pattern[str] | None] = {}
        self._skipped: dict[str, str] = {}
        self._compile_errors: dict[tuple[str, str], str] = {}

    @property
    def skipped_rules(self) -> tuple[str, ...]:
        """Names of rules skipped during this engine's lifetime, in first-seen order."""

        return tuple(self._skipped)

    def _pattern_for(self, rule: RewriteRule) -> re.Pattern[str] | None:
        key = (rule.pattern, rule.flags)
        if key not in self._compiled:
            try:
                self._compiled[key] = compile_rule(rule)
            except RuleCompilationError as exc:
                self._compiled[key] = None
                self._compile_errors[key] = exc.detail
        if self._compiled[key] is None:
            self._record_skip(rule, self._compile_errors[key])
        return self._compiled[key]

    def _record_skip(self, rule: RewriteRule, reason: str) -> None:
        if rule.name not in self._skipped:
            self._skipped[rule.name] = reason
            logger.warning(
                "Skipping rewrite rule {name} ({tier}): {reason}",
                name=rule.name,
                tier=rule.source_tier.value,
                reason=reason,
            )

    def render(
        self,
        raw_text: str,
        is_user_authored: bool,
        rules: Sequence[RewriteRule],
        depth: int,
    ) -> str:
        """Return `raw_text` rewritten by every applicable rule, in order."""

        if not raw_text:
            return ""

        role = MessageRole.USER if is_user_authored else MessageRole.AGENT
        text = raw_text
        for rule in rules:
            if not rule.pattern or not rule_applies(rule, role, depth):
                continue
            pattern = self._pattern_for(rule)
            if pattern is None:
                continue
            try:
                text = pattern.sub(
                    lambda match, _rule=rule: expand_replacement(
                        _rule.replacement, match, _rule.trim_strings
                    ),
                    text,
                )
            except Exception as exc:
                self._record_skip(rule, f"{type(exc).__name__}: {exc}")
        return text
