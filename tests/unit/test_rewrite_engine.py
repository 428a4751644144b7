"""Unit tests for the regex rewrite engine and replacement templates."""

from __future__ import annotations

import re

import pytest

from chat2ebook.errors import RuleCompilationError
from chat2ebook.models.datatypes import MessageRole, RewriteRule, RuleTier
from chat2ebook.rules.engine import (
    RewriteEngine,
    compile_rule,
    expand_replacement,
    rule_applies,
    translate_flags,
    translate_pattern,
)


def _rule(
    pattern: str,
    replacement: str,
    flags: str = "g",
    name: str = "rule",
    **kwargs: object,
) -> RewriteRule:
    return RewriteRule(
        source_tier=RuleTier.GLOBAL,
        name=name,
        pattern=pattern,
        flags=flags,
        replacement=replacement,
        **kwargs,
    )


def test_render_without_rules_returns_text_unchanged() -> None:
    """An empty rule list should leave text exactly as recorded."""

    engine = RewriteEngine()
    text = "Hello **world**\n  with spacing  "

    assert engine.render(text, False, [], depth=0) == text
    assert engine.render(text, True, [], depth=5) == text


def test_render_replaces_every_occurrence() -> None:
    """Rules should replace across the whole text, with or without the `g` flag."""

    engine = RewriteEngine()

    assert engine.render("cat and cat", False, [_rule("cat", "dog")], depth=0) == "dog and dog"
    assert (
        engine.render("cat and cat", False, [_rule("cat", "dog", flags="")], depth=0)
        == "dog and dog"
    )


def test_render_applies_rules_in_order_without_rescanning_output() -> None:
    """Later rules see earlier output; one rule never rescans its own replacement."""

    engine = RewriteEngine()
    rules = [_rule("a", "aa", name="double"), _rule("aa", "b", name="collapse")]

    assert engine.render("a", False, rules, depth=0) == "b"
    assert engine.render("a", False, [_rule("a", "aa")], depth=0) == "aa"


def test_render_skips_rules_targeted_at_other_role() -> None:
    """Agent-only rules should never touch user-authored text."""

    engine = RewriteEngine()
    rule = _rule("secret", "[hidden]", target_roles=frozenset({MessageRole.AGENT}))

    assert engine.render("a secret", True, [rule], depth=0) == "a secret"
    assert engine.render("a secret", False, [rule], depth=0) == "a [hidden]"


@pytest.mark.parametrize(("depth", "expected"), [(0, "x"), (1, "y"), (2, "y"), (3, "x")])
def test_render_honors_inclusive_depth_bounds(depth: int, expected: str) -> None:
    """Depth bounds should be inclusive on both ends."""

    engine = RewriteEngine()
    rule = _rule("x", "y", min_depth=1, max_depth=2)

    assert engine.render("x", False, [rule], depth=depth) == expected


def test_render_skips_malformed_pattern_and_keeps_processing() -> None:
    """A rule that fails to compile is skipped, recorded, and later rules still run."""

    engine = RewriteEngine()
    rules = [_rule("(", "x", name="broken"), _rule("cat", "dog", name="ok")]

    assert engine.render("cat", False, rules, depth=0) == "dog"
    assert engine.skipped_rules == ("broken",)


def test_render_skips_unsupported_flags() -> None:
    """Unknown flag letters should skip the rule rather than fail the export."""

    engine = RewriteEngine()

    assert engine.render("cat", False, [_rule("cat", "dog", flags="gx", name="odd")], 0) == "cat"
    assert engine.skipped_rules == ("odd",)


def test_render_supports_case_insensitive_and_dotall_flags() -> None:
    """`i` and `s` flags should map onto Python regex flags."""

    engine = RewriteEngine()

    assert engine.render("HELLO", False, [_rule("hello", "hi", flags="gi")], 0) == "hi"
    assert engine.render("<a\nb>", False, [_rule("<.*>", "", flags="gs")], 0) == ""


def test_render_returns_empty_string_for_empty_input() -> None:
    engine = RewriteEngine()

    assert engine.render("", False, [_rule("^", "prefix")], depth=0) == ""


def test_translate_flags_rejects_duplicates() -> None:
    with pytest.raises(ValueError, match="duplicate"):
        translate_flags("gg")


def test_compile_rule_translates_named_groups_and_backreferences() -> None:
    """JavaScript named groups and `\\k<name>` should compile in Python."""

    pattern = compile_rule(_rule(r"(?<word>\w+) \k<word>", "$<word>"))

    assert pattern.fullmatch("bye bye") is not None


def test_compile_rule_raises_rule_compilation_error() -> None:
    with pytest.raises(RuleCompilationError) as exc_info:
        compile_rule(_rule("[unclosed", "x", name="bad"))

    assert exc_info.value.rule_name == "bad"


def test_expand_replacement_supports_javascript_tokens() -> None:
    """Group, whole-match, context, and escape tokens should expand like JavaScript."""

    match = re.search(r"(\w+) (\w+)", "say hello world now")
    assert match is not None

    assert expand_replacement("$2 $1", match) == "world hello"
    assert expand_replacement("[$&]", match) == "[hello world]"
    assert expand_replacement("$`|$'", match) == "say | now"
    assert expand_replacement("$$1", match) == "$1"
    assert expand_replacement("$3", match) == "$3"
    assert expand_replacement("$12", match) == "hello2"


def test_expand_replacement_named_groups_and_match_macro_with_trim() -> None:
    """`$<name>` and `{{match}}` should expand, with trim strings removed from the match."""

    match = re.search(r"\*(?P<inner>\w+)\*", "an *aside* here")
    assert match is not None

    assert expand_replacement("<$<inner>>", match) == "<aside>"
    assert expand_replacement("({{match}})", match, trim_strings=("*",)) == "(aside)"
    assert expand_replacement("$<missing>", match) == "$<missing>"


def test_rule_applies_with_empty_roles_targets_both() -> None:
    rule = _rule("x", "y")

    assert rule_applies(rule, MessageRole.USER, 0) is True
    assert rule_applies(rule, MessageRole.AGENT, 0) is True


def test_render_any_character_class_spans_newlines() -> None:
    """`[^]` is the JavaScript idiom for any character, newlines included."""

    engine = RewriteEngine()
    rule = _rule("<think>[^]*?</think>", "", name="strip")

    assert engine.render("a<think>x\ny</think>b", False, [rule], depth=0) == "ab"
    assert engine.skipped_rules == ()


def test_translate_pattern_handles_javascript_classes_and_anchors() -> None:
    assert translate_pattern("a[^]b") == r"a[\s\S]b"
    assert translate_pattern("a[]b") == "a(?!)b"
    assert translate_pattern(r"\[^]") == r"\[^]"
    assert translate_pattern("[$^]$", multiline=True) == "[$^]$"
    assert translate_pattern(r"[[]\$") == r"[\[]\$"


def test_render_dollar_anchors_at_true_end_without_multiline_flag() -> None:
    engine = RewriteEngine()

    assert engine.render("foo\n", False, [_rule("foo$", "X")], depth=0) == "foo\n"
    assert engine.render("foo\nfoo", False, [_rule("foo$", "X")], depth=0) == "foo\nX"
    assert engine.render("foo\nfoo\n", False, [_rule("foo$", "X", flags="gm")], depth=0) == "X\nX\n"


def test_render_empty_class_never_matches() -> None:
    engine = RewriteEngine()

    assert engine.render("abc", False, [_rule("a[]", "X")], depth=0) == "abc"
    assert engine.skipped_rules == ()


def test_render_reports_every_rule_sharing_a_broken_pattern() -> None:
    """A cached compile failure still marks each rule that uses the pattern."""

    engine = RewriteEngine()
    rules = [_rule("(unclosed", "x", name="a"), _rule("(unclosed", "y", name="b")]

    assert engine.render("text", False, rules, depth=0) == "text"
    assert engine.skipped_rules == ("a", "b")
