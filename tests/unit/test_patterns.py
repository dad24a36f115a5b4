"""Tests for applicability pattern matching and validation."""
from __future__ import annotations

import pytest

from stratum.core.exceptions import InvalidPatternSyntaxError
from stratum.core.patterns import (
    compile_pattern,
    escape_glob,
    matches,
    matches_any_pattern,
    normalize_path,
    split_sub_patterns,
    validate_pattern,
)


@pytest.mark.parametrize(
    "path",
    ["main.c", "src/uart.c", "drivers/serial/uart.h", "a/b/c/d.h"],
)
def test_comma_separated_sub_patterns_are_or_clauses(path: str) -> None:
    assert matches(path, "**/*.c,**/*.h")


@pytest.mark.parametrize("path", ["main.py", "src/uart.cpp", "src/c", "include/h"])
def test_comma_separated_sub_patterns_reject_other_paths(path: str) -> None:
    assert not matches(path, "**/*.c,**/*.h")


def test_star_stays_within_one_segment() -> None:
    assert matches("README.md", "*.md")
    assert not matches("docs/README.md", "*.md")
    assert matches("src/app.test.ts", "src/*.ts")
    assert not matches("src/nested/app.ts", "src/*.ts")


def test_double_star_matches_zero_or_more_segments() -> None:
    assert matches("src/test.py", "src/**/test.py")
    assert matches("src/a/b/test.py", "src/**/test.py")
    assert not matches("lib/test.py", "src/**/test.py")


def test_trailing_double_star_matches_directory_and_descendants() -> None:
    assert matches("src", "src/**")
    assert matches("src/a/b.py", "src/**")
    assert not matches("srcx/a.py", "src/**")


def test_lone_double_star_matches_everything() -> None:
    assert matches("anything/at/all.txt", "**")
    assert matches("top.txt", "**")


def test_question_mark_matches_one_character() -> None:
    assert matches("v1.py", "v?.py")
    assert not matches("v10.py", "v?.py")
    assert not matches("v/.py", "v?.py")


def test_character_classes() -> None:
    assert matches("file_a.c", "file_[abc].c")
    assert not matches("file_d.c", "file_[abc].c")
    assert matches("file_d.c", "file_[!abc].c")
    assert matches("log7.txt", "log[0-9].txt")


def test_negated_class_never_matches_separator() -> None:
    assert not matches("a/b", "a[!x]b")


def test_brace_alternatives() -> None:
    assert matches("src/main.ts", "src/*.{ts,tsx}")
    assert matches("src/view.tsx", "src/*.{ts,tsx}")
    assert not matches("src/main.js", "src/*.{ts,tsx}")


def test_commas_inside_braces_do_not_split() -> None:
    assert split_sub_patterns("src/*.{ts,tsx},docs/**") == ["src/*.{ts,tsx}", "docs/**"]


def test_matching_is_case_sensitive() -> None:
    assert not matches("SRC/main.c", "src/**")
    assert not matches("main.C", "**/*.c")


def test_paths_are_normalized_before_matching() -> None:
    assert normalize_path("./src//main.c") == "src/main.c"
    assert matches("./src/main.c", "src/*.c")


def test_leading_dot_slash_in_pattern_is_ignored() -> None:
    assert matches("src/main.c", "./src/*.c")
    assert matches("src/main.c", "/src/*.c")


def test_regex_metacharacters_are_literal() -> None:
    assert matches("a+b(1).md", "a+b(1).md")
    assert not matches("aab1.md", "a+b(1).md")


def test_matches_any_pattern() -> None:
    patterns = ["docs/**", "**/*.py"]
    assert matches_any_pattern("tools/run.py", patterns)
    assert not matches_any_pattern("tools/run.sh", patterns)


def test_compiled_patterns_are_cached() -> None:
    assert compile_pattern("**/*.rs") is compile_pattern("**/*.rs")


@pytest.mark.parametrize(
    "pattern, reason",
    [
        ("", "empty pattern"),
        ("src/*.c,,src/*.h", "empty sub-pattern"),
        ("src//main.c", "empty path segment"),
        ("src/**x/main.c", "'**' must be a whole path segment"),
        ("src\\main.c", "backslashes are not allowed; use '/'"),
        ("src/[abc", "unbalanced '['"),
        ("src/{a,b", "unbalanced '{'"),
        ("src/a}.c", "unbalanced '}'"),
        ("src/{a,{b}}.c", "nested braces are not supported"),
        ("../outside/*.c", "relative segment '..' is not allowed"),
    ],
)
def test_invalid_patterns_are_rejected(pattern: str, reason: str) -> None:
    with pytest.raises(InvalidPatternSyntaxError) as exc_info:
        validate_pattern(pattern)
    assert exc_info.value.reason == reason
    assert exc_info.value.pattern == pattern


def test_validation_error_names_the_document() -> None:
    with pytest.raises(InvalidPatternSyntaxError) as exc_info:
        validate_pattern("src/[abc", document_id="embedded-c")
    err = exc_info.value
    assert err.document_id == "embedded-c"
    assert err.context["document_id"] == "embedded-c"
    assert "embedded-c" in str(err)


def test_non_string_pattern_is_rejected() -> None:
    with pytest.raises(InvalidPatternSyntaxError):
        compile_pattern(42)  # type: ignore[arg-type]


@pytest.mark.parametrize("name", ["[id]", "a,b", "v?", "x*y", "{slug}", "[]", "a]b"])
def test_escaped_names_match_only_themselves(name: str) -> None:
    pattern = f"app/{escape_glob(name)}/**"
    validate_pattern(pattern)
    assert split_sub_patterns(pattern) == [pattern]
    assert matches(f"app/{name}/page.tsx", pattern)
    assert not matches("app/i/page.tsx", pattern)
    assert not matches("app/ab/page.tsx", pattern)


def test_escape_glob_leaves_plain_names_alone() -> None:
    assert escape_glob("web/ui-kit") == "web/ui-kit"
    assert escape_glob("[id]") == "[[]id[]]"


def test_braces_inside_a_class_are_literal() -> None:
    assert matches("a{b", "a[{]b")
    assert matches("x.c", "x.{c,[}]}")
    assert matches("x.}", "x.{c,[}]}")
