from __future__ import annotations

import pytest

from raze.agent.edits import apply_edit


@pytest.mark.parametrize("find", ["", None])
def test_empty_find_is_a_no_op(find: str | None) -> None:
    assert apply_edit("hello world", find, "x") == "hello world"


def test_literal_replaces_first_occurrence_only() -> None:
    assert apply_edit("red red red", "red", "blue") == "blue red red"


def test_literal_treats_regex_metacharacters_literally() -> None:
    assert apply_edit("a.b a+b", "a+b", "X") == "a.b X"


def test_missing_literal_leaves_content_unchanged() -> None:
    assert apply_edit("abc", "zzz", "X") == "abc"


def test_global_regex_replaces_every_run() -> None:
    assert apply_edit("aaa bb aaa", "/a+/g", "X") == "X bb X"


def test_regex_without_global_flag_replaces_first_match() -> None:
    assert apply_edit("aaa bb aaa", "/a+/", "X") == "X bb aaa"


def test_regex_case_insensitive_flag() -> None:
    assert apply_edit("Color: RED", "/red/i", "blue") == "Color: blue"


def test_regex_backreferences_use_python_syntax() -> None:
    assert apply_edit("color: red;", r"/color: (\w+);/", r"background: \1;") == "background: red;"


def test_regex_that_fails_to_compile_falls_back_to_literal() -> None:
    assert apply_edit("match /(/ here", "/(/", "X") == "match X here"


def test_unknown_flag_falls_back_to_literal() -> None:
    assert apply_edit("a /a/q b", "/a/q", "X") == "a X b"


def test_bad_replacement_template_falls_back_to_literal() -> None:
    assert apply_edit("abc /b/", "/b/", r"\9") == r"abc \9"
