import pytest

from recordcat.format import CompileError, match_delimited
from recordcat.format.delims import closing_for


@pytest.mark.parametrize(
    "text",
    ["[[[pattern]]]", "{{pattern}}", "||pattern||", "(pattern)", "#pattern#"],
)
def test_matching_is_symmetric(text):
    assert match_delimited(text + "}tail") == ("pattern", "}tail")


def test_inner_may_hold_reserved_characters():
    inner, rest = match_delimited("[[%H:%M}%S]]}")
    assert inner == "%H:%M}%S"
    assert rest == "}"


def test_first_closing_run_wins():
    assert match_delimited("[a]b]") == ("a", "b]")


def test_empty_inner():
    assert match_delimited("[[]]") == ("", "")


@pytest.mark.parametrize("text", ["{{pattern}", "[[[x]]", "|x", ""])
def test_unmatched(text):
    with pytest.raises(CompileError, match="unmatched delimiter"):
        match_delimited(text)


def test_closing_for():
    assert closing_for("{") == "}"
    assert closing_for("[") == "]"
    assert closing_for("(") == ")"
    assert closing_for("|") == "|"
