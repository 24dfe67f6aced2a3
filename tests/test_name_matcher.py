from __future__ import annotations

import pytest

from src.utils.name_matcher import fuzzy_name_match, normalize_name


@pytest.mark.parametrize(
    "raw",
    [
        "John A. Smith",
        "  JOHN   SMITH ",
        "john a b smith",
        "Mary-Jane O'Neil",
        " a smith",
        "x",
        "",
        "   ",
        "Jose\tL.\tGarcia",
        "Smith, John Q.",
    ],
)
def test_normalize_is_idempotent(raw: str) -> None:
    once = normalize_name(raw)
    assert normalize_name(once) == once


def test_normalize_strips_middle_initials() -> None:
    assert normalize_name("John A. Smith") == normalize_name("John Smith") == "john smith"
    assert normalize_name("John A B Smith") == "john smith"


def test_normalize_keeps_leading_and_trailing_single_letters() -> None:
    assert normalize_name("J Smith") == "j smith"
    assert normalize_name("Smith J") == "smith j"


def test_normalize_blank_input() -> None:
    assert normalize_name("") == ""
    assert normalize_name("   \t ") == ""


def test_exact_match_after_normalization() -> None:
    assert fuzzy_name_match("John Smith", "John Smith") == 100
    assert fuzzy_name_match("JOHN SMITH", "john a. smith") == 100


def test_substring_match() -> None:
    assert fuzzy_name_match("John Smith", "John Smith Jr") == 85
    assert fuzzy_name_match("John Smith Jr", "John Smith") == 85


def test_token_prefix_match() -> None:
    # jon~jonathan, smithers~smith
    assert fuzzy_name_match("Jon Smithers", "Jonathan Smith") == 80


def test_token_match_counts_from_first_name_side() -> None:
    assert fuzzy_name_match("Ann Annabel", "Ann Lee") == 80
    assert fuzzy_name_match("Ann Lee", "Ann Annabel") == 40


def test_partial_token_match_rounds() -> None:
    # 2 of 3 tokens -> 53.3
    assert fuzzy_name_match("John Smith", "John Jones Smithson") == 53


def test_no_match() -> None:
    assert fuzzy_name_match("John Smith", "Jane Doe") == 0


def test_no_significant_tokens_scores_zero() -> None:
    assert fuzzy_name_match("a", "b") == 0
