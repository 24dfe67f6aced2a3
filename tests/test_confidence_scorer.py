from __future__ import annotations

from itertools import product

from src.services.confidence_scorer import (
    calculate_confidence,
    confidence_label,
    describe_signals,
)


def test_exact_name_with_all_context_signals() -> None:
    score, signals = calculate_confidence("Jane Doe", "Jane Doe", True, True, True)

    assert score == 75
    assert signals == {
        "exactNameMatch": True,
        "mailingMismatch": True,
        "sameState": True,
        "recentSale": True,
    }


def test_substring_name_scores_as_fuzzy() -> None:
    score, signals = calculate_confidence("John Smith", "John Smith Jr", False, False, False)

    assert score == 25
    assert signals == {"fuzzyNameMatch": True}


def test_token_name_scores_as_partial() -> None:
    score, signals = calculate_confidence("Jon Smithers", "Jonathan Smith", True, False, False)

    assert score == 35
    assert signals == {"partialNameMatch": True, "mailingMismatch": True}


def test_unrelated_names_get_no_name_points() -> None:
    score, signals = calculate_confidence("John Smith", "Jane Doe", True, True, True)

    assert score == 35
    assert "exactNameMatch" not in signals
    assert "fuzzyNameMatch" not in signals
    assert "partialNameMatch" not in signals


def test_signals_absent_rather_than_false() -> None:
    _score, signals = calculate_confidence("Jane Doe", "Jane Doe", False, False, False)

    assert signals == {"exactNameMatch": True}


def test_score_is_monotonic_and_capped() -> None:
    for owner in ("Jane Doe", "Jane Doe Smith", "Jan Do", "Bob Stone"):
        for flags in product([False, True], repeat=3):
            base, _ = calculate_confidence("Jane Doe", owner, *flags)
            assert 0 <= base <= 100
            for i, flag in enumerate(flags):
                if flag:
                    continue
                more = list(flags)
                more[i] = True
                raised, _ = calculate_confidence("Jane Doe", owner, *more)
                assert raised >= base


def test_scoring_is_deterministic() -> None:
    first = calculate_confidence("Maria L. Garcia", "Maria Garcia", True, False, True)
    second = calculate_confidence("Maria L. Garcia", "Maria Garcia", True, False, True)
    assert first == second


def test_confidence_label_thresholds() -> None:
    assert confidence_label(95) == "High"
    assert confidence_label(80) == "High"
    assert confidence_label(79) == "Medium"
    assert confidence_label(60) == "Medium"
    assert confidence_label(59) == "Low"


def test_describe_signals_uses_display_order() -> None:
    signals = {"recentSale": True, "exactNameMatch": True, "sameState": True}

    assert describe_signals(signals) == ["Exact name match", "Same state", "Recent sale"]
    assert describe_signals(None) == []
