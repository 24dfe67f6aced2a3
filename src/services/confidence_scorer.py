"""
Confidence scoring for buyer → owned-property pairings.

Combines name-match strength with contextual signals into a 0-100 score and a
map of the signals that contributed. Pure functions, no I/O.
"""

from typing import Dict, List, Tuple

from config.chain_detection import (
    CONFIDENCE_HIGH,
    CONFIDENCE_MEDIUM,
    EXACT_NAME_SCORE,
    FUZZY_NAME_SCORE,
    MAX_CONFIDENCE_SCORE,
    PARTIAL_NAME_SCORE,
    WEIGHT_EXACT_NAME,
    WEIGHT_FUZZY_NAME,
    WEIGHT_MAILING_MISMATCH,
    WEIGHT_PARTIAL_NAME,
    WEIGHT_RECENT_SALE,
    WEIGHT_SAME_STATE,
)
from src.utils.name_matcher import fuzzy_name_match

# Signal name -> display text, in display order
SIGNAL_DESCRIPTIONS = {
    "exactNameMatch": "Exact name match",
    "fuzzyNameMatch": "Similar name",
    "partialNameMatch": "Partial name match",
    "mailingMismatch": "Different mailing address",
    "sameState": "Same state",
    "recentSale": "Recent sale",
}


def calculate_confidence(
    buyer_name: str,
    owner_name: str,
    mailing_mismatch: bool,
    same_state: bool,
    recent_sale: bool,
) -> Tuple[int, Dict[str, bool]]:
    """
    Score a candidate chain.

    Returns (score, signals). Only signals that fired appear in the map.
    """
    score = 0
    signals: Dict[str, bool] = {}

    name_score = fuzzy_name_match(buyer_name, owner_name)
    if name_score >= EXACT_NAME_SCORE:
        score += WEIGHT_EXACT_NAME
        signals["exactNameMatch"] = True
    elif name_score >= FUZZY_NAME_SCORE:
        score += WEIGHT_FUZZY_NAME
        signals["fuzzyNameMatch"] = True
    elif name_score >= PARTIAL_NAME_SCORE:
        score += WEIGHT_PARTIAL_NAME
        signals["partialNameMatch"] = True

    # Owner doesn't appear to live at the owned property
    if mailing_mismatch:
        score += WEIGHT_MAILING_MISMATCH
        signals["mailingMismatch"] = True

    if same_state:
        score += WEIGHT_SAME_STATE
        signals["sameState"] = True

    if recent_sale:
        score += WEIGHT_RECENT_SALE
        signals["recentSale"] = True

    return min(score, MAX_CONFIDENCE_SCORE), signals


def confidence_label(score: int) -> str:
    if score >= CONFIDENCE_HIGH:
        return "High"
    if score >= CONFIDENCE_MEDIUM:
        return "Medium"
    return "Low"


def describe_signals(signals: Dict[str, bool] | None) -> List[str]:
    """Human-readable descriptions for the signals that fired."""
    if not signals:
        return []
    return [text for key, text in SIGNAL_DESCRIPTIONS.items() if signals.get(key)]
