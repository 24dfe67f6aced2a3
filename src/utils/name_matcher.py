"""
Name Matcher Utility.

Handles name comparison between a deed buyer and the owner of record on
another property. Implements initial-stripping normalization, substring
detection and token-prefix scoring.
"""

import re
from typing import List

from config.chain_detection import SUBSTRING_MATCH_SCORE, TOKEN_MATCH_MAX_SCORE

# Single-letter token (optionally dotted) with whitespace on both sides.
_MIDDLE_INITIAL_RE = re.compile(r"(?<=\s)[a-z]\.?(?=\s)")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_name(name: str) -> str:
    """
    Normalize a person name for comparison.

    Steps:
    1. Lowercase
    2. Drop middle initials ("john a. smith" -> "john smith")
    3. Collapse whitespace and trim
    """
    if not name:
        return ""

    clean = name.lower()
    clean = _MIDDLE_INITIAL_RE.sub(" ", clean)
    return _WHITESPACE_RE.sub(" ", clean).strip()


def _significant_tokens(normalized: str) -> List[str]:
    return [t for t in normalized.split(" ") if len(t) > 1]


def fuzzy_name_match(name1: str, name2: str) -> int:
    """
    Score how similar two names are, 0-100.

    - 100: identical after normalization
    - 85: one name contains the other ("john smith" / "john smith jr")
    - 0-80: share of name1 tokens that equal or prefix-match a name2 token

    The token step counts from name1's side, so swapping the arguments can
    change the result.
    """
    n1 = normalize_name(name1)
    n2 = normalize_name(name2)

    if n1 == n2:
        return 100

    if n1 in n2 or n2 in n1:
        return SUBSTRING_MATCH_SCORE

    parts1 = _significant_tokens(n1)
    parts2 = _significant_tokens(n2)
    denominator = max(len(parts1), len(parts2))
    if denominator == 0:
        return 0

    matches = 0
    for p1 in parts1:
        if any(p2 == p1 or p2.startswith(p1) or p1.startswith(p2) for p2 in parts2):
            matches += 1

    # Round half up
    return int(matches / denominator * TOKEN_MATCH_MAX_SCORE + 0.5)


if __name__ == "__main__":
    cases = [
        ("John Smith", "John Smith"),
        ("John A. Smith", "John Smith"),
        ("John Smith", "John Smith Jr"),
        ("Jon Smithers", "Jonathan Smith"),
        ("Robert Johnson", "Bob Johnson"),
        ("John Smith", "Jane Doe"),
    ]

    print(f"{'Name 1':<20} | {'Name 2':<20} | {'Score'}")
    print("-" * 52)
    for n1, n2 in cases:
        print(f"{n1:<20} | {n2:<20} | {fuzzy_name_match(n1, n2)}")
