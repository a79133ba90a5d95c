"""Levenshtein distance helpers for matching OCR titles to catalog titles."""

from __future__ import annotations

import math

RELEVANCE_RATIO = 0.1


def levenshtein(a: str, b: str) -> int:
    """Return the Levenshtein distance between two case-folded strings.

    Uses a single rolling row sized by the shorter string, so extra space is
    ``O(min(len(a), len(b)))``. Substitution, insertion and deletion each cost 1.
    """
    left = str(a or "").casefold()
    right = str(b or "").casefold()
    if len(left) < len(right):
        left, right = right, left
    if not right:
        return len(left)

    row = list(range(len(right) + 1))
    for i, left_char in enumerate(left, start=1):
        diagonal = row[0]
        row[0] = i
        for j, right_char in enumerate(right, start=1):
            above = row[j]
            cost = 0 if left_char == right_char else 1
            row[j] = min(
                above + 1,
                row[j - 1] + 1,
                diagonal + cost,
            )
            diagonal = above
    return row[-1]


def truncation_aware_distance(query: str, candidate: str, truncated: bool = False) -> int:
    """Distance between a query and a candidate title.

    When ``truncated`` is set the query is only compared against the
    equal-length prefix of the candidate, since OCR cut the title short.
    """
    query = str(query or "").strip()
    candidate = str(candidate or "").strip()
    if truncated:
        candidate = candidate[: len(query)]
    return levenshtein(query, candidate)


def relevance_threshold(query: str) -> int:
    return math.floor(len(str(query or "").strip()) * RELEVANCE_RATIO)
