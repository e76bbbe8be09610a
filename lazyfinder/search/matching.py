"""Candidate filtering predicate.

Ordered-subsequence matching only: a candidate either matches or it does
not, and matches keep their load order.
"""

from __future__ import annotations


def is_case_sensitive(query: str) -> bool:
    """Smart case: an uppercase letter in the query makes matching exact."""
    return any(ch.isupper() for ch in query)


def subsequence_match(query: str, candidate: str) -> bool:
    if not query:
        return True
    if not is_case_sensitive(query):
        query = query.casefold()
        candidate = candidate.casefold()

    pos = 0
    for needle in query:
        idx = candidate.find(needle, pos)
        if idx < 0:
            return False
        pos = idx + 1
    return True
