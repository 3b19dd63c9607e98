"""
Edit-distance similarity between normalized strings.
Shared by verse identification (whole verses) and word-level matching.
"""
from rapidfuzz.distance import Levenshtein


def levenshtein_distance(a: str, b: str) -> int:
    """Unit-cost insert/delete/substitute distance over Unicode code points."""
    return Levenshtein.distance(a or "", b or "")


def similarity(a: str, b: str) -> float:
    """
    1 - distance / max(len(a), len(b)), always in [0, 1].
    Identical strings (both empty included) -> 1.0; exactly one empty -> 0.0.
    """
    a = a or ""
    b = b or ""
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    distance = levenshtein_distance(a, b)
    return 1.0 - distance / max(len(a), len(b))
