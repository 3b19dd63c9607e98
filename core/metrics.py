"""
Transcript error rates reported with each session summary.

WER / CER = (S + D + I) / N over normalized Arabic text with letter variants
folded (Uthmani ٱ reads as ا), where N is the reference length in words or
characters. Words are whitespace tokens, as in alignment, and a word matches
when any of its readings does (dagger alif dropped or read as ا).
"""
import operator
from typing import Any, Callable, NamedTuple, Optional, Sequence, Tuple

from core.normalization import fold_letter_variants, normalize_arabic_text, split_words, word_spellings


class EditCounts(NamedTuple):
    substitutions: int
    deletions: int
    insertions: int
    reference_length: int

    @property
    def edits(self) -> int:
        return self.substitutions + self.deletions + self.insertions

    @property
    def error_rate(self) -> float:
        if not self.reference_length:
            return 0.0 if not self.insertions else 1.0
        return self.edits / self.reference_length


def edit_counts(
    ref: Sequence[Any],
    hyp: Sequence[Any],
    same: Optional[Callable[[Any, Any], bool]] = None,
) -> EditCounts:
    """Unit-cost Levenshtein table over tokens, backtracked into S/D/I counts."""
    same = same or operator.eq
    R, H = len(ref), len(hyp)
    dp = [[0] * (H + 1) for _ in range(R + 1)]
    for i in range(R + 1):
        dp[i][0] = i
    for j in range(H + 1):
        dp[0][j] = j
    for i in range(1, R + 1):
        for j in range(1, H + 1):
            cost = 0 if same(ref[i - 1], hyp[j - 1]) else 1
            dp[i][j] = min(dp[i - 1][j] + 1, dp[i][j - 1] + 1, dp[i - 1][j - 1] + cost)

    s = d = ins = 0
    i, j = R, H
    while i > 0 or j > 0:
        if i > 0 and j > 0 and same(ref[i - 1], hyp[j - 1]) and dp[i][j] == dp[i - 1][j - 1]:
            i -= 1
            j -= 1
        elif i > 0 and j > 0 and dp[i][j] == dp[i - 1][j - 1] + 1:
            s += 1
            i -= 1
            j -= 1
        elif i > 0 and dp[i][j] == dp[i - 1][j] + 1:
            d += 1
            i -= 1
        else:
            ins += 1
            j -= 1
    return EditCounts(s, d, ins, R)


def _comparable(text: str) -> str:
    return fold_letter_variants(normalize_arabic_text(text))


def _word_readings(text: str) -> list:
    readings = (tuple(word_spellings(word)) for word in split_words(text))
    return [r for r in readings if r[0]]


def _share_reading(a: Tuple[str, ...], b: Tuple[str, ...]) -> bool:
    return not set(a).isdisjoint(b)


def word_error_counts(reference: str, hypothesis: str) -> EditCounts:
    return edit_counts(_word_readings(reference), _word_readings(hypothesis), same=_share_reading)


def wer(reference: str, hypothesis: str) -> float:
    """Word Error Rate; 0 = perfect, may exceed 1 with many insertions."""
    return word_error_counts(reference, hypothesis).error_rate


def cer(reference: str, hypothesis: str, remove_spaces: bool = True) -> float:
    """Character Error Rate; spaces are ignored by default (standard for Arabic)."""
    ref_norm = _comparable(reference)
    hyp_norm = _comparable(hypothesis)
    if remove_spaces:
        ref_norm = ref_norm.replace(" ", "")
        hyp_norm = hyp_norm.replace(" ", "")
    return edit_counts(list(ref_norm), list(hyp_norm)).error_rate
