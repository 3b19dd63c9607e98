"""
Tajweed rule lookup on canonical (diacritized) verse words.

No audio analysis: a word is tagged with the rules its spelling requires, so a
mistake on that word can be labelled as a tajweed concern:
- Madd: long vowel (maddah sign, dagger alif, or a vowel letter carrying the
  matching short vowel before it)
- Ghunnah: nasalization on a doubled ن or م (shadda)
- Qalqalah: ق ط ب ج د with sukun, or as the last letter when stopping
- Heavy_Light: heavy (mufakhkham) letters that must not be read light

Returns rule names in a fixed order; severity is assigned per rule.
"""
import unicodedata
from typing import Dict, List, Mapping, Optional, Sequence, Union

FATHA = "\u064E"
DAMMA = "\u064F"
KASRA = "\u0650"
SHADDA = "\u0651"
SUKUN = "\u0652"
# Uthmani texts often write sukun as a small high head of khah
SUKUN_UTHMANI = "\u06E1"
MADDAH = "\u0653"
DAGGER_ALIF = "\u0670"

QALQALAH_LETTERS = set("قطبجد")
GHUNNAH_LETTERS = set("نم")
HEAVY_LETTERS = set("خصضغطقظ")
# Long-vowel letter -> short vowel that must precede it
MADD_LETTERS = {"ا": FATHA, "ى": FATHA, "و": DAMMA, "ي": KASRA}

RULE_ORDER = ("Madd", "Ghunnah", "Qalqalah", "Heavy_Light")
RULE_SEVERITY = {
    "Madd": "high",  # Madd and Ghunnah are critical
    "Ghunnah": "high",
    "Qalqalah": "medium",
    "Heavy_Light": "medium",
}

TajweedHints = Union[Mapping[int, Sequence[str]], Sequence[Sequence[str]]]


def rule_severity(rule_name: str) -> str:
    return RULE_SEVERITY.get(rule_name, "low")


def _letters_with_marks(word: str) -> List[tuple]:
    """Split a word into (letter, marks) clusters."""
    clusters: List[tuple] = []
    for ch in unicodedata.normalize("NFC", word or ""):
        if unicodedata.category(ch) == "Mn" and clusters:
            letter, marks = clusters[-1]
            clusters[-1] = (letter, marks + ch)
        elif ch.isalpha():
            clusters.append((ch, ""))
    return clusters


def detect_word_tajweed_rules(word: str, is_final: bool = False) -> List[str]:
    """
    Rules required by one diacritized word. Undiacritized text yields only the
    rules readable from letters alone (heavy letters, final qalqalah).
    """
    clusters = _letters_with_marks(word)
    found = set()

    for idx, (letter, marks) in enumerate(clusters):
        is_last = idx == len(clusters) - 1
        has_sukun = SUKUN in marks or SUKUN_UTHMANI in marks

        if MADDAH in marks or DAGGER_ALIF in marks:
            found.add("Madd")
        elif letter in MADD_LETTERS and idx > 0 and not (set(marks) - {SUKUN, SUKUN_UTHMANI}):
            prev_marks = clusters[idx - 1][1]
            if MADD_LETTERS[letter] in prev_marks:
                found.add("Madd")

        if letter in GHUNNAH_LETTERS and SHADDA in marks:
            found.add("Ghunnah")

        if letter in QALQALAH_LETTERS and (has_sukun or (is_final and is_last)):
            found.add("Qalqalah")

        if letter in HEAVY_LETTERS:
            found.add("Heavy_Light")

    return [rule for rule in RULE_ORDER if rule in found]


def lookup_tajweed_rules(
    expected_words: Sequence[str],
    hints: Optional[TajweedHints] = None,
) -> Dict[int, List[str]]:
    """
    Tajweed rules per expected-word index. Caller hints for an index replace
    the rules detected from that word's spelling; words without rules are omitted.
    """
    if hints is None:
        hint_map: Dict[int, Sequence[str]] = {}
    elif isinstance(hints, Mapping):
        hint_map = dict(hints)
    else:
        hint_map = {i: rules for i, rules in enumerate(hints)}

    rules_by_index: Dict[int, List[str]] = {}
    last = len(expected_words) - 1
    for idx, word in enumerate(expected_words):
        if idx in hint_map:
            rules = [r for r in hint_map[idx] if r]
        else:
            rules = detect_word_tajweed_rules(word, is_final=idx == last)
        if rules:
            rules_by_index[idx] = list(rules)
    return rules_by_index


def tajweed_rule_accuracy(
    rules_by_index: Mapping[int, Sequence[str]],
    flagged_indices: Sequence[int],
) -> float:
    """
    Share of tajweed-bearing words recited without a flagged mistake.
    If no word carries a rule, returns 1.0.
    """
    if not rules_by_index:
        return 1.0
    flagged = set(flagged_indices)
    n_errors = sum(1 for idx in rules_by_index if idx in flagged)
    return max(0.0, min(1.0, 1.0 - n_errors / len(rules_by_index)))
