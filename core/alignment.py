"""
Word-level alignment of a transcript against the expected verse, with
mistake detection.

Expected and transcribed words are aligned by dynamic programming (edit
distance over words): pairing two words costs 1 - their combined similarity,
skipping a word on either side costs 1. The minimum-cost path is backtracked
into matches, missing expected words and extra transcribed words, and every
divergence becomes a LiveMistake:
- substitution: paired words whose similarity is below the threshold
- omission: expected word with no transcribed counterpart
- insertion: transcribed word with no expected counterpart

Ties are broken pair > omission > insertion, so identical inputs always give
identical mistake lists.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from core.normalization import normalize_word, split_words
from core.phonetics import (
    DialectPhoneticModel,
    DialectResolution,
    PhoneticComparison,
    compare_words,
    resolve_dialect,
)
from tajweed.rules import TajweedHints, lookup_tajweed_rules

SUBSTITUTION = "substitution"
OMISSION = "omission"
INSERTION = "insertion"

MATCH = "match"
MISSING = "missing"
EXTRA = "extra"

# Pairs below this combined similarity are substitutions
DEFAULT_SUBSTITUTION_THRESHOLD = 0.92
MIN_SUBSTITUTION_THRESHOLD = 0.5
MAX_SUBSTITUTION_THRESHOLD = 0.95

MISSED_WORD = "missed_word"
INCORRECT_WORD = "incorrect_word"
EXTRA_WORD = "extra_word"
TAJWEED = "tajweed"

MISTAKE_CATEGORY_ORDER = (MISSED_WORD, INCORRECT_WORD, EXTRA_WORD, TAJWEED)
MISTAKE_CATEGORY_META: Dict[str, Dict[str, str]] = {
    MISSED_WORD: {
        "label": "Missed words",
        "description": "Expected ayah tokens that were not recited during the session.",
    },
    INCORRECT_WORD: {
        "label": "Incorrect words",
        "description": "Spoken tokens that differ from the Mushaf text.",
    },
    EXTRA_WORD: {
        "label": "Extra words",
        "description": "Words or sounds added beyond the written ayah.",
    },
    TAJWEED: {
        "label": "Tajweed",
        "description": "Mistakes on words that carry a tajweed rule (madd, ghunnah, qalqalah, heavy letters).",
    },
}
_CATEGORY_BY_TYPE = {
    SUBSTITUTION: INCORRECT_WORD,
    OMISSION: MISSED_WORD,
    INSERTION: EXTRA_WORD,
}


@dataclass(frozen=True)
class AlignmentEntry:
    """One step of the backtracked alignment path."""
    kind: str  # "match" | "missing" | "extra"
    expected: Optional[str] = None
    detected: Optional[str] = None
    expected_index: Optional[int] = None
    comparison: Optional[PhoneticComparison] = None

    @property
    def similarity(self) -> float:
        return self.comparison.combined_similarity if self.comparison else 0.0


@dataclass(frozen=True)
class SimilarityBreakdown:
    combined: float
    text: float
    phonetic: float

    def to_dict(self) -> Dict[str, float]:
        return {"combined": self.combined, "text": self.text, "phonetic": self.phonetic}


@dataclass(frozen=True)
class LiveMistake:
    """One detected divergence, positioned on the expected word sequence."""
    index: int
    type: str
    confidence: float
    categories: Tuple[str, ...]
    word: Optional[str] = None
    correct: Optional[str] = None
    tajweed_rules: Tuple[str, ...] = ()
    similarity: Optional[float] = None
    similarity_breakdown: Optional[SimilarityBreakdown] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "index": self.index,
            "type": self.type,
            "word": self.word,
            "correct": self.correct,
            "confidence": self.confidence,
            "categories": list(self.categories),
        }
        if self.tajweed_rules:
            out["tajweedRules"] = list(self.tajweed_rules)
        if self.similarity is not None:
            out["similarity"] = self.similarity
        if self.similarity_breakdown is not None:
            out["similarityBreakdown"] = self.similarity_breakdown.to_dict()
        return out


@dataclass
class AlignmentContext:
    model: DialectPhoneticModel
    substitution_threshold: float = DEFAULT_SUBSTITUTION_THRESHOLD


@dataclass
class MistakeDetection:
    """Everything one detection run produced; the summary builder reads all of it."""
    expected_words: List[str]
    detected_words: List[str]
    alignment: List[AlignmentEntry]
    mistakes: List[LiveMistake]
    context: AlignmentContext
    dialect: DialectResolution
    tajweed_rules: Dict[int, List[str]] = field(default_factory=dict)

    def is_correct(self, entry: AlignmentEntry) -> bool:
        return entry.kind == MATCH and entry.similarity >= self.context.substitution_threshold


def clamp_substitution_threshold(value: Optional[float]) -> float:
    """Caller thresholds are clamped to [0.5, 0.95]; None or NaN means the default."""
    if value is None or value != value:
        return DEFAULT_SUBSTITUTION_THRESHOLD
    return max(MIN_SUBSTITUTION_THRESHOLD, min(MAX_SUBSTITUTION_THRESHOLD, float(value)))


def tokenize(text: Optional[str]) -> List[str]:
    """Whitespace words that still carry a letter or digit (bare stop marks are dropped)."""
    return [w for w in split_words(text) if normalize_word(w)]


def align_words(
    expected_words: Sequence[str],
    detected_words: Sequence[str],
    model: DialectPhoneticModel,
) -> List[AlignmentEntry]:
    m, n = len(expected_words), len(detected_words)
    comparisons: List[List[Optional[PhoneticComparison]]] = [[None] * (n + 1) for _ in range(m + 1)]
    dp = [[0.0] * (n + 1) for _ in range(m + 1)]
    actions = [[MATCH] * (n + 1) for _ in range(m + 1)]

    for i in range(1, m + 1):
        dp[i][0] = float(i)
        actions[i][0] = MISSING
    for j in range(1, n + 1):
        dp[0][j] = float(j)
        actions[0][j] = EXTRA

    for i in range(1, m + 1):
        for j in range(1, n + 1):
            comparison = compare_words(expected_words[i - 1], detected_words[j - 1], model)
            comparisons[i][j] = comparison
            best = dp[i - 1][j - 1] + (1.0 - comparison.combined_similarity)
            choice = MATCH

            delete_cost = dp[i - 1][j] + 1.0
            if delete_cost < best:
                best, choice = delete_cost, MISSING

            insert_cost = dp[i][j - 1] + 1.0
            if insert_cost < best:
                best, choice = insert_cost, EXTRA

            dp[i][j] = best
            actions[i][j] = choice

    path: List[AlignmentEntry] = []
    i, j = m, n
    while i > 0 or j > 0:
        action = actions[i][j]
        if i > 0 and j > 0 and action == MATCH:
            path.append(AlignmentEntry(
                kind=MATCH,
                expected=expected_words[i - 1],
                detected=detected_words[j - 1],
                expected_index=i - 1,
                comparison=comparisons[i][j],
            ))
            i -= 1
            j -= 1
        elif i > 0 and (j == 0 or action == MISSING):
            path.append(AlignmentEntry(kind=MISSING, expected=expected_words[i - 1], expected_index=i - 1))
            i -= 1
        else:
            path.append(AlignmentEntry(kind=EXTRA, detected=detected_words[j - 1]))
            j -= 1

    path.reverse()
    return path


def _clamp_percent(value: float) -> int:
    return max(0, min(100, round(value)))


def calculate_mistake_confidence(
    mistake_type: str,
    context: AlignmentContext,
    entry: Optional[AlignmentEntry] = None,
) -> float:
    """
    How sure we are that the divergence is a real mistake, in [0, 1].
    Substitutions that still sound alike under the dialect model get less
    confidence; heavier dialect weights trust omissions more and insertions less.
    """
    weight = context.model.weight
    if mistake_type == SUBSTITUTION:
        comparison = entry.comparison if entry else None
        combined = comparison.combined_similarity if comparison else 0.0
        phonetic = comparison.phonetic_similarity if comparison else 0.0
        base = 55 + (1 - combined) * 45
        phonetic_penalty = phonetic * 35 * (1 - weight * 0.5)
        score = base - phonetic_penalty + weight * 10
    elif mistake_type == OMISSION:
        score = 70 + weight * 20
    elif mistake_type == INSERTION:
        score = 68 + (1 - weight) * 15
    else:
        score = 60
    return _clamp_percent(score) / 100.0


def _categories_for(mistake_type: str, rules: Sequence[str]) -> Tuple[str, ...]:
    categories = [_CATEGORY_BY_TYPE[mistake_type]]
    if rules and mistake_type != INSERTION:
        categories.append(TAJWEED)
    return tuple(categories)


def collect_mistakes(
    alignment: Sequence[AlignmentEntry],
    context: AlignmentContext,
    expected_word_count: int,
    tajweed_rules: Optional[Dict[int, List[str]]] = None,
) -> List[LiveMistake]:
    tajweed_rules = tajweed_rules or {}
    last_index = max(0, expected_word_count - 1)
    mistakes: List[LiveMistake] = []
    # Index of the next expected word not yet consumed by the path
    expected_index = 0

    for entry in alignment:
        if entry.kind == MATCH:
            if entry.similarity < context.substitution_threshold:
                rules = tajweed_rules.get(entry.expected_index, [])
                comparison = entry.comparison
                mistakes.append(LiveMistake(
                    index=entry.expected_index,
                    type=SUBSTITUTION,
                    word=entry.detected,
                    correct=entry.expected,
                    confidence=calculate_mistake_confidence(SUBSTITUTION, context, entry),
                    categories=_categories_for(SUBSTITUTION, rules),
                    tajweed_rules=tuple(rules),
                    similarity=comparison.combined_similarity,
                    similarity_breakdown=SimilarityBreakdown(
                        combined=comparison.combined_similarity,
                        text=comparison.text_similarity,
                        phonetic=comparison.phonetic_similarity,
                    ),
                ))
            expected_index = entry.expected_index + 1
        elif entry.kind == MISSING:
            rules = tajweed_rules.get(entry.expected_index, [])
            mistakes.append(LiveMistake(
                index=entry.expected_index,
                type=OMISSION,
                correct=entry.expected,
                confidence=calculate_mistake_confidence(OMISSION, context),
                categories=_categories_for(OMISSION, rules),
                tajweed_rules=tuple(rules),
            ))
            expected_index = entry.expected_index + 1
        else:
            # Extra words sit before the next expected word (the last one at the tail)
            mistakes.append(LiveMistake(
                index=min(expected_index, last_index),
                type=INSERTION,
                word=entry.detected,
                confidence=calculate_mistake_confidence(INSERTION, context),
                categories=_categories_for(INSERTION, ()),
            ))

    return mistakes


def analyze_recitation(
    expected_text: Optional[str],
    transcribed_text: Optional[str],
    substitution_threshold: Optional[float] = None,
    dialect: Optional[str] = "auto",
    locale_hint: Optional[str] = None,
    tajweed_hints: Optional[TajweedHints] = None,
) -> MistakeDetection:
    """Full detection run: dialect resolution, alignment, tajweed lookup and mistakes."""
    expected_text = (expected_text or "").strip()
    transcribed_text = (transcribed_text or "").strip()

    resolution = resolve_dialect(
        dialect or "auto",
        expected_text=expected_text,
        transcript=transcribed_text,
        locale_hint=locale_hint,
    )
    context = AlignmentContext(
        model=resolution.model,
        substitution_threshold=clamp_substitution_threshold(substitution_threshold),
    )

    expected_words = tokenize(expected_text)
    detected_words = tokenize(transcribed_text)
    rules_by_index = lookup_tajweed_rules(expected_words, tajweed_hints)

    alignment = align_words(expected_words, detected_words, context.model)
    mistakes = collect_mistakes(alignment, context, len(expected_words), rules_by_index)

    return MistakeDetection(
        expected_words=expected_words,
        detected_words=detected_words,
        alignment=alignment,
        mistakes=mistakes,
        context=context,
        dialect=resolution,
        tajweed_rules=rules_by_index,
    )


def detect_mistakes(
    expected_text: Optional[str],
    transcribed_text: Optional[str],
    substitution_threshold: Optional[float] = None,
    dialect: Optional[str] = "auto",
    locale_hint: Optional[str] = None,
    tajweed_hints: Optional[TajweedHints] = None,
) -> List[LiveMistake]:
    """
    Ordered mistakes for a transcript against the expected text.

    Empty expected text gives only insertions, an empty transcript only
    omissions; never raises for any string input.
    """
    return analyze_recitation(
        expected_text,
        transcribed_text,
        substitution_threshold=substitution_threshold,
        dialect=dialect,
        locale_hint=locale_hint,
        tajweed_hints=tajweed_hints,
    ).mistakes
