"""
Dialect-aware phonetic word comparison.

Each word is reduced to a rough Latin sound signature (letter -> sound map with
per-dialect overrides, repeated sounds squeezed) so that near-homophones a
reciter's accent produces (e.g. ق read as g in the Maghreb, ذ as z in Indo-Pak
recitation) cost little during alignment. The dialect weight decides how much
the phonetic signature counts against plain text similarity.
"""
import re
import uuid
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, List, Optional

from core.normalization import normalize_word, word_spellings
from core.similarity import similarity

DIALECT_CODES = ("standard", "middle_eastern", "south_asian", "north_african")
DEFAULT_DIALECT = "standard"

DIALECT_LABELS: Dict[str, Dict] = {
    "standard": {
        "label": "Standard Tajwīd",
        "description": "Neutral Quranic pronunciation baseline used when no dialect preference is known.",
        "weight": 0.35,
    },
    "middle_eastern": {
        "label": "Middle Eastern",
        "description": "Pronunciation patterns inspired by Levantine and Gulf style recitations.",
        "weight": 0.4,
    },
    "south_asian": {
        "label": "South Asian",
        "description": "Adaptations for Indo-Pak reciters where certain consonants soften.",
        "weight": 0.45,
    },
    "north_african": {
        "label": "North African",
        "description": "Accommodates Maghrebi phonology, especially ج and ق variations.",
        "weight": 0.42,
    },
}

BASE_PHONEME_MAP: Dict[str, str] = {
    "ء": "ʔ", "ا": "a",
    "ب": "b", "ت": "t", "ث": "th", "ج": "j", "ح": "ḥ", "خ": "kh",
    "د": "d", "ذ": "dh", "ر": "r", "ز": "z", "س": "s", "ش": "sh",
    "ص": "ṣ", "ض": "ḍ", "ط": "ṭ", "ظ": "ẓ", "ع": "ʕ", "غ": "gh",
    "ف": "f", "ق": "q", "ك": "k", "ل": "l", "م": "m", "ن": "n",
    "ه": "h", "و": "w", "ؤ": "w", "ي": "y", "ئ": "y",
    "ﻻ": "la", "ﻷ": "la", "ﻹ": "la", "ﻵ": "la",
    "چ": "ch", "ڤ": "v", "پ": "p", "گ": "g",
    # Persian-script forms ASR engines emit for Arabic text
    "ی": "y", "ک": "k",
}

DIALECT_VARIANTS: Dict[str, Dict[str, str]] = {
    "standard": {},
    "middle_eastern": {"ج": "j", "ق": "q"},
    "south_asian": {"ج": "z", "ق": "k", "غ": "gh", "ظ": "z", "ذ": "z", "ث": "s"},
    "north_african": {"ج": "g", "ق": "g", "ث": "t"},
}

SQUEEZE_REPEATED_SOUNDS_RE = re.compile(r'(.)\1+')

# Locale hint patterns per dialect, checked in this order
_LOCALE_PATTERNS = (
    ("south_asian", re.compile(r'(en|ur|bn|hi|ml|ta)-(in|pk|bd)')),
    ("north_african", re.compile(r'ar-(ma|dz|tn|ly|mr)|fr-(ma|dz|tn)')),
    ("middle_eastern", re.compile(r'ar-(eg|sa|ae|qa|bh|om|jo|ps|lb|sy|iq|kw|ye)')),
)

# Characters that hint at a dialect in the text itself
_TEXT_PATTERNS = (
    ("middle_eastern", (re.compile(r'\bج\w*'), re.compile(r'\bق\w*'))),
    ("south_asian", (re.compile(r'پ'), re.compile(r'گ'), re.compile(r'\bذ\w*'))),
    ("north_african", (re.compile(r'ڤ'), re.compile(r'\bج\w*'), re.compile(r'\bق\w*'))),
)
TEXT_SAMPLE_CHARS = 160


@dataclass(frozen=True)
class DialectPhoneticModel:
    code: str
    label: str
    description: str
    weight: float
    # Opaque id so stored telemetry can tell model builds apart
    model_id: str

    def build_signature(self, word: str) -> str:
        return self.signature_of(normalize_word(word))

    def signature_of(self, spelling: str) -> str:
        """Sound signature of an already normalized spelling."""
        variants = DIALECT_VARIANTS[self.code]
        sounds = (variants.get(ch) or BASE_PHONEME_MAP.get(ch, ch) for ch in spelling)
        return SQUEEZE_REPEATED_SOUNDS_RE.sub(r'\1', "".join(sounds))


@dataclass
class DialectResolution:
    model: DialectPhoneticModel
    source: str  # "user" | "locale" | "text" | "default"
    confidence: float
    reasons: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PhoneticComparison:
    text_similarity: float
    phonetic_similarity: float
    combined_similarity: float
    signature_a: str
    signature_b: str


@lru_cache(maxsize=None)
def create_dialect_phonetic_model(dialect: str) -> DialectPhoneticModel:
    if dialect not in DIALECT_LABELS:
        raise ValueError(f"Unknown dialect: {dialect}")
    meta = DIALECT_LABELS[dialect]
    return DialectPhoneticModel(
        code=dialect,
        label=meta["label"],
        description=meta["description"],
        weight=meta["weight"],
        model_id=uuid.uuid4().hex[:10],
    )


def _locale_to_dialect(locale_hint: Optional[str]) -> Optional[str]:
    if not locale_hint:
        return None
    normalized = locale_hint.lower()
    for dialect, pattern in _LOCALE_PATTERNS:
        if pattern.search(normalized):
            return dialect
    return None


def _detect_from_text(text: str) -> Optional[str]:
    sample = text[:TEXT_SAMPLE_CHARS]
    for dialect, patterns in _TEXT_PATTERNS:
        if any(p.search(sample) for p in patterns):
            return dialect
    return None


def resolve_dialect(
    requested: Optional[str] = "auto",
    expected_text: str = "",
    transcript: str = "",
    locale_hint: Optional[str] = None,
    fallback: str = DEFAULT_DIALECT,
) -> DialectResolution:
    """
    Pick the phonetic model: explicit user choice, then locale hint, then
    characters in the transcript (or expected text), then the fallback.
    """
    if requested and requested != "auto":
        return DialectResolution(
            model=create_dialect_phonetic_model(requested),
            source="user",
            confidence=0.95,
            reasons=["User preference"],
        )

    locale_dialect = _locale_to_dialect(locale_hint)
    if locale_dialect:
        return DialectResolution(
            model=create_dialect_phonetic_model(locale_dialect),
            source="locale",
            confidence=0.75,
            reasons=[f"Locale hint matched {locale_dialect}"],
        )

    text_source = transcript or expected_text
    if text_source:
        text_dialect = _detect_from_text(text_source)
        if text_dialect:
            return DialectResolution(
                model=create_dialect_phonetic_model(text_dialect),
                source="text",
                confidence=0.65,
                reasons=[f"Detected characters associated with {text_dialect} recitations"],
            )

    return DialectResolution(
        model=create_dialect_phonetic_model(fallback),
        source="default",
        confidence=0.5,
        reasons=["Defaulted to standard Quranic phonetics"],
    )


def _bounded(value: float) -> float:
    return max(0.0, min(1.0, value))


def combine_similarity_scores(
    text_similarity: float,
    phonetic_similarity: float,
    model: DialectPhoneticModel,
) -> float:
    """Phonetics can only raise the score above plain text similarity, never lower it."""
    text_similarity = _bounded(text_similarity)
    phonetic_similarity = _bounded(phonetic_similarity)
    weighted = text_similarity * (1 - model.weight) + phonetic_similarity * model.weight
    return max(text_similarity, weighted)


def _compare_spellings(a: str, b: str, model: DialectPhoneticModel) -> PhoneticComparison:
    signature_a = model.signature_of(a)
    signature_b = model.signature_of(b)
    phonetic_similarity = similarity(signature_a, signature_b)
    text_similarity = similarity(a, b)
    return PhoneticComparison(
        text_similarity=text_similarity,
        phonetic_similarity=phonetic_similarity,
        combined_similarity=combine_similarity_scores(text_similarity, phonetic_similarity, model),
        signature_a=signature_a,
        signature_b=signature_b,
    )


def compare_words(a: str, b: str, model: DialectPhoneticModel) -> PhoneticComparison:
    """Best comparison over the spellings of both words (see word_spellings)."""
    best: Optional[PhoneticComparison] = None
    for spelling_a in word_spellings(a):
        for spelling_b in word_spellings(b):
            comparison = _compare_spellings(spelling_a, spelling_b, model)
            if best is None or comparison.combined_similarity > best.combined_similarity:
                best = comparison
    return best
