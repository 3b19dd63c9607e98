"""
Session summary: aggregates one recitation attempt's mistakes into scores,
coaching copy and a JSON-ready payload for the UI and the feedback store.

Scores:
- accuracy: correctly recited expected words / expected words (0-100)
- timing: accuracy - 10 per omitted word
- fluency: accuracy - 5 per substitution - 4 per insertion
- overall: mean of the three
- score: 1 - mistakes / expected words, clamped to [0, 1]
The weakest metric is the most frequent mistake category.
"""
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from core.alignment import (
    EXTRA,
    INSERTION,
    MATCH,
    MISSING,
    MISTAKE_CATEGORY_META,
    MISTAKE_CATEGORY_ORDER,
    OMISSION,
    SUBSTITUTION,
    LiveMistake,
    MistakeDetection,
    analyze_recitation,
    calculate_mistake_confidence,
)
from core.metrics import cer, wer
from core.normalization import count_arabic_letters, split_words
from tajweed.rules import TajweedHints, rule_severity, tajweed_rule_accuracy

ANALYSIS_ENGINES = ("tarteel", "nvidia", "on-device")
DEFAULT_ENGINE = "on-device"
DIALECT_STACK_ITEM = "Dialect-adaptive phonetic alignment"

_ENGINE_STACKS = {
    "tarteel": ["Tarteel speech recognition", "Word-level alignment", "Recitation feedback heuristics"],
}
_DEFAULT_STACK = ["Browser speech recognition", "Word-level alignment", "Recitation feedback heuristics"]
_ENGINE_DESCRIPTIONS = {
    "tarteel": "Tarteel transcription with simplified word-level alignment.",
    "nvidia": "GPU-accelerated transcription with lightweight word alignment.",
    "on-device": "Client-side speech recognition paired with lightweight word alignment.",
}

_ERROR_MESSAGES = {
    OMISSION: "Expected word was not articulated in the recitation.",
    INSERTION: "An extra word or sound was detected beyond the written ayah.",
    SUBSTITUTION: "Pronunciation differed from the expected wording.",
}


@dataclass
class AnalysisProfile:
    engine: str = DEFAULT_ENGINE
    latency_ms: Optional[float] = None
    description: Optional[str] = None
    stack: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "engine": self.engine,
            "latencyMs": self.latency_ms,
            "description": self.description,
            "stack": list(self.stack or []),
        }


@dataclass
class SummaryOptions:
    """Passthrough context; only dialect, locale hint, threshold and tajweed hints tune detection."""
    ayah_id: Optional[str] = None
    dialect: Optional[str] = "auto"
    locale_hint: Optional[str] = None
    duration_seconds: Optional[float] = None
    analysis: Optional[AnalysisProfile] = None
    substitution_threshold: Optional[float] = None
    tajweed_hints: Optional[TajweedHints] = None


@dataclass
class SessionSummary:
    transcription: str
    expected_text: str
    mistakes: List[LiveMistake]
    mistake_breakdown: List[Dict[str, Any]]
    analysis: AnalysisProfile
    feedback: Dict[str, Any]
    confidence: Dict[str, Any]
    dialect: Dict[str, Any]
    score: float
    weakest_metric: Optional[str]
    metric_scores: Dict[str, int]
    hasanat_points: int
    arabic_letter_count: int
    words: List[Dict[str, Any]] = field(default_factory=list)
    wer: Optional[float] = None
    cer: Optional[float] = None
    duration: Optional[float] = None
    ayah_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transcription": self.transcription,
            "expectedText": self.expected_text,
            "mistakes": [m.to_dict() for m in self.mistakes],
            "mistakeBreakdown": self.mistake_breakdown,
            "analysis": self.analysis.to_dict(),
            "feedback": self.feedback,
            "confidence": self.confidence,
            "dialect": self.dialect,
            "score": self.score,
            "weakestMetric": self.weakest_metric,
            "metricScores": self.metric_scores,
            "hasanatPoints": self.hasanat_points,
            "arabicLetterCount": self.arabic_letter_count,
            "words": self.words,
            "wer": self.wer,
            "cer": self.cer,
            "duration": self.duration,
            "ayahId": self.ayah_id,
        }


def clamp_score(value: float) -> int:
    return max(0, min(100, round(value)))


def _count_types(mistakes: Sequence[LiveMistake]) -> Counter:
    return Counter(m.type for m in mistakes)


def calculate_recitation_metric_scores(
    mistakes: Sequence[LiveMistake],
    expected_text: str,
) -> Dict[str, int]:
    """Accuracy / completeness / flow / extras scores (0-100) for dashboards."""
    total_words = max(1, len(split_words(expected_text)))
    counts = _count_types(mistakes)
    substitutions, missing, extras = counts[SUBSTITUTION], counts[OMISSION], counts[INSERTION]

    return {
        "accuracy": clamp_score((total_words - substitutions) / total_words * 100),
        "completeness": clamp_score((total_words - missing) / total_words * 100),
        "flow": clamp_score(100 - (substitutions * 6 + extras * 5)),
        "extras": clamp_score(100 - extras * (100 / total_words)),
    }


def find_weakest_metric(mistakes: Sequence[LiveMistake]) -> Optional[str]:
    """Most frequent mistake category; ties go to the earlier category in display order."""
    counts = Counter(c for m in mistakes for c in m.categories)
    if not counts:
        return None
    return max(MISTAKE_CATEGORY_ORDER, key=lambda c: (counts.get(c, 0), -MISTAKE_CATEGORY_ORDER.index(c)))


def _mistake_breakdown(mistakes: Sequence[LiveMistake]) -> List[Dict[str, Any]]:
    counts = Counter(c for m in mistakes for c in m.categories)
    return [
        {
            "category": category,
            "label": MISTAKE_CATEGORY_META[category]["label"],
            "description": MISTAKE_CATEGORY_META[category]["description"],
            "count": counts[category],
        }
        for category in MISTAKE_CATEGORY_ORDER
        if counts.get(category)
    ]


def _qualitative_feedback(transcription: str, overall_score: int) -> str:
    if not transcription:
        return "We could not capture any recitation in this session."
    if overall_score >= 90:
        return "Beautiful recitation. Keep up the precise pacing and clarity."
    if overall_score >= 75:
        return "Strong recitation overall. Review the highlighted words to polish them further."
    if overall_score >= 60:
        return "Good effort. Focus on the flagged words to steady your recitation."
    return "Let's revisit the verse slowly and pay attention to each highlighted mistake."


def _error_entry(mistake: LiveMistake) -> Dict[str, Any]:
    entry = {
        "type": mistake.type,
        "message": _ERROR_MESSAGES[mistake.type],
        "expected": mistake.correct,
        "transcribed": mistake.word,
        "categories": list(mistake.categories),
        "confidence": mistake.confidence,
    }
    if mistake.tajweed_rules:
        entry["tajweedRules"] = [
            {"rule": rule, "severity": rule_severity(rule)} for rule in mistake.tajweed_rules
        ]
    return entry


def _alignment_confidence(detection: MistakeDetection) -> List[Dict[str, Any]]:
    entries = []
    for position, entry in enumerate(detection.alignment):
        if entry.kind == MATCH:
            if detection.is_correct(entry):
                kind, confidence = MATCH, clamp_score(entry.similarity * 100) / 100.0
            else:
                kind = SUBSTITUTION
                confidence = calculate_mistake_confidence(SUBSTITUTION, detection.context, entry)
            entries.append({
                "index": position,
                "type": kind,
                "confidence": confidence,
                "expected": entry.expected,
                "detected": entry.detected,
            })
        elif entry.kind == MISSING:
            entries.append({
                "index": position,
                "type": OMISSION,
                "confidence": calculate_mistake_confidence(OMISSION, detection.context),
                "expected": entry.expected,
            })
        elif entry.kind == EXTRA:
            entries.append({
                "index": position,
                "type": INSERTION,
                "confidence": calculate_mistake_confidence(INSERTION, detection.context),
                "detected": entry.detected,
            })
    return entries


def _confidence_breakdown(detection: MistakeDetection) -> Dict[str, Any]:
    alignment = _alignment_confidence(detection)
    mistakes = [
        {"index": m.index, "type": m.type, "confidence": m.confidence}
        for m in detection.mistakes
    ]
    alignment_avg = sum(e["confidence"] for e in alignment) / len(alignment) if alignment else 1.0
    mistake_avg = sum(e["confidence"] for e in mistakes) / len(mistakes) if mistakes else alignment_avg
    return {
        "overall": clamp_score((alignment_avg * 0.6 + mistake_avg * 0.4) * 100) / 100.0,
        "mistakes": mistakes,
        "alignment": alignment,
    }


def _dialect_insight(detection: MistakeDetection) -> Dict[str, Any]:
    resolution = detection.dialect
    return {
        "code": resolution.model.code,
        "label": resolution.model.label,
        "description": resolution.model.description,
        "source": resolution.source,
        "weight": resolution.model.weight,
        "detectionConfidence": clamp_score(resolution.confidence * 100) / 100.0,
        "reasons": list(resolution.reasons),
    }


def _analysis_profile(requested: Optional[AnalysisProfile], dialect_label: str) -> AnalysisProfile:
    requested = requested or AnalysisProfile()
    engine = requested.engine or DEFAULT_ENGINE
    stack = list(requested.stack or _ENGINE_STACKS.get(engine, _DEFAULT_STACK))
    if DIALECT_STACK_ITEM not in stack:
        stack.append(DIALECT_STACK_ITEM)
    description = requested.description or _ENGINE_DESCRIPTIONS.get(engine, _ENGINE_DESCRIPTIONS[DEFAULT_ENGINE])
    if dialect_label not in description:
        description = f"{description} Dialect model: {dialect_label}."
    return AnalysisProfile(
        engine=engine,
        latency_ms=requested.latency_ms,
        description=description,
        stack=stack,
    )


def _word_spans(transcription: str) -> List[Dict[str, Any]]:
    return [
        {"word": match.group(0), "start": match.start(), "end": match.end()}
        for match in re.finditer(r'\S+', transcription)
    ]


def create_live_session_summary(
    transcription: Optional[str],
    expected_text: Optional[str],
    options: Optional[SummaryOptions] = None,
) -> SessionSummary:
    """
    Build the scored summary for one recitation attempt.
    Pure: nothing is stored; context options are copied onto the result.
    """
    options = options or SummaryOptions()
    transcription = (transcription or "").strip()
    expected_text = (expected_text or "").strip()

    detection = analyze_recitation(
        expected_text,
        transcription,
        substitution_threshold=options.substitution_threshold,
        dialect=options.dialect,
        locale_hint=options.locale_hint,
        tajweed_hints=options.tajweed_hints,
    )
    mistakes = detection.mistakes
    word_count = len(detection.expected_words)
    total_expected = max(1, word_count)

    correct_count = sum(1 for entry in detection.alignment if detection.is_correct(entry))
    counts = _count_types(mistakes)
    accuracy = clamp_score(correct_count / total_expected * 100)
    timing_score = clamp_score(accuracy - counts[OMISSION] * 10)
    fluency_score = clamp_score(accuracy - counts[SUBSTITUTION] * 5 - counts[INSERTION] * 4)
    overall_score = clamp_score((accuracy + timing_score + fluency_score) / 3)

    metric_scores = calculate_recitation_metric_scores(mistakes, " ".join(detection.expected_words))
    flagged = [m.index for m in mistakes if m.type != INSERTION]
    metric_scores["tajweed"] = clamp_score(tajweed_rule_accuracy(detection.tajweed_rules, flagged) * 100)

    feedback = {
        "overallScore": overall_score,
        "accuracy": accuracy,
        "timingScore": timing_score,
        "fluencyScore": fluency_score,
        "feedback": _qualitative_feedback(transcription, overall_score),
        "errors": [_error_entry(m) for m in mistakes],
    }

    return SessionSummary(
        transcription=transcription,
        expected_text=expected_text,
        mistakes=mistakes,
        mistake_breakdown=_mistake_breakdown(mistakes),
        analysis=_analysis_profile(options.analysis, detection.dialect.model.label),
        feedback=feedback,
        confidence=_confidence_breakdown(detection),
        dialect=_dialect_insight(detection),
        score=max(0.0, min(1.0, 1.0 - len(mistakes) / total_expected)),
        weakest_metric=find_weakest_metric(mistakes),
        metric_scores=metric_scores,
        hasanat_points=max(5, round(accuracy / 100 * total_expected * 4)),
        arabic_letter_count=count_arabic_letters(expected_text or transcription),
        words=_word_spans(transcription),
        wer=round(wer(expected_text, transcription), 4) if transcription else None,
        cer=round(cer(expected_text, transcription), 4) if transcription else None,
        duration=options.duration_seconds,
        ayah_id=options.ayah_id,
    )
