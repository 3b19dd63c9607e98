"""
Identify which verse a transcript most likely is.

Every indexed verse is scored by edit-distance similarity against the
normalized transcript. When nothing clears the threshold the best few are
still returned as an advisory guess, so callers should look at the similarity
before trusting the top result.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from core.normalization import normalize_arabic_text
from core.similarity import similarity
from core.verse_index import VerseIndex, get_verse_index

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 5
DEFAULT_THRESHOLD = 0.6
# How many low-confidence guesses to return when nothing clears the threshold
FALLBACK_LIMIT = 3


@dataclass(frozen=True)
class VerseMatch:
    key: str
    surah_number: int
    ayah_number: int
    text: str
    similarity: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "surahNumber": self.surah_number,
            "ayahNumber": self.ayah_number,
            "text": self.text,
            "similarity": self.similarity,
        }


def find_best_verse_matches(
    transcript: Optional[str],
    limit: int = DEFAULT_LIMIT,
    threshold: float = DEFAULT_THRESHOLD,
    index: Optional[VerseIndex] = None,
) -> List[VerseMatch]:
    """
    Best-matching verses for a transcript, most similar first.

    Returns up to `limit` verses with similarity >= `threshold`; if none
    qualify, the top min(limit, 3) regardless of score. Empty or
    unnormalizable transcripts return [].
    """
    normalized_transcript = normalize_arabic_text(transcript)
    if not normalized_transcript or limit <= 0:
        return []

    verses = (index or get_verse_index()).ensure_index()

    scored = [
        VerseMatch(
            key=verse.key,
            surah_number=verse.surah_number,
            ayah_number=verse.ayah_number,
            text=verse.text,
            similarity=similarity(normalized_transcript, verse.normalized),
        )
        for verse in verses
    ]
    # sorted() is stable: equal scores keep corpus order
    scored = sorted(scored, key=lambda match: -match.similarity)

    strong = [match for match in scored if match.similarity >= threshold][:limit]
    if strong:
        logger.debug("Verse match %s (similarity=%.3f)", strong[0].key, strong[0].similarity)
        return strong

    fallback = scored[:min(limit, FALLBACK_LIMIT)]
    if fallback:
        logger.debug(
            "No verse cleared threshold %.2f; best guess %s (similarity=%.3f)",
            threshold, fallback[0].key, fallback[0].similarity,
        )
    return fallback
