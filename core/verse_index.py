"""
Flat, normalized index of every canonical verse for fuzzy lookup.

Built lazily on first use and memoized for the life of the process. The corpus
is static, so there is no invalidation; concurrent first callers are serialised
by a lock so the build runs once.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Tuple

from core.normalization import normalize_arabic_text
from core.quran_data import QuranVerseEntry, get_all_verse_entries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexedVerse:
    key: str
    surah_number: int
    ayah_number: int
    text: str
    normalized: str


class VerseIndex:
    """Write-once, read-many verse index over a corpus loader."""

    def __init__(self, entries_loader: Callable[[], Iterable[QuranVerseEntry]]):
        self._entries_loader = entries_loader
        self._entries: Optional[Tuple[IndexedVerse, ...]] = None
        self._lock = threading.Lock()

    @classmethod
    def from_entries(cls, entries: Iterable[QuranVerseEntry]) -> "VerseIndex":
        entries = tuple(entries)
        return cls(lambda: entries)

    @property
    def is_built(self) -> bool:
        return self._entries is not None

    def ensure_index(self) -> Tuple[IndexedVerse, ...]:
        entries = self._entries
        if entries is not None:
            return entries
        with self._lock:
            if self._entries is None:
                t0 = time.perf_counter()
                self._entries = tuple(
                    IndexedVerse(
                        key=entry.key,
                        surah_number=entry.surah_number,
                        ayah_number=entry.ayah_number,
                        text=entry.text,
                        normalized=normalize_arabic_text(entry.text),
                    )
                    for entry in self._entries_loader()
                )
                logger.info(
                    "Verse index built: %d verses in %d ms",
                    len(self._entries),
                    round((time.perf_counter() - t0) * 1000),
                )
            return self._entries

    def __len__(self) -> int:
        return len(self.ensure_index())


_default_index = VerseIndex(get_all_verse_entries)


def get_verse_index() -> VerseIndex:
    """Process-wide index over the configured corpus."""
    return _default_index


def ensure_verse_index() -> Tuple[IndexedVerse, ...]:
    return _default_index.ensure_index()
