"""
Canonical Quran corpus: verse keys, entries and loading from JSON.

Accepted corpus shapes (all keyed by "surah:ayah" one way or another):
- {"1:1": "text", ...}                                  (flat key -> text)
- [{"verse_key": "1:1", "text_uthmani": "..."}, ...]    (list of records)
- {"1": {"1": {"text_uthmani": "..."}}, ...}            (surah -> ayah -> record)
"""
import json
import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("text_uthmani", "text", "arabic")


@dataclass(frozen=True)
class QuranVerseEntry:
    """Canonical Arabic text of one verse. Read-only once loaded."""
    key: str
    surah_number: int
    ayah_number: int
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "surahNumber": self.surah_number,
            "ayahNumber": self.ayah_number,
            "text": self.text,
        }


@dataclass
class VerseValidationResult:
    valid_keys: List[str] = field(default_factory=list)
    issues: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"validKeys": self.valid_keys, "issues": self.issues}


def parse_verse_key(verse_key: str) -> Tuple[int, int]:
    """'2:255' -> (2, 255). Raises ValueError for anything else."""
    parts = (verse_key or "").strip().split(":")
    if len(parts) != 2:
        raise ValueError(f"Invalid verse key: {verse_key}")
    try:
        surah_number, ayah_number = int(parts[0]), int(parts[1])
    except ValueError:
        raise ValueError(f"Invalid verse key: {verse_key}")
    if surah_number < 1 or ayah_number < 1:
        raise ValueError(f"Invalid verse key: {verse_key}")
    return surah_number, ayah_number


def format_verse_key(surah_number: int, ayah_number: int) -> str:
    return f"{surah_number}:{ayah_number}"


def normalize_verse_key(raw: str) -> str:
    """Canonical 'surah:ayah' (drops padding/whitespace); unparseable input is returned trimmed."""
    trimmed = (raw or "").strip()
    if not trimmed:
        return ""
    try:
        return format_verse_key(*parse_verse_key(trimmed))
    except ValueError:
        return trimmed


def _record_text(record: Any) -> str:
    if isinstance(record, str):
        return record
    if isinstance(record, dict):
        for name in TEXT_FIELDS:
            if record.get(name):
                return record[name]
    return ""


def _iter_raw_records(data: Any) -> Iterable[Tuple[str, str]]:
    if isinstance(data, list):
        for item in data:
            if not isinstance(item, dict):
                raise ValueError(f"Unsupported corpus record: {item!r}")
            key = item.get("verse_key") or item.get("key")
            if not key and item.get("surahNumber") and item.get("ayahNumber"):
                key = format_verse_key(item["surahNumber"], item["ayahNumber"])
            yield key or "", _record_text(item)
    elif isinstance(data, dict):
        for outer_key, value in data.items():
            if ":" in str(outer_key):
                yield str(outer_key), _record_text(value)
            elif isinstance(value, dict):
                for ayah_num, item in value.items():
                    yield format_verse_key(int(outer_key), int(ayah_num)), _record_text(item)
            else:
                raise ValueError(f"Unsupported corpus entry for key {outer_key!r}")
    else:
        raise ValueError("Corpus must be a JSON object or array")


def entries_from_records(data: Any) -> List[QuranVerseEntry]:
    """Build verse entries from parsed corpus JSON, keeping corpus order and one entry per key."""
    entries: List[QuranVerseEntry] = []
    seen = set()
    for raw_key, text in _iter_raw_records(data):
        surah_number, ayah_number = parse_verse_key(raw_key)
        key = format_verse_key(surah_number, ayah_number)
        if key in seen:
            logger.warning("Duplicate verse %s in corpus; keeping first occurrence", key)
            continue
        seen.add(key)
        entries.append(QuranVerseEntry(key, surah_number, ayah_number, text))
    return entries


def load_corpus(path: str) -> List[QuranVerseEntry]:
    """Load the canonical verse corpus from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    entries = entries_from_records(data)
    logger.info("Loaded %d verses from %s", len(entries), path)
    return entries


@lru_cache(maxsize=1)
def get_all_verse_entries() -> Tuple[QuranVerseEntry, ...]:
    """Process-wide corpus from the configured path; empty when none is configured."""
    from config import get_quran_path

    path = get_quran_path()
    if not path or not os.path.isfile(path):
        logger.warning(
            "No Quran data found. Add quran-uthmani.json or quran.json or set QURAN_DATA_PATH"
        )
        return ()
    return tuple(load_corpus(path))


@lru_cache(maxsize=1)
def _corpus_verse_map() -> Dict[str, QuranVerseEntry]:
    return {entry.key: entry for entry in get_all_verse_entries()}


def _verse_map(entries: Optional[Iterable[QuranVerseEntry]]) -> Dict[str, QuranVerseEntry]:
    if entries is None:
        return _corpus_verse_map()
    return {entry.key: entry for entry in entries}


def get_verse(verse_key: str, entries: Optional[Iterable[QuranVerseEntry]] = None) -> Optional[QuranVerseEntry]:
    return _verse_map(entries).get(normalize_verse_key(verse_key))


def get_verse_text(verse_key: str, entries: Optional[Iterable[QuranVerseEntry]] = None) -> str:
    entry = get_verse(verse_key, entries)
    return entry.text if entry else ""


def parse_comma_separated_verse_keys(raw: str) -> List[str]:
    if not raw:
        return []
    keys = (normalize_verse_key(part) for part in raw.split(","))
    return [key for key in keys if key]


def validate_verse_keys(
    keys: Iterable[str],
    entries: Optional[Iterable[QuranVerseEntry]] = None,
) -> VerseValidationResult:
    """Split keys into canonical valid ones and per-key issues."""
    verse_map = _verse_map(entries)
    result = VerseValidationResult()
    for raw_key in keys:
        key = normalize_verse_key(raw_key)
        if not key:
            result.issues.append({"key": raw_key, "reason": "Empty verse key"})
        elif key not in verse_map:
            result.issues.append({"key": key, "reason": "Verse does not exist"})
        else:
            result.valid_keys.append(key)
    return result


def expand_verse_range(
    surah_number: int,
    from_ayah: int,
    to_ayah: Optional[int] = None,
    entries: Optional[Iterable[QuranVerseEntry]] = None,
) -> List[str]:
    """All verse keys of a surah between two ayat (inclusive, either order)."""
    source = get_all_verse_entries() if entries is None else entries
    ayah_count = max(
        (entry.ayah_number for entry in source if entry.surah_number == surah_number),
        default=0,
    )
    if ayah_count == 0:
        raise ValueError(f"Surah {surah_number} is not defined")
    if from_ayah < 1:
        raise ValueError("Starting ayah must be at least 1")
    end_ayah = from_ayah if to_ayah is None else to_ayah
    start, end = min(from_ayah, end_ayah), max(from_ayah, end_ayah)
    if end > ayah_count:
        raise ValueError(f"Surah {surah_number} contains only {ayah_count} ayat")
    return [format_verse_key(surah_number, ayah) for ayah in range(start, end + 1)]
