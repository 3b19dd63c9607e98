"""
Reviewer feedback on session summaries, kept in a JSON file.

Reviewers mark whether a summary's mistakes were accurate; the aggregate tells
us how far to trust each dialect model. A corrupt file is logged and reset
rather than blocking new feedback.
"""
import json
import logging
import os
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 2000
MAX_MISTAKES = 50


# Stored JSON keys, in the shape the web app's store writes
_RECORD_KEYS = {
    "id": "id",
    "created_at": "createdAt",
    "is_accurate": "isAccurate",
    "ayah_id": "ayahId",
    "dialect": "dialect",
    "detection_source": "detectionSource",
    "system_confidence": "systemConfidence",
    "notes": "notes",
    "correction": "correction",
    "mistakes": "mistakes",
    "expected_text": "expectedText",
    "transcription": "transcription",
}


@dataclass
class RecitationFeedbackRecord:
    id: str
    created_at: str
    is_accurate: bool
    ayah_id: Optional[str] = None
    dialect: Optional[str] = None
    detection_source: Optional[str] = None
    system_confidence: Optional[float] = None
    notes: Optional[str] = None
    correction: Optional[str] = None
    mistakes: Optional[List[Dict[str, Any]]] = None
    expected_text: Optional[str] = None
    transcription: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """camelCase JSON; unset optional fields are left out."""
        return {
            key: getattr(self, name)
            for name, key in _RECORD_KEYS.items()
            if getattr(self, name) is not None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecitationFeedbackRecord":
        """Raises ValueError when a required field is missing or mistyped; unknown keys are ignored."""
        if not isinstance(data.get("id"), str) or not isinstance(data.get("createdAt"), str):
            raise ValueError("Feedback record needs string id and createdAt")
        if not isinstance(data.get("isAccurate"), bool):
            raise ValueError("Feedback record needs boolean isAccurate")
        confidence = data.get("systemConfidence")
        if confidence is not None and not isinstance(confidence, (int, float)):
            raise ValueError("systemConfidence must be a number")
        return cls(**{name: data.get(key) for name, key in _RECORD_KEYS.items()})


@dataclass
class FeedbackSummary:
    total: int = 0
    accurate: int = 0
    flagged: int = 0
    average_confidence: float = 0.0
    by_dialect: Dict[str, Dict[str, float]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "accuracyBreakdown": {"accurate": self.accurate, "flagged": self.flagged},
            "averageConfidence": self.average_confidence,
            "byDialect": self.by_dialect,
        }


class RecitationFeedbackStore:
    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def _read(self) -> List[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            contents = f.read()
        try:
            records = json.loads(contents or "[]")
        except json.JSONDecodeError:
            logger.warning("Failed to parse recitation feedback store %s; reinitialising", self.path)
            self._write([])
            return []
        return records if isinstance(records, list) else []

    def _write(self, records: List[Dict[str, Any]]) -> None:
        os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(records, f, ensure_ascii=False, indent=2)

    def save(
        self,
        is_accurate: bool,
        ayah_id: Optional[str] = None,
        dialect: Optional[str] = None,
        detection_source: Optional[str] = None,
        system_confidence: Optional[float] = None,
        notes: Optional[str] = None,
        correction: Optional[str] = None,
        mistakes: Optional[List[Dict[str, Any]]] = None,
        expected_text: Optional[str] = None,
        transcription: Optional[str] = None,
    ) -> RecitationFeedbackRecord:
        record = RecitationFeedbackRecord(
            id=uuid.uuid4().hex[:12],
            created_at=datetime.now(timezone.utc).isoformat(),
            is_accurate=is_accurate,
            ayah_id=ayah_id,
            dialect=dialect,
            detection_source=detection_source,
            system_confidence=system_confidence,
            notes=notes[:MAX_TEXT_LENGTH] if notes else notes,
            correction=correction[:MAX_TEXT_LENGTH] if correction else correction,
            mistakes=list(mistakes[:MAX_MISTAKES]) if mistakes is not None else None,
            expected_text=expected_text,
            transcription=transcription,
        )
        with self._lock:
            records = self._read()
            records.append(record.to_dict())
            self._write(records)
        return record

    def list_records(self) -> List[RecitationFeedbackRecord]:
        """Parsed records; malformed entries are logged and skipped but left in the file."""
        with self._lock:
            raw_records = self._read()
        records = []
        for position, raw in enumerate(raw_records):
            if not isinstance(raw, dict):
                logger.warning("Skipping non-object feedback record at position %d", position)
                continue
            try:
                records.append(RecitationFeedbackRecord.from_dict(raw))
            except ValueError as e:
                logger.warning("Skipping malformed feedback record at position %d: %s", position, e)
        return records

    def summary(self) -> FeedbackSummary:
        records = self.list_records()
        if not records:
            return FeedbackSummary()

        accurate = sum(1 for r in records if r.is_accurate)
        by_dialect: Dict[str, Dict[str, float]] = {}
        for r in records:
            bucket = by_dialect.setdefault(r.dialect or "unknown", {"total": 0, "averageConfidence": 0.0})
            bucket["total"] += 1
            bucket["averageConfidence"] += r.system_confidence or 0.0
        for bucket in by_dialect.values():
            bucket["averageConfidence"] = bucket["averageConfidence"] / bucket["total"]

        return FeedbackSummary(
            total=len(records),
            accurate=accurate,
            flagged=len(records) - accurate,
            average_confidence=sum(r.system_confidence or 0.0 for r in records) / len(records),
            by_dialect=by_dialect,
        )
