"""
Recitation feedback API.
Verse identification from a transcript, word-level mistake detection with a
scored session summary, and reviewer feedback on those summaries.
Transcription itself happens upstream; requests carry text only.
"""
import logging
from typing import Any, Dict, List, Literal, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

import config
from core.feedback_store import RecitationFeedbackStore
from core.normalization import normalize_arabic_text, split_words
from core.quran_data import (
    expand_verse_range,
    get_verse,
    get_verse_text,
    parse_comma_separated_verse_keys,
    parse_verse_key,
    validate_verse_keys,
)
from core.summary import AnalysisProfile, SummaryOptions, create_live_session_summary
from core.verse_index import get_verse_index
from core.verse_matcher import find_best_verse_matches

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

Dialect = Literal["auto", "standard", "middle_eastern", "south_asian", "north_african"]
Engine = Literal["tarteel", "nvidia", "on-device"]


class ApiModel(BaseModel):
    """Request bodies use camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class VerseMatchRequest(ApiModel):
    transcript: str
    limit: int = Field(default=config.MATCH_LIMIT, ge=1, le=50)
    threshold: float = Field(default=config.MATCH_THRESHOLD, ge=0.0, le=1.0)


class VerseKeysRequest(ApiModel):
    keys: List[str] = []
    # Comma-separated form, e.g. "1:1, 1:2"
    raw: Optional[str] = None


class VerseMatchResponse(ApiModel):
    normalized_transcript: str
    matches: List[Dict[str, Any]]


class AnalysisRequest(ApiModel):
    engine: Engine = "on-device"
    latency_ms: Optional[float] = Field(default=None, ge=0)
    description: Optional[str] = None
    stack: Optional[List[str]] = None


class SessionSummaryRequest(ApiModel):
    transcription: str
    expected_text: Optional[str] = None
    verse_key: Optional[str] = None
    ayah_id: Optional[str] = None
    dialect: Dialect = "auto"
    locale_hint: Optional[str] = None
    duration_seconds: Optional[float] = Field(default=None, ge=0)
    substitution_threshold: float = Field(default=config.SUBSTITUTION_THRESHOLD, ge=0.0, le=1.0)
    analysis: Optional[AnalysisRequest] = None
    tajweed_hints: Optional[Dict[int, List[str]]] = None

    @model_validator(mode="after")
    def _needs_expected_text(self):
        if not self.expected_text and not self.verse_key:
            raise ValueError("Either expectedText or verseKey is required")
        return self


class MistakeIn(ApiModel):
    index: int = Field(ge=0)
    type: Literal["substitution", "omission", "insertion"]
    word: Optional[str] = None
    correct: Optional[str] = None
    confidence: float = Field(ge=0.0, le=1.0)
    categories: List[str] = []


class FeedbackRequest(ApiModel):
    is_accurate: bool
    ayah_id: Optional[str] = None
    dialect: Optional[Dialect] = None
    detection_source: Optional[str] = None
    system_confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    notes: Optional[str] = None
    correction: Optional[str] = None
    mistakes: Optional[List[MistakeIn]] = None
    expected_text: Optional[str] = None
    transcription: Optional[str] = None


app = FastAPI(title="Quran Recitation Feedback API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

feedback_store = RecitationFeedbackStore(config.FEEDBACK_STORE_PATH)


@app.get("/")
def health_check():
    return {
        "status": "ok",
        "message": "Quran Recitation Feedback API is running",
        "verses_loaded": len(get_verse_index()),
    }


@app.get("/verses/{surah}/{ayah}")
def get_verse_by_number(surah: int, ayah: int):
    verse_key = f"{surah}:{ayah}"
    entry = get_verse(verse_key)
    if not entry:
        raise HTTPException(status_code=404, detail=f"Ayah {verse_key} not found")
    words = [w for w in split_words(entry.text) if normalize_arabic_text(w)]
    return {
        **entry.to_dict(),
        "normalized": normalize_arabic_text(entry.text),
        "words": words,
    }


@app.get("/surahs/{surah}/verses")
def get_verse_range(
    surah: int,
    from_ayah: int = Query(alias="from", ge=1),
    to_ayah: Optional[int] = Query(default=None, alias="to", ge=1),
):
    try:
        keys = expand_verse_range(surah, from_ayah, to_ayah)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "surah": surah,
        "verses": [{"key": key, "text": get_verse_text(key)} for key in keys],
    }


@app.post("/verses/validate")
def validate_verses(request: VerseKeysRequest):
    keys = request.keys + parse_comma_separated_verse_keys(request.raw or "")
    return validate_verse_keys(keys).to_dict()


@app.post("/verses/match", response_model=VerseMatchResponse, response_model_by_alias=True)
def match_verse(request: VerseMatchRequest):
    matches = find_best_verse_matches(request.transcript, limit=request.limit, threshold=request.threshold)
    return VerseMatchResponse(
        normalized_transcript=normalize_arabic_text(request.transcript),
        matches=[m.to_dict() for m in matches],
    )


@app.post("/recitation/summary")
def recitation_summary(request: SessionSummaryRequest):
    expected_text = request.expected_text
    if not expected_text:
        try:
            parse_verse_key(request.verse_key)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        entry = get_verse(request.verse_key)
        if not entry:
            raise HTTPException(status_code=404, detail=f"Ayah {request.verse_key} not found")
        expected_text = entry.text

    analysis = None
    if request.analysis:
        analysis = AnalysisProfile(
            engine=request.analysis.engine,
            latency_ms=request.analysis.latency_ms,
            description=request.analysis.description,
            stack=request.analysis.stack,
        )
    options = SummaryOptions(
        ayah_id=request.ayah_id or request.verse_key,
        dialect=request.dialect,
        locale_hint=request.locale_hint,
        duration_seconds=request.duration_seconds,
        analysis=analysis,
        substitution_threshold=request.substitution_threshold,
        tajweed_hints=request.tajweed_hints,
    )
    return create_live_session_summary(request.transcription, expected_text, options).to_dict()


@app.post("/recitation-feedback")
def save_recitation_feedback(request: FeedbackRequest):
    try:
        record = feedback_store.save(
            is_accurate=request.is_accurate,
            ayah_id=request.ayah_id,
            dialect=request.dialect,
            detection_source=request.detection_source,
            system_confidence=request.system_confidence,
            notes=request.notes,
            correction=request.correction,
            mistakes=[m.model_dump() for m in request.mistakes] if request.mistakes is not None else None,
            expected_text=request.expected_text,
            transcription=request.transcription,
        )
    except OSError:
        logger.exception("Failed to store recitation feedback")
        raise HTTPException(status_code=500, detail="Unable to store recitation feedback")
    return {"status": "ok", "record": record.to_dict()}


@app.get("/recitation-feedback")
def recitation_feedback_summary():
    try:
        return feedback_store.summary().to_dict()
    except OSError:
        logger.exception("Failed to load recitation feedback summary")
        raise HTTPException(status_code=500, detail="Unable to load feedback summary")


if __name__ == "__main__":
    uvicorn.run(app, host=config.HOST, port=config.PORT)
