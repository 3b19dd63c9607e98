"""
Service configuration via environment variables.
A .env file is loaded when python-dotenv is installed; nothing here is required
for tests, which build their corpora and stores explicitly.
"""
import os
from pathlib import Path

# .env is optional; deployments usually inject the environment directly
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass

# ----- HTTP server -----
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "8001"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
# Comma-separated origins, or * for any
CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

# ----- Canonical verse corpus -----
QURAN_DATA_PATH = os.environ.get("QURAN_DATA_PATH", "")
# Looked up in the working directory when QURAN_DATA_PATH is unset or missing
CORPUS_FILE_NAMES = ("quran-uthmani.json", "quran.json", "quran_with_audio.json")

# ----- Verse identification -----
MATCH_LIMIT = int(os.environ.get("MATCH_LIMIT", "5"))
MATCH_THRESHOLD = float(os.environ.get("MATCH_THRESHOLD", "0.6"))

# ----- Mistake detection -----
# Aligned word pairs below this combined similarity are reported as substitutions
SUBSTITUTION_THRESHOLD = float(os.environ.get("SUBSTITUTION_THRESHOLD", "0.92"))

# ----- Reviewer feedback store -----
FEEDBACK_STORE_PATH = os.environ.get(
    "FEEDBACK_STORE_PATH",
    str(Path.cwd() / "data" / "recitation-feedback.json"),
)


def get_quran_path() -> str:
    """Corpus file to load, or "" when none is available."""
    if QURAN_DATA_PATH and os.path.isfile(QURAN_DATA_PATH):
        return QURAN_DATA_PATH
    candidates = (Path.cwd() / name for name in CORPUS_FILE_NAMES)
    return next((str(c) for c in candidates if c.is_file()), "")


def get_cors_origins() -> list:
    origins = [o.strip() for o in CORS_ORIGINS.split(",") if o.strip()]
    return origins or ["*"]
