"""
HTTP tests for the FastAPI app (main.py) with the sample corpus patched in.
Run: python -m pytest tests/test_api.py -v
"""
import json
import os
import tempfile
import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

import main
from core.feedback_store import RecitationFeedbackStore
from core.verse_index import VerseIndex
from corpus_fixtures import sample_entries


class TestApi(unittest.TestCase):
    def setUp(self):
        entries = tuple(sample_entries())
        self._tmp = tempfile.TemporaryDirectory()
        patches = [
            patch("core.verse_index._default_index", VerseIndex.from_entries(entries)),
            patch("core.quran_data.get_all_verse_entries", lambda: entries),
            patch("core.quran_data._corpus_verse_map", lambda: {e.key: e for e in entries}),
            patch.object(
                main,
                "feedback_store",
                RecitationFeedbackStore(os.path.join(self._tmp.name, "feedback.json")),
            ),
        ]
        for p in patches:
            p.start()
            self.addCleanup(p.stop)
        self.addCleanup(self._tmp.cleanup)
        self.client = TestClient(main.app)

    def test_health(self):
        r = self.client.get("/")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["status"], "ok")
        self.assertEqual(r.json()["verses_loaded"], 11)

    def test_get_verse(self):
        r = self.client.get("/verses/112/1")
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body["key"], "112:1")
        self.assertEqual(body["normalized"], "قل هو الله أحد")
        self.assertEqual(len(body["words"]), 4)

    def test_get_verse_not_found(self):
        self.assertEqual(self.client.get("/verses/2/255").status_code, 404)

    def test_verse_range(self):
        r = self.client.get("/surahs/112/verses", params={"from": 3, "to": 2})
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body["surah"], 112)
        self.assertEqual([v["key"] for v in body["verses"]], ["112:2", "112:3"])
        self.assertTrue(all(v["text"] for v in body["verses"]))

        single = self.client.get("/surahs/1/verses", params={"from": 7}).json()
        self.assertEqual([v["key"] for v in single["verses"]], ["1:7"])

    def test_verse_range_errors(self):
        self.assertEqual(self.client.get("/surahs/112/verses", params={"from": 1, "to": 9}).status_code, 400)
        self.assertEqual(self.client.get("/surahs/2/verses", params={"from": 1}).status_code, 400)
        self.assertEqual(self.client.get("/surahs/1/verses", params={"from": 0}).status_code, 422)
        self.assertEqual(self.client.get("/surahs/1/verses").status_code, 422)

    def test_validate_verses(self):
        r = self.client.post("/verses/validate", json={"keys": ["001:001", "2:255"], "raw": "112:4, ,abc"})
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body["validKeys"], ["1:1", "112:4"])
        self.assertEqual([i["key"] for i in body["issues"]], ["2:255", "abc"])

    def test_match(self):
        r = self.client.post("/verses/match", json={"transcript": "بسم الله الرحمن الرحيم"})
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body["normalizedTranscript"], "بسم الله الرحمن الرحيم")
        self.assertEqual(body["matches"][0]["key"], "1:1")
        self.assertEqual(body["matches"][0]["similarity"], 1.0)

    def test_match_empty_transcript(self):
        r = self.client.post("/verses/match", json={"transcript": ""})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["matches"], [])

    def test_match_validation(self):
        r = self.client.post("/verses/match", json={"transcript": "بسم", "limit": 0})
        self.assertEqual(r.status_code, 422)

    def test_summary_with_expected_text(self):
        r = self.client.post(
            "/recitation/summary",
            json={"transcription": "الحمد لله رب العلمين", "expectedText": "الحمد لله رب العالمين"},
        )
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(len(body["mistakes"]), 1)
        self.assertEqual(body["mistakes"][0]["index"], 3)
        self.assertEqual(body["weakestMetric"], "incorrect_word")

    def test_summary_with_verse_key(self):
        r = self.client.post(
            "/recitation/summary",
            json={"transcription": "قل هو الله احد", "verseKey": "112:1", "dialect": "standard"},
        )
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body["ayahId"], "112:1")
        self.assertEqual(body["dialect"]["code"], "standard")
        self.assertTrue(body["expectedText"].startswith("قُلْ"))

    def test_summary_errors(self):
        self.assertEqual(self.client.post("/recitation/summary", json={"transcription": "x"}).status_code, 422)
        r = self.client.post("/recitation/summary", json={"transcription": "x", "verseKey": "abc"})
        self.assertEqual(r.status_code, 400)
        r = self.client.post("/recitation/summary", json={"transcription": "x", "verseKey": "2:255"})
        self.assertEqual(r.status_code, 404)
        r = self.client.post(
            "/recitation/summary",
            json={"transcription": "x", "expectedText": "y", "dialect": "klingon"},
        )
        self.assertEqual(r.status_code, 422)

    def test_feedback_round_trip(self):
        r = self.client.post(
            "/recitation-feedback",
            json={
                "isAccurate": False,
                "ayahId": "1:2",
                "dialect": "south_asian",
                "systemConfidence": 0.7,
                "mistakes": [{"index": 3, "type": "substitution", "confidence": 0.39}],
            },
        )
        self.assertEqual(r.status_code, 200)
        record = r.json()["record"]
        self.assertEqual(record["ayahId"], "1:2")
        self.assertEqual(record["mistakes"][0]["type"], "substitution")

        summary = self.client.get("/recitation-feedback").json()
        self.assertEqual(summary["total"], 1)
        self.assertEqual(summary["accuracyBreakdown"], {"accurate": 0, "flagged": 1})
        self.assertEqual(summary["byDialect"]["south_asian"]["total"], 1)

    def test_feedback_summary_with_mixed_records(self):
        with open(main.feedback_store.path, "w", encoding="utf-8") as f:
            json.dump([
                {"id": "x", "createdAt": "2024", "isAccurate": True},
                {"unexpected": "shape"},
                42,
            ], f)
        r = self.client.get("/recitation-feedback")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["total"], 1)

    def test_feedback_validation(self):
        r = self.client.post("/recitation-feedback", json={"isAccurate": True, "systemConfidence": 3})
        self.assertEqual(r.status_code, 422)


if __name__ == "__main__":
    unittest.main()
