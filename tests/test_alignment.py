"""
Unit tests for word alignment and mistake detection (core/alignment.py).
Run: python -m pytest tests/test_alignment.py -v
"""
import unittest

from core.alignment import (
    DEFAULT_SUBSTITUTION_THRESHOLD,
    EXTRA,
    EXTRA_WORD,
    INCORRECT_WORD,
    INSERTION,
    MATCH,
    MISSED_WORD,
    MISSING,
    OMISSION,
    SUBSTITUTION,
    TAJWEED,
    AlignmentContext,
    AlignmentEntry,
    align_words,
    analyze_recitation,
    calculate_mistake_confidence,
    clamp_substitution_threshold,
    detect_mistakes,
    tokenize,
)
from core.phonetics import compare_words, create_dialect_phonetic_model

STANDARD = create_dialect_phonetic_model("standard")


class TestThresholdAndTokenize(unittest.TestCase):
    def test_clamp(self):
        self.assertEqual(clamp_substitution_threshold(None), DEFAULT_SUBSTITUTION_THRESHOLD)
        self.assertEqual(clamp_substitution_threshold(float("nan")), DEFAULT_SUBSTITUTION_THRESHOLD)
        self.assertEqual(clamp_substitution_threshold(0.1), 0.5)
        self.assertEqual(clamp_substitution_threshold(0.99), 0.95)
        self.assertEqual(clamp_substitution_threshold(0.8), 0.8)

    def test_tokenize_drops_bare_marks(self):
        self.assertEqual(tokenize("ذَٰلِكَ ۚ الْكِتَابُ"), ["ذَٰلِكَ", "الْكِتَابُ"])
        self.assertEqual(tokenize(None), [])


class TestAlignWords(unittest.TestCase):
    def test_identical(self):
        words = ["الحمد", "لله"]
        path = align_words(words, words, STANDARD)
        self.assertEqual([e.kind for e in path], [MATCH, MATCH])
        self.assertEqual([e.expected_index for e in path], [0, 1])

    def test_missing_word(self):
        path = align_words(["بسم", "الله", "الرحمن"], ["بسم", "الرحمن"], STANDARD)
        self.assertEqual([e.kind for e in path], [MATCH, MISSING, MATCH])
        self.assertEqual(path[1].expected, "الله")
        self.assertEqual(path[2].expected_index, 2)

    def test_extra_word(self):
        path = align_words(["بسم", "الرحمن"], ["بسم", "الله", "الرحمن"], STANDARD)
        self.assertEqual([e.kind for e in path], [MATCH, EXTRA, MATCH])
        self.assertEqual(path[1].detected, "الله")
        self.assertIsNone(path[1].expected_index)

    def test_empty_sides(self):
        self.assertEqual(align_words([], [], STANDARD), [])
        self.assertEqual([e.kind for e in align_words(["a", "b"], [], STANDARD)], [MISSING, MISSING])
        self.assertEqual([e.kind for e in align_words([], ["a"], STANDARD)], [EXTRA])


class TestDetectMistakes(unittest.TestCase):
    def test_single_substitution(self):
        mistakes = detect_mistakes("الحمد لله رب العالمين", "الحمد لله رب العلمين")
        self.assertEqual(len(mistakes), 1)
        m = mistakes[0]
        self.assertEqual(m.type, SUBSTITUTION)
        self.assertEqual(m.index, 3)
        self.assertEqual(m.word, "العلمين")
        self.assertEqual(m.correct, "العالمين")
        self.assertEqual(m.categories, (INCORRECT_WORD,))
        self.assertAlmostEqual(m.similarity, 0.875)
        self.assertEqual(m.similarity_breakdown.text, 0.875)

    def test_perfect_recitation(self):
        expected = "بِسْمِ اللَّهِ الرَّحْمَٰنِ الرَّحِيمِ"
        self.assertEqual(detect_mistakes(expected, "بسم الله الرحمن الرحيم"), [])

    def test_uthmani_expected_text_recited_correctly(self):
        self.assertEqual(detect_mistakes("ٱلْحَمْدُ لِلَّهِ رَبِّ ٱلْعَٰلَمِينَ", "الحمد لله رب العالمين"), [])
        self.assertEqual(detect_mistakes("بِسْمِ ٱللَّهِ ٱلرَّحْمَٰنِ ٱلرَّحِيمِ", "بسم الله الرحمن الرحيم"), [])

    def test_uthmani_expected_text_flags_wrong_word(self):
        mistakes = detect_mistakes("ٱلْحَمْدُ لِلَّهِ رَبِّ ٱلْعَٰلَمِينَ", "الحمد لله رب الناس")
        self.assertEqual([(m.index, m.type) for m in mistakes], [(3, SUBSTITUTION)])

    def test_lower_threshold_accepts_near_miss(self):
        mistakes = detect_mistakes("الحمد لله رب العالمين", "الحمد لله رب العلمين", substitution_threshold=0.8)
        self.assertEqual(mistakes, [])

    def test_empty_expected_gives_insertions(self):
        mistakes = detect_mistakes("", "بسم الله")
        self.assertEqual([m.type for m in mistakes], [INSERTION, INSERTION])
        self.assertEqual([m.index for m in mistakes], [0, 0])
        self.assertEqual([m.word for m in mistakes], ["بسم", "الله"])

    def test_empty_transcript_gives_omissions(self):
        mistakes = detect_mistakes("الحمد لله رب العالمين", "")
        self.assertEqual([m.type for m in mistakes], [OMISSION] * 4)
        self.assertEqual([m.index for m in mistakes], [0, 1, 2, 3])
        self.assertTrue(all(m.categories[0] == MISSED_WORD for m in mistakes))

    def test_both_empty(self):
        self.assertEqual(detect_mistakes("", ""), [])
        self.assertEqual(detect_mistakes(None, None), [])

    def test_omission_carries_tajweed(self):
        mistakes = detect_mistakes("قُلْ هُوَ اللَّهُ أَحَدٌ", "قل هو الله")
        self.assertEqual(len(mistakes), 1)
        m = mistakes[0]
        self.assertEqual(m.type, OMISSION)
        self.assertEqual(m.index, 3)
        self.assertEqual(m.categories, (MISSED_WORD, TAJWEED))
        self.assertEqual(m.tajweed_rules, ("Qalqalah",))
        self.assertEqual(m.to_dict()["tajweedRules"], ["Qalqalah"])

    def test_tajweed_hints_override(self):
        mistakes = detect_mistakes("الحمد لله", "الحمد", tajweed_hints={1: ["Ghunnah"]})
        self.assertEqual(mistakes[0].tajweed_rules, ("Ghunnah",))
        self.assertIn(TAJWEED, mistakes[0].categories)

    def test_insertion_in_middle(self):
        mistakes = detect_mistakes("بسم الله الرحمن", "بسم يا الله الرحمن")
        self.assertEqual(len(mistakes), 1)
        self.assertEqual(mistakes[0].type, INSERTION)
        self.assertEqual(mistakes[0].index, 1)
        self.assertEqual(mistakes[0].categories, (EXTRA_WORD,))

    def test_insertion_at_tail_clamped(self):
        mistakes = detect_mistakes("الله الصمد", "الله الصمد احد")
        self.assertEqual(len(mistakes), 1)
        self.assertEqual(mistakes[0].type, INSERTION)
        self.assertEqual(mistakes[0].index, 1)

    def test_index_invariants(self):
        expected = "إياك نعبد وإياك نستعين"
        mistakes = detect_mistakes(expected, "اياك نعبد نستعين يا رب")
        n = len(expected.split())
        for m in mistakes:
            self.assertGreaterEqual(m.index, 0)
            self.assertLess(m.index, n)
            self.assertGreaterEqual(m.confidence, 0.0)
            self.assertLessEqual(m.confidence, 1.0)
        self.assertTrue(any(m.type == INSERTION for m in mistakes))

    def test_deterministic(self):
        args = ("الحمد لله رب العالمين", "الحمد الله رب العلمين يا")
        self.assertEqual(detect_mistakes(*args), detect_mistakes(*args))

    def test_unknown_dialect(self):
        with self.assertRaises(ValueError):
            detect_mistakes("الله", "الله", dialect="klingon")


class TestConfidence(unittest.TestCase):
    def test_omission_and_insertion(self):
        ctx = AlignmentContext(model=STANDARD)
        self.assertEqual(calculate_mistake_confidence(OMISSION, ctx), 0.77)
        self.assertEqual(calculate_mistake_confidence(INSERTION, ctx), 0.78)

    def test_substitution(self):
        ctx = AlignmentContext(model=STANDARD)
        path = align_words(["العالمين"], ["العلمين"], STANDARD)
        self.assertEqual(calculate_mistake_confidence(SUBSTITUTION, ctx, path[0]), 0.39)

    def test_sound_alike_substitution_is_less_certain(self):
        ctx = AlignmentContext(model=create_dialect_phonetic_model("north_african"))
        alike = path_entry("قال", "گال", ctx.model)
        unlike = path_entry("قال", "نور", ctx.model)
        self.assertLess(
            calculate_mistake_confidence(SUBSTITUTION, ctx, alike),
            calculate_mistake_confidence(SUBSTITUTION, ctx, unlike),
        )


def path_entry(expected, detected, model):
    return AlignmentEntry(
        kind=MATCH,
        expected=expected,
        detected=detected,
        expected_index=0,
        comparison=compare_words(expected, detected, model),
    )


class TestAnalyzeRecitation(unittest.TestCase):
    def test_context_and_dialect(self):
        detection = analyze_recitation("الحمد لله", "الحمد لله", dialect="south_asian", substitution_threshold=2)
        self.assertEqual(detection.context.substitution_threshold, 0.95)
        self.assertEqual(detection.dialect.model.code, "south_asian")
        self.assertEqual(detection.expected_words, ["الحمد", "لله"])
        self.assertTrue(all(detection.is_correct(e) for e in detection.alignment))


if __name__ == "__main__":
    unittest.main()
