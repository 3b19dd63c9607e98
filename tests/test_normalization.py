"""
Unit tests for Arabic text normalization (core/normalization.py).
Run: python -m pytest tests/test_normalization.py -v
"""
import unittest

from core.normalization import (
    count_arabic_letters,
    normalize_arabic_text,
    normalize_word,
    split_words,
    word_spellings,
)

BASMALA = "بِسْمِ اللَّهِ الرَّحْمَٰنِ الرَّحِيمِ"
BASMALA_PLAIN = "بسم الله الرحمن الرحيم"


class TestNormalizeArabicText(unittest.TestCase):
    def test_diacritics_removed(self):
        self.assertEqual(normalize_arabic_text(BASMALA), normalize_arabic_text(BASMALA_PLAIN))
        self.assertEqual(normalize_arabic_text(BASMALA), BASMALA_PLAIN)

    def test_no_diacritic_codepoints_left(self):
        out = normalize_arabic_text(BASMALA)
        for ch in out:
            self.assertFalse(0x064B <= ord(ch) <= 0x065F, repr(ch))
            self.assertNotEqual(ord(ch), 0x0670)

    def test_idempotent(self):
        samples = [
            BASMALA,
            "قُلْ هُوَ اللَّهُ أَحَدٌ ۝١",
            "الحمد  لله،  رب العالمين!",
            "Mixed CASE text_with_underscores",
            "",
        ]
        for text in samples:
            once = normalize_arabic_text(text)
            self.assertEqual(normalize_arabic_text(once), once)

    def test_empty_and_none(self):
        self.assertEqual(normalize_arabic_text(""), "")
        self.assertEqual(normalize_arabic_text(None), "")
        self.assertEqual(normalize_arabic_text("  ،،  "), "")

    def test_tatweel_removed(self):
        self.assertEqual(normalize_arabic_text("الرحـــمن"), "الرحمن")

    def test_punctuation_collapsed_to_single_space(self):
        self.assertEqual(normalize_arabic_text("الحمد،لله  رب"), "الحمد لله رب")

    def test_lowercase(self):
        self.assertEqual(normalize_arabic_text("Bismillah"), "bismillah")


class TestNormalizeWord(unittest.TestCase):
    def test_marks_and_punctuation_removed(self):
        self.assertEqual(normalize_word("الرَّحِيمِ،"), "الرحيم")

    def test_stop_mark_only(self):
        self.assertEqual(normalize_word("ۚ"), "")

    def test_empty(self):
        self.assertEqual(normalize_word(None), "")

    def test_letter_variants_folded(self):
        self.assertEqual(normalize_word("ٱلْحَمْدُ"), "الحمد")
        self.assertEqual(normalize_word("إِيَّاكَ"), "اياك")
        self.assertEqual(normalize_word("عَلَى"), "علي")
        self.assertEqual(normalize_word("ٱلصَّلَوٰةَ"), "الصلوه")

    def test_text_normalizer_keeps_letter_variants(self):
        self.assertEqual(normalize_arabic_text("ٱلْحَمْدُ"), "ٱلحمد")


class TestWordSpellings(unittest.TestCase):
    def test_plain_word_has_one_spelling(self):
        self.assertEqual(word_spellings("الحمد"), ["الحمد"])

    def test_dagger_alif_gives_both_readings(self):
        self.assertEqual(word_spellings("ٱلْعَٰلَمِينَ"), ["العلمين", "العالمين"])
        self.assertEqual(word_spellings("ٱلرَّحْمَٰنِ"), ["الرحمن", "الرحمان"])

    def test_empty(self):
        self.assertEqual(word_spellings(""), [""])


class TestSplitAndCount(unittest.TestCase):
    def test_split_words(self):
        self.assertEqual(split_words(" الحمد  لله "), ["الحمد", "لله"])
        self.assertEqual(split_words(""), [])

    def test_count_arabic_letters_ignores_marks(self):
        self.assertEqual(count_arabic_letters(BASMALA), count_arabic_letters(BASMALA_PLAIN))
        self.assertEqual(count_arabic_letters("قل"), 2)
        self.assertEqual(count_arabic_letters(None), 0)


if __name__ == "__main__":
    unittest.main()
