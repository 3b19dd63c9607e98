import re
import unicodedata
from typing import List, Optional

# Tashkeel plus Qur'anic annotation marks (small high letters, stop signs, etc.)
ARABIC_DIACRITICS_RE = re.compile(r'[\u0610-\u061A\u064B-\u065F\u0670\u06D6-\u06ED]')
TATWEEL_RE = re.compile(r'\u0640')
# \W with the underscore: anything that is not a Unicode letter or digit
NON_ALPHANUMERIC_RE = re.compile(r'[\W_]+')
WHITESPACE_RE = re.compile(r'\s+')

# Word-level scoring keeps letters only
_WORD_JOINERS_RE = re.compile(r'[\u0640\u200c\u200d]')
# Hamza-seated, madda and wasla alif as written in Uthmani text; ASR emits bare ا
ALIF_VARIANTS_RE = re.compile(r'[إأآٱ]')
DAGGER_ALIF = "\u0670"

ARABIC_LETTER_RE = re.compile(r'[\u0621-\u063A\u0641-\u064A\u0671-\u06D3]')


def normalize_arabic_text(text: Optional[str]) -> str:
    """
    Canonical comparable form of an Arabic string.

    NFC, lowercase, no diacritics or tatweel, every run of non letter/digit
    characters collapsed to a single space. Never fails; normalizing twice
    gives the same result as normalizing once.
    """
    if not text:
        return ""

    # Lowercase before stripping marks so a second pass has nothing left to change
    text = unicodedata.normalize("NFC", text).lower()
    text = ARABIC_DIACRITICS_RE.sub('', text)
    text = TATWEEL_RE.sub('', text)
    text = NON_ALPHANUMERIC_RE.sub(' ', text)
    text = WHITESPACE_RE.sub(' ', text).strip()

    # Removing marks can leave composable neighbours behind
    return unicodedata.normalize("NFC", text)


def fold_letter_variants(text: str) -> str:
    """Alif forms -> ا, alif maqsura -> ي, teh marbuta -> ه."""
    text = ALIF_VARIANTS_RE.sub('ا', text)
    text = text.replace('ى', 'ي')
    return text.replace('ة', 'ه')


def normalize_word(word: Optional[str], dagger_alif_as_letter: bool = False) -> str:
    """
    Normalize a single token for word-level scoring (no spaces, no marks,
    letter variants folded). With dagger_alif_as_letter the Uthmani
    superscript alif is read as a full ا instead of being dropped.
    """
    if not word:
        return ""
    word = unicodedata.normalize("NFC", word).lower()
    word = _WORD_JOINERS_RE.sub('', word)
    if dagger_alif_as_letter:
        word = word.replace(DAGGER_ALIF, 'ا')
    word = ARABIC_DIACRITICS_RE.sub('', word)
    word = fold_letter_variants(word)
    return ''.join(ch for ch in word if ch.isalnum())


def word_spellings(word: Optional[str]) -> List[str]:
    """
    Comparable spellings of one word. Uthmani text writes some long vowels as
    a dagger alif (ٱلْعَٰلَمِينَ) and others where plain spelling has none
    (ٱلرَّحْمَٰنِ), so a word carrying one gets both readings.
    """
    spellings = [normalize_word(word)]
    if word and DAGGER_ALIF in word:
        with_alif = normalize_word(word, dagger_alif_as_letter=True)
        if with_alif != spellings[0]:
            spellings.append(with_alif)
    return spellings


def split_words(text: Optional[str]) -> List[str]:
    """Whitespace tokenization of NFC text; empty input gives no words."""
    if not text:
        return []
    return unicodedata.normalize("NFC", text).split()


def count_arabic_letters(text: Optional[str]) -> int:
    return len(ARABIC_LETTER_RE.findall(text or ""))
