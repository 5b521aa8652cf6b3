"""
normalize.py — Text Normalizer.

Two pure functions applied before every comparison:

  correct_ocr_errors — folds the character confusions OCR engines make on
                       Korean ingredient labels onto one canonical form
  normalize_text     — reduces a string to lowercase alphanumerics + Hangul

Neither raises: None or non-string input yields ''.
"""

import re
import unicodedata
from typing import Any

# ── OCR confusion table ──
# l/1, o/0 and s/5 fold onto the digit; Jamo lookalikes onto Latin
# (ㅇ and ㅅ continue on to the digit side of the fold).
_OCR_CORRECTIONS = {
    # Hangul Jamo read in place of Latin letters
    'ㅇ': '0',
    'ㅁ': 'm',
    'ㄴ': 'n',
    'ㄹ': 'r',
    'ㅅ': '5',
    'ㅌ': 't',
    'ㅍ': 'p',
    'ㅎ': 'h',
    # digit/letter lookalikes
    'l': '1',
    'o': '0',
    's': '5',
    # decorative separators
    '·': '-',
    '•': '-',
    '－': '-',
    '—': '-',
    '–': '-',
    # irregular whitespace
    '\u00a0': ' ',   # non-breaking space
    '\u2009': ' ',   # thin space
    '\u200b': '',    # zero-width space
}
_OCR_TABLE = str.maketrans(_OCR_CORRECTIONS)

_BRACKETS_QUOTES = re.compile(r'[()\[\]{}"\']')
_SEPARATORS = re.compile(r'[\s\-_·•]')
_NOT_SEARCHABLE = re.compile(r'[^a-z0-9가-힣]')

HANGUL_RUN = re.compile(r'[가-힣]{2,}')


def coerce_text(value: Any) -> str:
    """NFC-normalized string, or empty string for None and non-string values."""
    if not isinstance(value, str):
        return ''
    return unicodedata.normalize('NFC', value)


def _fold(s: str) -> str:
    return s.translate(_OCR_TABLE)


def _strip_to_searchable(s: str) -> str:
    s = _BRACKETS_QUOTES.sub('', s)
    s = _SEPARATORS.sub('', s)
    return _NOT_SEARCHABLE.sub('', s)


def correct_ocr_errors(text: Any) -> str:
    """Apply the fixed OCR substitution table."""
    return _fold(coerce_text(text))


def normalize_text(text: Any) -> str:
    """
    Lowercase, drop brackets/quotes and separators, keep [a-z0-9가-힣].

    '황색 5호', '황색5호' and '(황색-5호)' all normalize to '황색5호'.
    """
    return _strip_to_searchable(coerce_text(text).lower())


def comparison_form(text: Any) -> str:
    """
    OCR-corrected, normalized form used on both sides of every comparison.
    Lowercased first so the lookalike fold also covers capitals (S, O, L).
    """
    # the fold only emits lowercase, so one lower() covers both steps
    return _strip_to_searchable(_fold(coerce_text(text).lower()))
