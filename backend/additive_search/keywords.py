"""
keywords.py — Keyword Extractor.

Turns raw OCR text from an ingredient label into a bounded, longest-first
list of candidate search terms. Label text is densely packed and mixes
delimiters inconsistently, so several overlapping strategies feed one pool:

  1. delimiter split of the OCR-corrected text
  2. runs of 2+ Hangul syllables taken from the original text
  3. expansion strategies (space-collapsed compounds, numbered additives)

Expansion strategies are plain callables so locale-specific heuristics can be
swapped out: strategy(candidates, segments) -> list[str].
"""

import re
import logging
from typing import Callable, Iterable, List, Sequence

from additive_search.constants import MAX_EXTRACTED_KEYWORDS
from additive_search.normalize import HANGUL_RUN, coerce_text, correct_ocr_errors

logger = logging.getLogger(__name__)

# ── Preparation ──
_BRACKETS_QUOTES = re.compile(r'[()\[\]{}"\']')
_NOT_KEYWORD_CHAR = re.compile(r'[^a-z0-9_가-힣\s,;:·•\-/|]')
_HORIZONTAL_SPACE = re.compile(r'[^\S\n]+')

# ── Splitting ──
TOKEN_DELIMITERS = re.compile(r'[,\n;:·•\-/|\s()\[\]{}]+')
SEGMENT_DELIMITERS = re.compile(r'[,\n;:·•\-/|()\[\]{}]+')

# e.g. 황색5호 → (황색)(5)(호); anchored at the start of a Hangul run so a scan stays linear
NUMBERED_ADDITIVE = re.compile(r'(?<![가-힣])([가-힣]+)([0-9]+)([가-힣]*)')

MAX_COMPOUND_WORDS = 3

# Additive-relevant terms that overlap generic label vocabulary; never filtered.
IMPORTANT_ADDITIVE_KEYWORDS = (
    '산도조절제', '향미증진제', '구아검', '잔탄검', '전분', '변성전분',
    '글루텐', '인산', '포도당', '정백당', '토코페롤', '비타민', '이스트',
)

COMMON_WORDS = frozenset({
    # English
    'and', 'or', 'the', 'a', 'an', 'in', 'on', 'at', 'to', 'for', 'of', 'with',
    'contains', 'includes', 'less', 'than', 'more', 'each', 'per', 'total',
    # Korean label vocabulary unrelated to additives
    '그리고', '또는', '및', '등', '포함', '함량', '이하', '기타', '각종',
    '사용', '제품', '식품', '국산', '중국산', '미국산', '호주산', '말레이시아산',
    '면류', '스프류', '블럭', '분말', '추출물', '시즈닝', '베이스', '양념',
    '일까지', '케이', '함은', '원료명',
})

ExpansionStrategy = Callable[[Sequence[str], Sequence[str]], List[str]]


def is_common_word(word: str) -> bool:
    """
    True if `word` is generic label vocabulary that should not be searched.
    The additive whitelist takes priority over the blocklist.
    """
    w = word.lower()
    for important in IMPORTANT_ADDITIVE_KEYWORDS:
        if important in w or w in important:
            return False
    return w in COMMON_WORDS


def _prepare(text: str) -> str:
    s = correct_ocr_errors(text.lower())
    s = _BRACKETS_QUOTES.sub(' ', s)
    s = _NOT_KEYWORD_CHAR.sub(' ', s)
    s = _HORIZONTAL_SPACE.sub(' ', s)
    return s.strip()


def split_tokens(prepared: str) -> List[str]:
    """Delimiter split; drops single characters and stoplist words."""
    tokens = []
    for token in TOKEN_DELIMITERS.split(prepared):
        token = token.strip()
        if len(token) > 1 and not is_common_word(token):
            tokens.append(token)
    return tokens


def split_segments(prepared: str) -> List[str]:
    """Split on every delimiter except spaces, so multi-word phrases survive."""
    return [seg.strip() for seg in SEGMENT_DELIMITERS.split(prepared) if seg.strip()]


def hangul_runs(text: str) -> List[str]:
    """Maximal runs of 2+ Hangul syllables, regardless of delimiters."""
    return [w for w in HANGUL_RUN.findall(coerce_text(text)) if not is_common_word(w)]


# ═══════════════════════════════════════════════════════
#  Expansion strategies
# ═══════════════════════════════════════════════════════

def collapsed_compound_keywords(candidates: Sequence[str], segments: Sequence[str]) -> List[str]:
    """
    '구아 검' → '구아검'. Short phrases collapse whole; in longer phrases a
    single-character word is joined to its neighbours.
    """
    out = []
    for seg in segments:
        words = seg.split()
        if len(words) < 2:
            continue
        if len(words) <= MAX_COMPOUND_WORDS:
            out.append(''.join(words))
            continue
        for i, w in enumerate(words):
            if len(w) != 1:
                continue
            if i > 0:
                out.append(words[i - 1] + w)
            if i + 1 < len(words):
                out.append(w + words[i + 1])
    return out


def numbered_additive_keywords(candidates: Sequence[str], segments: Sequence[str]) -> List[str]:
    """
    '황색5호' → ['황색5호', '황색', '5호']. Catalogs store colour additives in
    any of these forms.
    """
    out = []
    for keyword in candidates:
        if not any(c.isdigit() for c in keyword):
            continue
        m = NUMBERED_ADDITIVE.search(keyword)
        if not m:
            continue
        prefix, digits, suffix = m.groups()
        out.append(m.group(0))
        if len(prefix) > 1:
            out.append(prefix)
        if suffix:
            out.append(f"{digits}{suffix}")
    return out


DEFAULT_EXPANSIONS: tuple = (collapsed_compound_keywords, numbered_additive_keywords)


def _unique(words: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for w in words:
        if w not in seen:
            seen.add(w)
            out.append(w)
    return out


def extract_keywords(text, limit: int = MAX_EXTRACTED_KEYWORDS,
                     expansions: Sequence[ExpansionStrategy] = DEFAULT_EXPANSIONS) -> List[str]:
    """
    Candidate keywords for `text`: de-duplicated, longest first, at most `limit`.
    Longer keywords are more specific and are tried first by the matcher.
    """
    text = coerce_text(text)
    if not text.strip():
        return []

    prepared = _prepare(text)
    segments = split_segments(prepared)
    candidates = split_tokens(prepared) + hangul_runs(text)

    for strategy in expansions:
        candidates = candidates + strategy(candidates, segments)

    keywords = [k for k in _unique(candidates) if len(k) > 1]
    keywords.sort(key=len, reverse=True)
    return keywords[:limit]
