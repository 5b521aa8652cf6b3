"""
match.py — Fuzzy Additive Matching Engine.

Architecture:
  Match Scorer       — one keyword vs one catalog name/alias; the first
                       qualifying strategy wins:
                         exact → normalized exact → partial → fuzzy
  Candidate          — drives the scorer over the catalog for the leading
  Aggregator           keywords, stops early once enough matches are found,
                       keeps the best match per additive id and ranks by
                       score, then hazard level (high risk first).

Scores:
  exact             1.0
  normalized_exact  0.95   (normalized keyword longer than 2 chars)
  partial           min(0.9, shorter/longer * 0.85)
  fuzzy             similarity * 0.7, similarity >= 0.3 (long) / 0.5 (short)
  anything <= 0.2 is dropped

Determinism: no randomness anywhere; identical text and catalog snapshot give
identical ordered results. search() never raises.
"""

import time
import logging
from typing import Callable, List, NamedTuple, Optional, Sequence, Union

from rapidfuzz import fuzz
from rapidfuzz.distance import Levenshtein

from additive_search.config import SearchConfig
from additive_search.constants import EXACT_SCORE, MatchType
from additive_search.keywords import extract_keywords
from additive_search.models import AdditiveEntry, MatchResult
from additive_search.normalize import coerce_text, comparison_form

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = SearchConfig()


# ═══════════════════════════════════════════════════════
#  Similarity
# ═══════════════════════════════════════════════════════

def char_jaccard(a: str, b: str) -> float:
    """
    |A ∩ B| / |A ∪ B| over single-character sets. Ignores order and
    multiplicity; fast, and good enough once keywords are already narrowed.
    """
    sa, sb = set(a), set(b)
    union = sa | sb
    if not union:
        return 0.0
    return len(sa & sb) / len(union)


def levenshtein_similarity(a: str, b: str) -> float:
    return Levenshtein.normalized_similarity(a, b)


def indel_similarity(a: str, b: str) -> float:
    return fuzz.ratio(a, b) / 100.0


SIMILARITY_FUNCTIONS: dict[str, Callable[[str, str], float]] = {
    'jaccard': char_jaccard,
    'levenshtein': levenshtein_similarity,
    'indel': indel_similarity,
}


def string_similarity(s1: str, s2: str, config: SearchConfig = DEFAULT_CONFIG) -> float:
    """
    Similarity in [0, 1] of two strings' comparison forms, plus a substring
    bonus when one contains the other (capped at 1.0).
    """
    if s1 == s2:
        return 1.0
    n1, n2 = comparison_form(s1), comparison_form(s2)
    if not n1 or not n2:
        return 0.0
    if n1 == n2:
        return 1.0
    similarity = SIMILARITY_FUNCTIONS[config.similarity](n1, n2)
    if n1 in n2 or n2 in n1:
        similarity += config.substring_bonus
    return min(1.0, similarity)


# ═══════════════════════════════════════════════════════
#  Match Scorer
# ═══════════════════════════════════════════════════════

class ScoredMatch(NamedTuple):
    match_type: MatchType
    score: float
    detail: str = ''


class _Term(NamedTuple):
    """A name or alias with its precomputed comparison forms."""
    text: str
    lower: str
    norm: str


def _term(text: str) -> _Term:
    return _Term(text, text.lower(), comparison_form(text))


def _score_terms(keyword: _Term, term: _Term, config: SearchConfig) -> Optional[ScoredMatch]:
    # Strategy 1: exact (case-insensitive)
    if term.lower == keyword.lower:
        return ScoredMatch(MatchType.EXACT, EXACT_SCORE, f"'{keyword.text}' == '{term.text}'")

    # Strategy 2: normalized exact, guarded against short accidental hits
    if term.norm == keyword.norm and len(keyword.norm) > config.normalized_min_length:
        return ScoredMatch(MatchType.NORMALIZED_EXACT, config.normalized_exact_score,
                           f"'{keyword.text}' ≡ '{term.text}' (normalized)")

    # Strategy 3: partial, substring either way on raw or normalized forms
    if (keyword.lower in term.lower or keyword.norm in term.norm
            or term.lower in keyword.lower or term.norm in keyword.norm):
        lengths = (len(term.lower), len(keyword.lower), len(term.norm), len(keyword.norm))
        longest = max(lengths)
        if longest == 0:
            return None
        score = min(config.partial_cap, min(lengths) / longest * config.partial_weight)
        if score <= config.min_match_score:
            return None
        return ScoredMatch(MatchType.PARTIAL, score,
                           f"'{keyword.text}' matches '{term.text}'")

    # Strategy 4: fuzzy character similarity
    similarity = string_similarity(keyword.lower, term.lower, config)
    if similarity < config.fuzzy_threshold(keyword.text):
        return None
    score = similarity * config.fuzzy_weight
    if score <= config.min_match_score:
        return None
    return ScoredMatch(MatchType.FUZZY, score,
                       f"'{keyword.text}' ~= '{term.text}' (similarity: {similarity:.3f})")


def score_match(keyword: str, search_term: str,
                config: SearchConfig = DEFAULT_CONFIG) -> Optional[ScoredMatch]:
    """Score one keyword against one name or alias; None below the global floor."""
    keyword, search_term = coerce_text(keyword), coerce_text(search_term)
    if not keyword or not search_term:
        return None
    return _score_terms(_term(keyword), _term(search_term), config)


class PreparedCatalog:
    """Catalog entries with the comparison forms of every name/alias computed once."""

    def __init__(self, entries: Sequence[AdditiveEntry]):
        self.entries = entries
        self._terms = [[_term(t) for t in entry.search_terms] for entry in entries]

    def __len__(self):
        return len(self.entries)

    def items(self):
        return zip(self.entries, self._terms)


def _best_for_entry(keyword: _Term, terms: List[_Term], config: SearchConfig) -> Optional[ScoredMatch]:
    best = None
    for term in terms:
        m = _score_terms(keyword, term, config)
        if m is None:
            continue
        if m.match_type is MatchType.EXACT:
            return m
        if best is None or m.score > best.score:
            best = m
    return best


def score_entry(keyword: str, entry: AdditiveEntry,
                config: SearchConfig = DEFAULT_CONFIG) -> Optional[ScoredMatch]:
    """Best match of `keyword` across an entry's name and aliases."""
    keyword = coerce_text(keyword)
    if not keyword:
        return None
    return _best_for_entry(_term(keyword), [_term(t) for t in entry.search_terms], config)


# ═══════════════════════════════════════════════════════
#  Candidate Aggregator
# ═══════════════════════════════════════════════════════

def find_additive_matches(keyword: str,
                          catalog: Union[PreparedCatalog, Sequence[AdditiveEntry]],
                          config: SearchConfig = DEFAULT_CONFIG) -> List[MatchResult]:
    """Every catalog entry `keyword` matches, in catalog order."""
    if not isinstance(catalog, PreparedCatalog):
        catalog = PreparedCatalog(catalog)
    kw = _term(keyword)
    matches = []
    for entry, terms in catalog.items():
        best = _best_for_entry(kw, terms, config)
        if best is not None:
            matches.append(MatchResult.from_entry(
                entry, best.match_type, best.score, keyword, best.detail
            ))
    return matches


def rank_matches(matches: Sequence[MatchResult], limit: int) -> List[MatchResult]:
    """
    Keep the highest-scoring match per additive id, then order by score
    descending with higher hazard first on ties. Unknown hazard sorts last.
    """
    best_by_id: dict[str, MatchResult] = {}
    for m in matches:
        existing = best_by_id.get(m.id)
        if existing is None or m.match_score > existing.match_score:
            best_by_id[m.id] = m
    ranked = sorted(best_by_id.values(), key=lambda m: (-m.match_score, m.hazard_rank))
    return ranked[:limit]


class AdditiveMatcher:
    """
    Search entry point. The catalog cache is injected so each caller (app,
    test) owns its snapshot and load lifecycle.
    """

    def __init__(self, catalog, config: Optional[SearchConfig] = None,
                 extractor: Callable[..., List[str]] = extract_keywords):
        self.catalog = catalog
        self.config = config or DEFAULT_CONFIG
        self.extractor = extractor
        self._prepared: Optional[PreparedCatalog] = None

    def _prepare(self, entries: Sequence[AdditiveEntry]) -> PreparedCatalog:
        if self._prepared is None or self._prepared.entries is not entries:
            self._prepared = PreparedCatalog(entries)
            logger.info(f"AdditiveMatcher indexed {len(entries)} catalog entries")
        return self._prepared

    def keywords(self, text) -> List[str]:
        cfg = self.config
        return self.extractor(text, limit=cfg.max_extracted_keywords)[:cfg.max_search_keywords]

    def match_text(self, text, entries: Sequence[AdditiveEntry]) -> List[MatchResult]:
        """Synchronous core: keywords x catalog → ranked, de-duplicated results."""
        cfg = self.config
        prepared = self._prepare(entries)
        found: List[MatchResult] = []
        for keyword in self.keywords(text)[:cfg.max_scored_keywords]:
            found.extend(find_additive_matches(keyword, prepared, cfg))
            if len(found) >= cfg.early_exit_matches:
                break
        return rank_matches(found, cfg.max_results)

    async def search(self, text) -> List[MatchResult]:
        """
        searchAdditivesWithFuzzyMatching: 0 to max_results matches, never raises.
        An empty list means "no confident match", whatever the cause.
        """
        started = time.perf_counter()
        text = coerce_text(text)
        try:
            entries = await self.catalog.get_catalog()
            results = self.match_text(text, entries)
        except Exception:
            logger.exception("Additive search failed; returning no matches")
            return []
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f"Additive search: {len(results)} matches in {elapsed_ms:.1f}ms "
                    f"(input {len(text)} chars)")
        return results


async def search_additives_with_fuzzy_matching(text, matcher: AdditiveMatcher) -> List[MatchResult]:
    """Function-level form of AdditiveMatcher.search."""
    return await matcher.search(text)
