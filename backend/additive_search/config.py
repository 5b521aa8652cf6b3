"""
config.py — Tunable search and catalog settings.

Defaults mirror the thresholds in constants.py. Every field can be overridden
from the environment without a code change:

    ADDITIVE_SEARCH_FUZZY_THRESHOLD_LONG=0.35
    ADDITIVE_SEARCH_SIMILARITY=levenshtein
    ADDITIVE_CATALOG_MAX_AGE=3600
"""

import os
import logging
from dataclasses import dataclass, fields, replace
from typing import Optional

from additive_search import constants as C

logger = logging.getLogger(__name__)

SEARCH_ENV_PREFIX = 'ADDITIVE_SEARCH_'
CATALOG_ENV_PREFIX = 'ADDITIVE_CATALOG_'


def _coerce(raw: str, current):
    """Convert an environment string to the type of the field's current value."""
    if isinstance(current, bool):
        return raw.strip().lower() in ('1', 'true', 'yes', 'on')
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float) or current is None:
        if current is None and raw.strip().lower() in ('', 'none', 'null'):
            return None
        return float(raw)
    return raw.strip()


def _from_env(obj, prefix: str, environ):
    overrides = {}
    for f in fields(obj):
        key = prefix + f.name.upper()
        if key in environ:
            try:
                overrides[f.name] = _coerce(environ[key], getattr(obj, f.name))
            except ValueError:
                raise ValueError(f"Invalid value for {key}: {environ[key]!r}")
    if overrides:
        logger.info(f"Config overrides from environment: {sorted(overrides)}")
    return replace(obj, **overrides)


@dataclass(frozen=True)
class SearchConfig:
    """Budgets, weights and thresholds used by the keyword extractor and matcher."""
    max_extracted_keywords: int = C.MAX_EXTRACTED_KEYWORDS
    max_search_keywords: int = C.MAX_SEARCH_KEYWORDS
    max_scored_keywords: int = C.MAX_SCORED_KEYWORDS
    early_exit_matches: int = C.EARLY_EXIT_MATCHES
    max_results: int = C.MAX_RESULTS

    normalized_exact_score: float = C.NORMALIZED_EXACT_SCORE
    normalized_min_length: int = C.NORMALIZED_MIN_LENGTH
    partial_weight: float = C.PARTIAL_WEIGHT
    partial_cap: float = C.PARTIAL_CAP
    fuzzy_weight: float = C.FUZZY_WEIGHT
    fuzzy_threshold_long: float = C.FUZZY_THRESHOLD_LONG
    fuzzy_threshold_short: float = C.FUZZY_THRESHOLD_SHORT
    short_keyword_length: int = C.SHORT_KEYWORD_LENGTH
    substring_bonus: float = C.SUBSTRING_BONUS
    min_match_score: float = C.MIN_MATCH_SCORE
    similarity: str = C.DEFAULT_SIMILARITY

    def validate(self) -> 'SearchConfig':
        for name in ('max_extracted_keywords', 'max_search_keywords',
                     'max_scored_keywords', 'early_exit_matches', 'max_results'):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}")
        for name in ('normalized_exact_score', 'partial_weight', 'partial_cap',
                     'fuzzy_weight', 'fuzzy_threshold_long', 'fuzzy_threshold_short',
                     'substring_bonus', 'min_match_score'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        if self.similarity not in C.SIMILARITY_METHODS:
            raise ValueError(
                f"similarity must be one of {C.SIMILARITY_METHODS}, got '{self.similarity}'"
            )
        return self

    def fuzzy_threshold(self, keyword: str) -> float:
        if len(keyword) > self.short_keyword_length:
            return self.fuzzy_threshold_long
        return self.fuzzy_threshold_short

    @classmethod
    def from_env(cls, environ=None) -> 'SearchConfig':
        environ = os.environ if environ is None else environ
        return _from_env(cls(), SEARCH_ENV_PREFIX, environ).validate()


@dataclass(frozen=True)
class CatalogConfig:
    """
    Cache invalidation policy.

    max_age=None keeps a live snapshot for the whole process lifetime;
    catalog edits then need a restart or an explicit refresh.
    """
    max_age: Optional[float] = None
    retry_interval: float = C.CATALOG_RETRY_INTERVAL

    def validate(self) -> 'CatalogConfig':
        if self.max_age is not None and self.max_age <= 0:
            raise ValueError(f"max_age must be positive or None, got {self.max_age}")
        if self.retry_interval < 0:
            raise ValueError(f"retry_interval must be >= 0, got {self.retry_interval}")
        return self

    @classmethod
    def from_env(cls, environ=None) -> 'CatalogConfig':
        environ = os.environ if environ is None else environ
        return _from_env(cls(), CATALOG_ENV_PREFIX, environ).validate()
