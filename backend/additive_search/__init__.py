# Food additive fuzzy search engine
from .catalog import CatalogCache, CatalogState, SqliteAdditiveStore, load_fallback_catalog
from .config import CatalogConfig, SearchConfig
from .constants import HazardLevel, MatchType
from .keywords import extract_keywords, is_common_word
from .match import AdditiveMatcher, score_match, search_additives_with_fuzzy_matching
from .models import AdditiveEntry, MatchResult
from .normalize import correct_ocr_errors, normalize_text

__all__ = [
    'AdditiveEntry', 'AdditiveMatcher', 'CatalogCache', 'CatalogConfig', 'CatalogState',
    'HazardLevel', 'MatchResult', 'MatchType', 'SearchConfig', 'SqliteAdditiveStore',
    'correct_ocr_errors', 'extract_keywords', 'is_common_word', 'load_fallback_catalog',
    'normalize_text', 'score_match', 'search_additives_with_fuzzy_matching',
]
