"""
═══════════════════════════════════════════════════════════════════════════════
ADDITIVE SEARCH: CONSTANTS AND DEFAULTS
Enumerations, hazard ordering and the tuned search thresholds.
═══════════════════════════════════════════════════════════════════════════════
"""

from enum import Enum
from typing import Dict


class HazardLevel(str, Enum):
    """Health-risk classification attached to an additive"""
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'


class MatchType(str, Enum):
    """How a keyword matched a catalog name or alias"""
    EXACT = 'exact'
    NORMALIZED_EXACT = 'normalized_exact'
    PARTIAL = 'partial'
    FUZZY = 'fuzzy'


# Among equally-confident matches, higher-risk additives surface first.
HAZARD_RANK: Dict[HazardLevel, int] = {
    HazardLevel.HIGH: 0,
    HazardLevel.MEDIUM: 1,
    HazardLevel.LOW: 2,
}
UNKNOWN_HAZARD_RANK = 3

# ── Keyword / result budgets (interactive mobile flow, ~3-8s end to end) ──
MAX_EXTRACTED_KEYWORDS = 15
MAX_SEARCH_KEYWORDS = 8
MAX_SCORED_KEYWORDS = 6
EARLY_EXIT_MATCHES = 10
MAX_RESULTS = 8

# ── Scoring ──
EXACT_SCORE = 1.0
NORMALIZED_EXACT_SCORE = 0.95
NORMALIZED_MIN_LENGTH = 2       # normalized keyword must be longer than this
PARTIAL_WEIGHT = 0.85
PARTIAL_CAP = 0.9
FUZZY_WEIGHT = 0.7
FUZZY_THRESHOLD_LONG = 0.3
FUZZY_THRESHOLD_SHORT = 0.5
SHORT_KEYWORD_LENGTH = 4        # keywords up to this length use the short threshold
SUBSTRING_BONUS = 0.2
MIN_MATCH_SCORE = 0.2

SIMILARITY_METHODS = ('jaccard', 'levenshtein', 'indel')
DEFAULT_SIMILARITY = 'jaccard'

# ── Catalog cache ──
CATALOG_RETRY_INTERVAL = 60.0   # seconds a fallback catalog is served before retrying
