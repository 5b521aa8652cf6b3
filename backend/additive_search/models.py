"""
models.py — Pydantic models for catalog entries and search results.
Catalog rows from any store pass through AdditiveEntry before they reach the
matcher, so the scorer can rely on `aliases` being a list of non-blank strings.
"""

from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator

from additive_search.constants import HAZARD_RANK, UNKNOWN_HAZARD_RANK, HazardLevel, MatchType


class AdditiveEntry(BaseModel):
    """A catalog record. `id` is stable and unique across the catalog."""
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    hazard_level: Optional[HazardLevel] = None
    description_short: str = ''
    description_full: str = ''
    aliases: list[str] = []

    @field_validator('id', 'name', mode='before')
    @classmethod
    def strip_identifiers(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator('hazard_level', mode='before')
    @classmethod
    def lenient_hazard_level(cls, v):
        """Unknown hazard levels are kept as None (sorted last) rather than rejected."""
        if isinstance(v, HazardLevel):
            return v
        if isinstance(v, str) and v.strip().lower() in {h.value for h in HazardLevel}:
            return v.strip().lower()
        return None

    @field_validator('description_short', 'description_full', mode='before')
    @classmethod
    def none_as_empty(cls, v):
        return '' if v is None else v

    @field_validator('aliases', mode='before')
    @classmethod
    def clean_aliases(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split('|')
        return [a.strip() for a in v if isinstance(a, str) and a.strip()]

    @property
    def search_terms(self) -> list[str]:
        """Name first, then aliases; all searched with equal priority."""
        return [self.name, *self.aliases]

    @property
    def hazard_rank(self) -> int:
        if self.hazard_level is None:
            return UNKNOWN_HAZARD_RANK
        return HAZARD_RANK[self.hazard_level]


class MatchResult(AdditiveEntry):
    """An AdditiveEntry annotated with how one search matched it."""
    match_type: MatchType
    match_score: float = Field(gt=0.0, le=1.0)
    matched_term: str
    match_details: Optional[str] = None

    @classmethod
    def from_entry(cls, entry: AdditiveEntry, match_type: MatchType, score: float,
                   matched_term: str, details: Optional[str] = None) -> 'MatchResult':
        return cls(
            **entry.model_dump(),
            match_type=match_type,
            match_score=score,
            matched_term=matched_term,
            match_details=details,
        )

    def to_api(self) -> dict[str, Any]:
        """Wire shape consumed by the mobile client (match fields in camelCase)."""
        d = self.model_dump(mode='json', exclude={'match_type', 'match_score',
                                                  'matched_term', 'match_details'})
        d['matchType'] = self.match_type.value
        d['matchScore'] = round(self.match_score, 4)
        d['matchedTerm'] = self.matched_term
        d['matchDetails'] = self.match_details
        return d
