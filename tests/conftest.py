"""Shared fixtures: a small Korean additive catalog and an in-memory store."""
import asyncio

import pytest

from additive_search.catalog import CatalogCache
from additive_search.match import AdditiveMatcher
from additive_search.models import AdditiveEntry

SAMPLE_CATALOG = [
    {'id': 'citric-acid', 'name': '구연산', 'hazard_level': 'low', 'aliases': []},
    {'id': 'sodium-benzoate', 'name': '안식향산나트륨', 'hazard_level': 'medium',
     'aliases': ['벤조산나트륨']},
    {'id': 'yellow-5', 'name': '황색 5호', 'hazard_level': 'medium', 'aliases': []},
    {'id': 'msg', 'name': '글루탐산나트륨', 'hazard_level': 'medium', 'aliases': ['미원']},
    {'id': 'aspartame', 'name': '아스파탐', 'hazard_level': 'high', 'aliases': ['뉴트라스위트']},
    {'id': 'bha', 'name': 'BHA', 'hazard_level': 'high', 'aliases': ['부틸화히드록시아니솔']},
]


class FakeStore:
    """Async store double: counts fetches, can delay or fail."""

    def __init__(self, records=None, delay=0.0, error=None):
        self.records = SAMPLE_CATALOG if records is None else records
        self.delay = delay
        self.error = error
        self.calls = 0

    async def fetch_all(self):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.records)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def make_matcher(records=None, config=None, **cache_kwargs):
    store = FakeStore(records)
    cache = CatalogCache(store.fetch_all, **cache_kwargs)
    return AdditiveMatcher(cache, config), store


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def matcher():
    m, _ = make_matcher()
    return m


@pytest.fixture
def fallback_entries():
    return [AdditiveEntry(id='fallback-only', name='오프라인첨가물', hazard_level='low')]
