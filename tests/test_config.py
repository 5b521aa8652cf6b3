"""Search and catalog settings, including environment overrides."""
import pytest

from additive_search.config import CatalogConfig, SearchConfig


def test_defaults():
    cfg = SearchConfig().validate()
    assert cfg.max_results == 8
    assert cfg.max_search_keywords == 8
    assert cfg.max_scored_keywords == 6
    assert cfg.early_exit_matches == 10
    assert cfg.similarity == 'jaccard'
    assert CatalogConfig().max_age is None
    assert CatalogConfig().retry_interval == 60.0


def test_fuzzy_threshold_by_keyword_length():
    cfg = SearchConfig()
    assert cfg.fuzzy_threshold('구연샨') == 0.5
    assert cfg.fuzzy_threshold('가나다라') == 0.5
    assert cfg.fuzzy_threshold('안식향산냐트륨') == 0.3


def test_search_env_overrides():
    cfg = SearchConfig.from_env({
        'ADDITIVE_SEARCH_MAX_RESULTS': '5',
        'ADDITIVE_SEARCH_FUZZY_THRESHOLD_LONG': '0.35',
        'ADDITIVE_SEARCH_SIMILARITY': ' levenshtein ',
        'UNRELATED': 'x',
    })
    assert cfg.max_results == 5
    assert cfg.fuzzy_threshold_long == 0.35
    assert cfg.similarity == 'levenshtein'
    assert cfg.partial_weight == 0.85


def test_catalog_env_overrides():
    cfg = CatalogConfig.from_env({'ADDITIVE_CATALOG_MAX_AGE': '3600',
                                  'ADDITIVE_CATALOG_RETRY_INTERVAL': '0'})
    assert cfg.max_age == 3600.0
    assert cfg.retry_interval == 0.0
    assert CatalogConfig.from_env({'ADDITIVE_CATALOG_MAX_AGE': 'none'}).max_age is None


def test_empty_environment_gives_defaults():
    assert SearchConfig.from_env({}) == SearchConfig()
    assert CatalogConfig.from_env({}) == CatalogConfig()


@pytest.mark.parametrize('environ', [
    {'ADDITIVE_SEARCH_MAX_RESULTS': 'eight'},
    {'ADDITIVE_SEARCH_MAX_RESULTS': '0'},
    {'ADDITIVE_SEARCH_PARTIAL_WEIGHT': '1.5'},
    {'ADDITIVE_SEARCH_SIMILARITY': 'soundex'},
])
def test_invalid_search_env_rejected(environ):
    with pytest.raises(ValueError):
        SearchConfig.from_env(environ)


def test_invalid_catalog_values_rejected():
    with pytest.raises(ValueError):
        CatalogConfig(max_age=-1).validate()
    with pytest.raises(ValueError):
        CatalogConfig(retry_interval=-5).validate()
    with pytest.raises(ValueError, match='ADDITIVE_CATALOG_MAX_AGE'):
        CatalogConfig.from_env({'ADDITIVE_CATALOG_MAX_AGE': 'soon'})
