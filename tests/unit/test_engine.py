"""Unit tests for the tiered recognition engine."""

from __future__ import annotations

import logging

import pytest

from animatch.core.models import CacheStats, Fuzzy, Matched, MatchKind, NoMatch
from animatch.core.recognition import QUERY_CACHE_CAPACITY, RecognitionEngine
from animatch.errors import StorageReadFailure
from tests.helpers.catalog import (
    FlakyCatalog,
    StaticCatalog,
    attack_on_titan,
    frieren,
    make_anime,
)


def test_engine_starts_unpopulated(engine: RecognitionEngine, static_catalog: StaticCatalog) -> None:
    assert not engine.populated
    assert len(engine) == 0
    assert engine.stats() == CacheStats()
    assert static_catalog.reads == 0


def test_first_recognize_populates(engine: RecognitionEngine, static_catalog: StaticCatalog) -> None:
    engine.recognize("Frieren")

    assert engine.populated
    assert len(engine) == 2
    assert static_catalog.reads == 1
    assert engine.stats().entries_indexed == 2


def test_exact_hit_then_query_cache(engine: RecognitionEngine) -> None:
    first = engine.recognize("Sousou no Frieren")
    second = engine.recognize("Sousou no Frieren")

    assert isinstance(first, Matched)
    assert isinstance(second, Matched)
    assert first.anime.id == second.anime.id == 1

    stats = engine.stats()
    assert stats.hits_exact == 1
    assert stats.hits_query_cache == 1
    assert stats.query_cache_size == 1


def test_exact_index_covers_every_title(engine: RecognitionEngine) -> None:
    for title in ("Frieren: Beyond Journey's End", "葬送のフリーレン", "Frieren"):
        result = engine.recognize(title)
        assert isinstance(result, Matched)
        assert result.anime.id == 1
    assert engine.stats().hits_exact == 3


def test_normalized_hit(engine: RecognitionEngine) -> None:
    result = engine.recognize("  SOUSOU   no FRIEREN (TV) ")

    assert isinstance(result, Matched)
    assert result.anime.id == 1
    stats = engine.stats()
    assert stats.hits_exact == 0
    assert stats.hits_normalized == 1


def test_query_cache_is_case_sensitive(engine: RecognitionEngine) -> None:
    engine.recognize("Attack on Titan")
    engine.recognize("attack on titan")

    stats = engine.stats()
    assert stats.hits_exact == 1
    assert stats.hits_normalized == 1
    assert stats.hits_query_cache == 0
    assert stats.query_cache_size == 2


def test_fuzzy_near_miss(engine: RecognitionEngine) -> None:
    result = engine.recognize("Sosou no Frieren")

    assert isinstance(result, Fuzzy)
    assert result.anime.id == 1
    assert 0.6 <= result.confidence <= 1.0
    assert engine.stats().hits_fuzzy == 1


def test_fuzzy_result_cached_with_confidence(engine: RecognitionEngine) -> None:
    first = engine.recognize("Sosou no Frieren")
    second = engine.recognize("Sosou no Frieren")

    assert isinstance(second, Fuzzy)
    assert second.confidence == first.confidence
    assert engine.query_cache[0][1].kind is MatchKind.FUZZY
    assert engine.stats().hits_query_cache == 1


def test_miss_counted_and_cached(engine: RecognitionEngine) -> None:
    first = engine.recognize("Totally Unknown Anime Title")
    second = engine.recognize("Totally Unknown Anime Title")

    assert isinstance(first, NoMatch)
    assert isinstance(second, NoMatch)
    stats = engine.stats()
    assert stats.misses == 1
    assert stats.hits_query_cache == 1


def test_empty_query_is_no_match_without_populating(
    engine: RecognitionEngine, static_catalog: StaticCatalog
) -> None:
    assert isinstance(engine.recognize(""), NoMatch)
    assert static_catalog.reads == 0
    assert engine.stats().total_lookups == 0
    assert engine.query_cache_size == 0


def test_punctuation_only_query_misses() -> None:
    engine = RecognitionEngine(StaticCatalog([make_anime(1, romaji="!!!")]))

    # "---" normalizes to "", as does "!!!", but empty keys never match
    result = engine.recognize("---")

    assert isinstance(result, NoMatch)
    assert "" not in engine.normalized_index
    assert engine.stats().misses == 1


def test_empty_catalog() -> None:
    engine = RecognitionEngine(StaticCatalog([]))

    assert isinstance(engine.recognize("Frieren"), NoMatch)
    assert engine.populated
    assert engine.stats().misses == 1
    assert engine.stats().entries_indexed == 0


def test_first_writer_wins_on_collision() -> None:
    first = make_anime(1, romaji="Shared Title")
    second = make_anime(2, romaji="Shared Title", english="Second Only")
    engine = RecognitionEngine(StaticCatalog([first, second]))

    result = engine.recognize("Shared Title")
    assert isinstance(result, Matched)
    assert result.anime.id == 1
    assert engine.exact_index["Shared Title"] == 1
    assert engine.normalized_index["shared title"] == 1

    other = engine.recognize("Second Only")
    assert isinstance(other, Matched)
    assert other.anime.id == 2


def test_eviction_keeps_capacity(engine: RecognitionEngine) -> None:
    engine.recognize("Frieren")
    for index in range(QUERY_CACHE_CAPACITY):
        engine.recognize(f"unknown query {index}")

    assert engine.query_cache_size == QUERY_CACHE_CAPACITY
    assert engine.stats().query_cache_size == QUERY_CACHE_CAPACITY
    cached_queries = [query for query, _ in engine.query_cache]
    assert "Frieren" not in cached_queries
    assert cached_queries[0] == "unknown query 0"

    # Evicted query is answered by the index again, not the cache.
    engine.recognize("Frieren")
    assert engine.stats().hits_exact == 2
    assert engine.stats().hits_query_cache == 0


def test_cache_hit_does_not_reorder(engine: RecognitionEngine) -> None:
    engine.recognize("Frieren")
    engine.recognize("Attack on Titan")
    engine.recognize("Frieren")

    assert [query for query, _ in engine.query_cache] == ["Frieren", "Attack on Titan"]

    for index in range(QUERY_CACHE_CAPACITY - 1):
        engine.recognize(f"filler {index}")

    cached_queries = [query for query, _ in engine.query_cache]
    assert "Frieren" not in cached_queries
    assert cached_queries[0] == "Attack on Titan"


def test_invalidate_resets_everything(engine: RecognitionEngine) -> None:
    engine.recognize("Frieren")
    engine.invalidate()

    assert not engine.populated
    assert len(engine) == 0
    assert engine.exact_index == {}
    assert engine.normalized_index == {}
    assert engine.query_cache_size == 0
    assert engine.stats() == CacheStats()


def test_invalidate_then_repopulate_sees_new_entries() -> None:
    catalog = StaticCatalog([frieren(1)])
    engine = RecognitionEngine(catalog)

    assert isinstance(engine.recognize("Attack on Titan"), NoMatch)

    catalog.anime.append(attack_on_titan(2))
    # Without invalidation the snapshot and query cache are unchanged.
    assert isinstance(engine.recognize("Attack on Titan"), NoMatch)

    engine.invalidate()
    result = engine.recognize("Attack on Titan")
    assert isinstance(result, Matched)
    assert result.anime.id == 2
    assert catalog.reads == 2


def test_stale_cached_id_becomes_no_match(engine: RecognitionEngine) -> None:
    engine.recognize("Frieren")
    engine.entries = [anime for anime in engine.entries if anime.id != 1]

    assert isinstance(engine.recognize("Frieren"), NoMatch)
    assert engine.stats().hits_query_cache == 1


def test_populate_failure_returns_no_match_and_retries(caplog: pytest.LogCaptureFixture) -> None:
    catalog = FlakyCatalog([frieren(1)], failures=1)
    engine = RecognitionEngine(catalog)

    with caplog.at_level(logging.ERROR, logger="animatch.core.recognition.engine"):
        result = engine.recognize("Frieren")

    assert isinstance(result, NoMatch)
    assert not engine.populated
    assert engine.query_cache_size == 0
    assert engine.stats().misses == 0
    assert "Failed to populate recognition engine" in caplog.text

    retry = engine.recognize("Frieren")
    assert isinstance(retry, Matched)
    assert catalog.reads == 2


def test_populate_failure_keeps_previous_snapshot() -> None:
    catalog = FlakyCatalog([frieren(1)], failures=0)
    engine = RecognitionEngine(catalog)
    engine.populate()

    catalog.failures = 2
    with pytest.raises(StorageReadFailure):
        engine.populate()

    assert engine.populated
    assert len(engine) == 1


def test_explicit_populate_with_other_source(engine: RecognitionEngine, static_catalog: StaticCatalog) -> None:
    engine.populate(StaticCatalog([make_anime(7, romaji="Other Show")]))

    assert static_catalog.reads == 0
    result = engine.recognize("Other Show")
    assert isinstance(result, Matched)
    assert result.anime.id == 7


def test_custom_scorer_threshold() -> None:
    def accepting(candidate: str, query: str) -> float:
        return 100.0 if candidate == query else 60.0

    def rejecting(candidate: str, query: str) -> float:
        return 100.0 if candidate == query else 59.0

    catalog = StaticCatalog([frieren(1)])

    result = RecognitionEngine(catalog, scorer=accepting).recognize("completely different")
    assert isinstance(result, Fuzzy)
    assert result.confidence == pytest.approx(0.6)

    miss = RecognitionEngine(catalog, scorer=rejecting).recognize("completely different")
    assert isinstance(miss, NoMatch)


def test_stats_returns_copy(engine: RecognitionEngine) -> None:
    snapshot = engine.stats()
    snapshot.misses = 99
    assert engine.stats().misses == 0


def test_hit_rate() -> None:
    engine = RecognitionEngine(StaticCatalog([frieren(1)]))
    engine.recognize("Frieren")
    engine.recognize("Frieren")
    engine.recognize("Totally Unknown Anime Title")

    stats = engine.stats()
    assert stats.total_lookups == 3
    assert stats.hit_rate == pytest.approx(2 / 3)
