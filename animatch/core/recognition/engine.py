"""In-memory recognition engine over a catalog snapshot.

Avoids a catalog scan and repeated normalization on every detection tick.
The engine populates itself from its catalog source on the first
``recognize()`` call and rebuilds lazily after ``invalidate()``.

Lookup tiers, each tried only when the previous ones missed:

1. Query cache: the last 64 raw queries and their outcomes
2. Exact index: title/synonym exactly as catalogued
3. Normalized index: ``normalize(title)``
4. Fuzzy scan over every catalogued title

The engine does no locking. It must be owned by a single worker (see
``animatch.infrastructure.worker``); ``recognize`` mutates the query cache
and statistics even though it looks like a read.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, replace
import logging
from typing import Optional, Protocol

from animatch.core.models import (
    Anime,
    CacheStats,
    Fuzzy,
    Matched,
    MatchKind,
    MatchResult,
    NoMatch,
)
from animatch.errors import StorageReadFailure
from .matching import Scorer, all_titles, best_fuzzy_candidate, fuzzy_score
from .normalize import normalize

logger = logging.getLogger(__name__)

# Maximum number of recent query outcomes to keep.
QUERY_CACHE_CAPACITY = 64


class CatalogSource(Protocol):
    """Storage collaborator supplying the full catalog snapshot."""

    def all_anime(self) -> list[Anime]:
        """Return every catalogued anime in catalog order.

        Raises:
            StorageReadFailure: if the catalog cannot be read
        """
        ...


@dataclass(frozen=True, slots=True)
class CachedMatch:
    """Query cache outcome holding only the anime id, not the record."""
    kind: MatchKind
    anime_id: Optional[int] = None
    confidence: Optional[float] = None

    @classmethod
    def from_result(cls, result: MatchResult) -> "CachedMatch":
        if isinstance(result, Matched):
            return cls(MatchKind.MATCHED, result.anime.id)
        if isinstance(result, Fuzzy):
            return cls(MatchKind.FUZZY, result.anime.id, result.confidence)
        return cls(MatchKind.NO_MATCH)


class RecognitionEngine:
    """Tiered title recognition over an in-memory catalog snapshot.

    Index collisions are resolved first-writer-wins: when two anime share an
    identical title (or normalized title), the one earlier in catalog order
    owns it until the next invalidate + populate. The later one is only
    reachable through the fuzzy scan.
    """

    def __init__(self, source: CatalogSource, scorer: Scorer = fuzzy_score) -> None:
        """Initialize an empty, unpopulated engine.

        Args:
            source: Catalog source read by ``populate``
            scorer: Similarity function for the fuzzy tier
        """
        self._source = source
        self._scorer = scorer
        self.entries: list[Anime] = []
        self.exact_index: dict[str, int] = {}
        self.normalized_index: dict[str, int] = {}
        self.query_cache: deque[tuple[str, CachedMatch]] = deque()
        self._fuzzy_candidates: list[tuple[Anime, list[str]]] = []
        self._populated = False
        self._stats = CacheStats()

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def populated(self) -> bool:
        return self._populated

    @property
    def query_cache_size(self) -> int:
        return len(self.query_cache)

    def populate(self, source: Optional[CatalogSource] = None) -> None:
        """Load the full catalog and rebuild both title indices.

        Args:
            source: Catalog source to read instead of the configured one

        Raises:
            StorageReadFailure: if the catalog read fails; the engine state
                is left untouched in that case (an unpopulated engine stays
                unpopulated, a populated one keeps its prior snapshot)
        """
        entries = list((source or self._source).all_anime())

        self._clear()
        self.entries = entries
        for anime in entries:
            normalized_titles = []
            for title in all_titles(anime):
                normalized = normalize(title)
                normalized_titles.append(normalized)
                self.exact_index.setdefault(title, anime.id)
                if normalized:
                    self.normalized_index.setdefault(normalized, anime.id)
            self._fuzzy_candidates.append((anime, normalized_titles))

        self._populated = True
        self._stats.entries_indexed = len(entries)
        self._stats.query_cache_size = 0
        logger.debug(
            "Recognition engine populated: %d anime, %d exact keys, %d normalized keys",
            len(entries),
            len(self.exact_index),
            len(self.normalized_index),
        )

    def invalidate(self) -> None:
        """Discard the snapshot, indices, query cache and statistics.

        Must be called after any catalog write; the next ``recognize`` call
        repopulates.
        """
        self._clear()
        self._populated = False
        self._stats = CacheStats()

    def stats(self) -> CacheStats:
        """Return a copy of the running counters."""
        return replace(self._stats)

    def recognize(self, query: str) -> MatchResult:
        """Recognize which catalogued anime a raw title refers to.

        Args:
            query: Raw title as detected (not normalized)

        Returns:
            Matched, Fuzzy (confidence >= 0.6) or NoMatch
        """
        if not query:
            return NoMatch()

        if not self._populated:
            try:
                self.populate()
            except StorageReadFailure as exc:
                logger.error("Failed to populate recognition engine: %s", exc)
                return NoMatch()

        cached = self._query_cache_lookup(query)
        if cached is not None:
            logger.debug("Recognition hit via query cache for %r", query)
            self._stats.hits_query_cache += 1
            return cached

        anime = self._resolve_index(self.exact_index, query)
        if anime is not None:
            logger.debug("Recognition hit via exact index: %s", anime.title.preferred())
            self._stats.hits_exact += 1
            return self._remember(query, Matched(anime))

        normalized = normalize(query)
        anime = self._resolve_index(self.normalized_index, normalized)
        if anime is not None:
            logger.debug("Recognition hit via normalized index: %s", anime.title.preferred())
            self._stats.hits_normalized += 1
            return self._remember(query, Matched(anime))

        result = self._fuzzy_scan(normalized)
        if isinstance(result, Fuzzy):
            logger.debug(
                "Recognition hit via fuzzy scan: %s (%.1f%%)",
                result.anime.title.preferred(),
                result.confidence * 100.0,
            )
            self._stats.hits_fuzzy += 1
        else:
            logger.debug("No recognition match for %r", query)
            self._stats.misses += 1
        return self._remember(query, result)

    def _fuzzy_scan(self, normalized_query: str) -> MatchResult:
        if not self.entries:
            return NoMatch()
        return best_fuzzy_candidate(normalized_query, self._fuzzy_candidates, self._scorer)

    def _resolve_index(self, index: dict[str, int], key: str) -> Optional[Anime]:
        if not key:
            return None
        anime_id = index.get(key)
        if anime_id is None:
            return None
        return self._find_entry(anime_id)

    def _query_cache_lookup(self, query: str) -> Optional[MatchResult]:
        for cached_query, cached in self.query_cache:
            if cached_query == query:
                return self._cached_to_result(cached)
        return None

    def _remember(self, query: str, result: MatchResult) -> MatchResult:
        """Append an outcome to the query cache, evicting the oldest if full."""
        if len(self.query_cache) >= QUERY_CACHE_CAPACITY:
            self.query_cache.popleft()
        self.query_cache.append((query, CachedMatch.from_result(result)))
        self._stats.query_cache_size = len(self.query_cache)
        return result

    def _cached_to_result(self, cached: CachedMatch) -> MatchResult:
        if cached.kind is MatchKind.NO_MATCH or cached.anime_id is None:
            return NoMatch()
        anime = self._find_entry(cached.anime_id)
        if anime is None:
            logger.debug("Stale query cache entry for anime %s", cached.anime_id)
            return NoMatch()
        if cached.kind is MatchKind.FUZZY:
            return Fuzzy(anime, cached.confidence or 0.0)
        return Matched(anime)

    def _find_entry(self, anime_id: int) -> Optional[Anime]:
        for anime in self.entries:
            if anime.id == anime_id:
                return anime
        return None

    def _clear(self) -> None:
        self.entries = []
        self.exact_index.clear()
        self.normalized_index.clear()
        self.query_cache.clear()
        self._fuzzy_candidates.clear()
