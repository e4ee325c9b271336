"""Core data models for animatch."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class MatchKind(str, Enum):
    """How a recognition outcome was reached."""
    MATCHED = "matched"
    FUZZY = "fuzzy"
    NO_MATCH = "no_match"


@dataclass(slots=True)
class AnimeIds:
    """Cross-service identifiers."""
    anilist: Optional[int] = None
    kitsu: Optional[int] = None
    mal: Optional[int] = None

    def get(self, service: str) -> Optional[int]:
        if service not in ("anilist", "kitsu", "mal"):
            raise ValueError(f"Unknown service: {service}")
        return getattr(self, service)


@dataclass(slots=True)
class AnimeTitle:
    """Title variants of a single anime; any of them may be absent."""
    romaji: Optional[str] = None
    english: Optional[str] = None
    native: Optional[str] = None

    def preferred(self) -> str:
        """Return the best available display title."""
        return self.romaji or self.english or self.native or "Unknown"


@dataclass(slots=True)
class Anime:
    """Catalogued anime record.

    Owned by the catalog store. Recognition only ever reads snapshots of it.
    """
    id: int
    ids: AnimeIds = field(default_factory=AnimeIds)
    title: AnimeTitle = field(default_factory=AnimeTitle)
    synonyms: list[str] = field(default_factory=list)

    # Descriptive metadata
    episodes: Optional[int] = None
    cover_url: Optional[str] = None
    season: Optional[str] = None
    year: Optional[int] = None
    synopsis: Optional[str] = None
    genres: list[str] = field(default_factory=list)
    media_type: Optional[str] = None
    airing_status: Optional[str] = None
    mean_score: Optional[float] = None
    studios: list[str] = field(default_factory=list)
    source: Optional[str] = None
    rating: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Anime":
        """Build an Anime from a plain mapping (JSON catalog entry).

        Accepts either nested ``title``/``ids`` objects or flat
        ``title_romaji``/``anilist_id`` style keys.
        """
        title_data = data.get("title") or {}
        if isinstance(title_data, str):
            title_data = {"romaji": title_data}
        ids_data = data.get("ids") or {}
        return cls(
            id=int(data.get("id") or 0),
            ids=AnimeIds(
                anilist=ids_data.get("anilist", data.get("anilist_id")),
                kitsu=ids_data.get("kitsu", data.get("kitsu_id")),
                mal=ids_data.get("mal", data.get("mal_id")),
            ),
            title=AnimeTitle(
                romaji=title_data.get("romaji", data.get("title_romaji")),
                english=title_data.get("english", data.get("title_english")),
                native=title_data.get("native", data.get("title_native")),
            ),
            synonyms=list(data.get("synonyms") or []),
            episodes=data.get("episodes"),
            cover_url=data.get("cover_url"),
            season=data.get("season"),
            year=data.get("year"),
            synopsis=data.get("synopsis"),
            genres=list(data.get("genres") or []),
            media_type=data.get("media_type"),
            airing_status=data.get("airing_status"),
            mean_score=data.get("mean_score"),
            studios=list(data.get("studios") or []),
            source=data.get("source"),
            rating=data.get("rating"),
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
        )


@dataclass(frozen=True, slots=True)
class Matched:
    """Exact or normalized match."""
    anime: Anime

    kind = MatchKind.MATCHED


@dataclass(frozen=True, slots=True)
class Fuzzy:
    """Approximate match with confidence in [0, 1]."""
    anime: Anime
    confidence: float

    kind = MatchKind.FUZZY


@dataclass(frozen=True, slots=True)
class NoMatch:
    """No catalogued anime matched. A normal outcome, not an error."""

    kind = MatchKind.NO_MATCH


MatchResult = Union[Matched, Fuzzy, NoMatch]


def describe_result(result: MatchResult) -> dict[str, Any]:
    """Return a JSON-friendly summary of a match result."""
    if isinstance(result, NoMatch):
        return {"kind": result.kind.value, "anime_id": None, "title": None, "confidence": None}
    confidence = result.confidence if isinstance(result, Fuzzy) else 1.0
    return {
        "kind": result.kind.value,
        "anime_id": result.anime.id,
        "title": result.anime.title.preferred(),
        "confidence": round(confidence, 4),
    }


@dataclass(slots=True)
class CacheStats:
    """Running counters of the recognition engine."""
    entries_indexed: int = 0
    query_cache_size: int = 0
    hits_exact: int = 0
    hits_normalized: int = 0
    hits_fuzzy: int = 0
    hits_query_cache: int = 0
    misses: int = 0

    @property
    def total_lookups(self) -> int:
        return (
            self.hits_exact
            + self.hits_normalized
            + self.hits_fuzzy
            + self.hits_query_cache
            + self.misses
        )

    @property
    def hit_rate(self) -> float:
        """Fraction of lookups that produced a match (cached or not)."""
        total = self.total_lookups
        if total == 0:
            return 0.0
        return (total - self.misses) / total

    def as_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["total_lookups"] = self.total_lookups
        return payload
