"""Title sets and fuzzy scoring shared by recognition and one-off matching."""

from __future__ import annotations

from typing import Callable, Iterable

from rapidfuzz import fuzz

from animatch.core.models import Anime, Fuzzy, Matched, MatchResult, NoMatch
from .normalize import normalize


# Minimum fuzzy confidence (0.0-1.0) to accept a match.
FUZZY_THRESHOLD = 0.6

Scorer = Callable[[str, str], float]


def all_titles(anime: Anime) -> list[str]:
    """Collect every title string of an anime.

    Order is romaji, english, native, then synonyms. Absent or empty
    titles are skipped.
    """
    titles = [
        title
        for title in (anime.title.romaji, anime.title.english, anime.title.native)
        if title
    ]
    titles.extend(synonym for synonym in anime.synonyms if synonym)
    return titles


def fuzzy_score(candidate: str, query: str) -> float:
    """Approximate similarity between two normalized strings (0-100)."""
    if not candidate or not query:
        return 0.0
    return fuzz.WRatio(candidate, query)


def fuzzy_confidence(best_score: float, query: str, scorer: Scorer = fuzzy_score) -> float:
    """Scale a raw score by the query's self-similarity into [0, 1]."""
    max_possible = max(scorer(query, query), 1.0)
    return min(max(best_score / max_possible, 0.0), 1.0)


def best_fuzzy_candidate(
    normalized_query: str,
    candidates: Iterable[tuple[Anime, list[str]]],
    scorer: Scorer = fuzzy_score,
) -> MatchResult:
    """Pick the highest-scoring anime for an already normalized query.

    Args:
        normalized_query: Output of ``normalize`` for the raw query
        candidates: (anime, normalized titles) pairs in catalog order
        scorer: Similarity function taking (candidate, query)

    Returns:
        Fuzzy result when confidence reaches FUZZY_THRESHOLD, else NoMatch.
        Ties keep the earlier anime.
    """
    best_score = 0.0
    best_anime = None
    for anime, titles in candidates:
        score = max((scorer(title, normalized_query) for title in titles), default=0.0)
        if score > best_score:
            best_score = score
            best_anime = anime

    if best_anime is None:
        return NoMatch()

    confidence = fuzzy_confidence(best_score, normalized_query, scorer)
    if confidence >= FUZZY_THRESHOLD:
        return Fuzzy(best_anime, confidence)
    return NoMatch()


def match_title(
    query: str,
    candidates: list[Anime],
    scorer: Scorer = fuzzy_score,
) -> MatchResult:
    """Match a title against a candidate list without any index or cache.

    Strategy: exact -> normalized -> fuzzy -> NoMatch. Suited to one-off
    matching (e.g. against search results); repeated lookups against the
    catalog should go through RecognitionEngine.
    """
    if not query or not candidates:
        return NoMatch()

    for anime in candidates:
        if query in all_titles(anime):
            return Matched(anime)

    normalized_query = normalize(query)
    normalized_candidates = [
        (anime, [normalize(title) for title in all_titles(anime)])
        for anime in candidates
    ]
    if normalized_query:
        for anime, titles in normalized_candidates:
            if normalized_query in titles:
                return Matched(anime)

    return best_fuzzy_candidate(normalized_query, normalized_candidates, scorer)
