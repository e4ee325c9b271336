"""Title recognition: normalization pipeline, matching helpers and the engine.

See: animatch.core.recognition.normalize for the pure normalization API
See: animatch.core.recognition.engine for the cached, tiered lookup
"""

from .engine import QUERY_CACHE_CAPACITY, CachedMatch, CatalogSource, RecognitionEngine
from .matching import (
    FUZZY_THRESHOLD,
    all_titles,
    best_fuzzy_candidate,
    fuzzy_confidence,
    fuzzy_score,
    match_title,
)
from .normalize import normalize

__all__ = [
    "QUERY_CACHE_CAPACITY",
    "FUZZY_THRESHOLD",
    "CachedMatch",
    "CatalogSource",
    "RecognitionEngine",
    "all_titles",
    "best_fuzzy_candidate",
    "fuzzy_confidence",
    "fuzzy_score",
    "match_title",
    "normalize",
]
