"""Title normalization pipeline for anime title matching.

Raw titles coming from media players and browser tabs are noisy: full-width
glyphs, leetspeak digits, roman numerals, ordinal seasons, release tags and
stray punctuation. ``normalize`` folds all of that into one canonical
comparison form through eight ordered stages:

1. Unicode NFKC + case folding
2. Character substitution
3. Roman numeral conversion
4. Ordinal conversion
5. Season keyword canonicalization
6. Stop word / tag / synonym pass
7. Punctuation erasure
8. Whitespace collapse

Stage order matters: every stage assumes the previous ones already ran.
All functions are pure (no side effects, no shared state) and safe to call
from any thread.

Examples:
    >>> normalize("The Title: 2nd Season (TV)")
    'title 2'
    >>> normalize("Hawaii")
    'hawaii'
"""

from __future__ import annotations

import re
import string
import unicodedata


def normalize(title: str) -> str:
    """Apply the full normalization pipeline to a title.

    Args:
        title: Raw title string (any Unicode)

    Returns:
        Lowercase, whitespace-collapsed comparison form ("" for empty input)
    """
    if not title:
        return ""

    value = _fold_unicode(title)
    value = _substitute_characters(value)
    value = _convert_roman_numerals(value)
    value = _convert_ordinals(value)
    value = _canonicalize_season_keywords(value)
    value = _remove_stop_words(value)
    value = _erase_punctuation(value)
    return _collapse_whitespace(value)


def _is_ascii_digits(value: str) -> bool:
    return bool(value) and value.isascii() and value.isdigit()


# ============================================================================
# Stage 1: Unicode NFKC + case folding
# ============================================================================


def _fold_unicode(value: str) -> str:
    """NFKC (full-width -> ASCII, composed diacritics) then lowercase."""
    return unicodedata.normalize("NFKC", value).lower()


# ============================================================================
# Stage 2: Character substitution
# ============================================================================


_CHAR_SUBSTITUTIONS = {
    "@": "a",
    "×": "x",  # multiplication sign
    "✕": "x",
    "✖": "x",
    "‘": "'",
    "’": "'",
    "ʼ": "'",
    "“": '"',
    "”": '"',
    "–": "-",
    "—": "-",
    "…": "...",
    "æ": "ae",
    "œ": "oe",
    "ð": "d",
    "þ": "th",
    "ß": "ss",
}


def _substitute_characters(value: str) -> str:
    """Replace look-alike characters commonly used in anime titles.

    >>> _substitute_characters("danganr0npa")
    'danganronpa'
    >>> _substitute_characters("season 10")
    'season 10'
    """
    out = []
    for index, char in enumerate(value):
        if char == "0" and _looks_like_letter_o(value, index):
            out.append("o")
        else:
            out.append(_CHAR_SUBSTITUTIONS.get(char, char))
    return "".join(out)


def _looks_like_letter_o(value: str, index: int) -> bool:
    """A '0' reads as the letter 'o' only when flanked by letters."""
    before = index > 0 and value[index - 1].isalpha()
    after = index + 1 < len(value) and value[index + 1].isalpha()
    return before and after


# ============================================================================
# Stage 3: Roman numerals
# ============================================================================


# Longest first so the table reads as a greedy match order.
_ROMAN_NUMERALS = (
    ("xiii", 13),
    ("xii", 12),
    ("xi", 11),
    ("viii", 8),
    ("vii", 7),
    ("vi", 6),
    ("iv", 4),
    ("ix", 9),
    ("x", 10),
    ("v", 5),
    ("iii", 3),
    ("ii", 2),
)


def _convert_roman_numerals(value: str) -> str:
    """Convert whole-token roman numerals to arabic numbers.

    Only standalone tokens are converted, so "hawaii" keeps its "ii".
    Trailing punctuation is preserved: "iii:" -> "3:".
    """
    converted = []
    for word in value.split():
        base, suffix = _split_trailing_punctuation(word)
        lowered = base.lower()
        for numeral, number in _ROMAN_NUMERALS:
            if lowered == numeral:
                converted.append(f"{number}{suffix}")
                break
        else:
            converted.append(word)
    return " ".join(converted)


def _split_trailing_punctuation(word: str) -> tuple[str, str]:
    base = word.rstrip(string.punctuation)
    return base, word[len(base):]


# ============================================================================
# Stage 4: Ordinals
# ============================================================================


_ORDINAL_SUFFIXES = ("st", "nd", "rd", "th")


def _convert_ordinals(value: str) -> str:
    """Convert "1st", "2nd", "3rd", "4th"... to plain numbers.

    Words that only end like an ordinal ("the", "fifth") are left alone.
    """
    converted = []
    for word in value.split():
        lowered = word.lower()
        replacement = word
        for suffix in _ORDINAL_SUFFIXES:
            if lowered.endswith(suffix):
                digits = lowered[: -len(suffix)]
                if _is_ascii_digits(digits):
                    replacement = digits
                break
        converted.append(replacement)
    return " ".join(converted)


# ============================================================================
# Stage 5: Season keywords
# ============================================================================


_SEASON_KEYWORDS = ("season", "cour", "series")


def _canonicalize_season_keywords(value: str) -> str:
    """Reduce season references to just the number.

    Patterns handled:
    - "season 2" / "cour 2" / "series 2" -> "2"
    - "season2" (keyword glued to digits) -> "2"
    - standalone "s2" -> "2"

    A keyword without a number passes through; stage 6 drops it.
    """
    words = value.split()
    result = []
    index = 0
    while index < len(words):
        word = words[index]
        lowered = word.lower()

        if lowered in _SEASON_KEYWORDS:
            following = words[index + 1] if index + 1 < len(words) else ""
            if _is_ascii_digits(following):
                result.append(following)
                index += 2
                continue
            result.append(word)
            index += 1
            continue

        glued = _glued_season_number(lowered)
        if glued is not None:
            result.append(glued)
        elif lowered.startswith("s") and _is_ascii_digits(lowered[1:]):
            result.append(lowered[1:])
        else:
            result.append(word)
        index += 1

    return " ".join(result)


def _glued_season_number(lowered: str) -> str | None:
    for keyword in _SEASON_KEYWORDS:
        if lowered.startswith(keyword):
            digits = lowered[len(keyword):]
            if _is_ascii_digits(digits):
                return digits
    return None


# ============================================================================
# Stage 6: Stop words, release tags and synonyms
# ============================================================================


_STOP_WORDS = frozenset(
    {
        "the",
        "a",
        "an",
        "episode",
        "ep",
        "ep.",
        "tv",
        "ova",
        "ona",
        "season",
        "cour",
        "part",
    }
)

_STRIPPED_TAGS = frozenset({"tv", "ova", "ona", "oad", "oav", "special", "specials"})

_WORD_SYNONYMS = {
    "&": "and",
    "oad": "ova",
    "oav": "ova",
}

_PAREN_GROUP = re.compile(r"\(([^()]*)\)")


def _remove_stop_words(value: str) -> str:
    """Drop release tags and filler words, unify common synonyms.

    Parenthesized groups are only removed when they hold a known tag or a
    bare number ("(TV)", "(2024)"); "(Director's Cut)" is kept verbatim.
    """
    value = _PAREN_GROUP.sub(_strip_tag_group, value)

    kept = []
    for word in value.split():
        lowered = word.lower()
        if lowered in _STOP_WORDS:
            continue
        kept.append(_WORD_SYNONYMS.get(lowered, word))
    return " ".join(kept)


def _strip_tag_group(match: re.Match[str]) -> str:
    content = match.group(1).strip().lower()
    if content in _STRIPPED_TAGS or not content or _is_ascii_digits(content):
        return ""
    return match.group(0)


# ============================================================================
# Stage 7: Punctuation erasure
# ============================================================================


def _erase_punctuation(value: str) -> str:
    """Keep only alphanumeric and whitespace characters (Unicode aware)."""
    return "".join(char for char in value if char.isalnum() or char.isspace())


# ============================================================================
# Stage 8: Whitespace collapse
# ============================================================================


def _collapse_whitespace(value: str) -> str:
    return " ".join(value.split())
