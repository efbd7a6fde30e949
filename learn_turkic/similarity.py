"""
Cross-language lexical similarity.

Scores how closely the native forms of a cognate set resemble each other.
All distances are measured over user-perceived characters (grapheme
clusters) so that Cyrillic, Latin and Arabic forms with combining marks
compare the same way regardless of how they were encoded.
"""
import unicodedata
from itertools import combinations
from typing import Any, Iterable, List, Optional, Sequence, Union

import numpy as np

from .structured import LANGUAGE_CODES

ZWJ = "\u200d"

SCORE_BANDS = (
    (0.8, "high", "#16A085"),
    (0.5, "medium", "#F39C12"),
    (0.0, "low", "#E74C3C"),
)

Text = Union[str, Sequence[str]]


def _extends_cluster(ch: str, prev: str) -> bool:
    if prev == ZWJ or ch == ZWJ:
        return True
    if unicodedata.combining(ch):
        return True
    if unicodedata.category(ch) in ("Mn", "Mc", "Me"):
        return True
    cp = ord(ch)
    # variation selectors and emoji skin-tone modifiers
    if 0xFE00 <= cp <= 0xFE0F or 0xE0100 <= cp <= 0xE01EF or 0x1F3FB <= cp <= 0x1F3FF:
        return True
    return prev == "\r" and ch == "\n"


def graphemes(text: str) -> List[str]:
    """Split ``text`` into grapheme clusters after NFC normalisation."""
    clusters: List[str] = []
    prev = ""
    for ch in unicodedata.normalize("NFC", text):
        if clusters and _extends_cluster(ch, prev):
            clusters[-1] += ch
        else:
            clusters.append(ch)
        prev = ch
    return clusters


def _units(value: Text) -> List[str]:
    if isinstance(value, str):
        return graphemes(value)
    return list(value)


def edit_distance(a: Text, b: Text) -> int:
    """Levenshtein distance with unit cost for insert, delete and substitute."""
    s1 = _units(a)
    s2 = _units(b)
    len1, len2 = len(s1), len(s2)
    if len1 == 0:
        return len2
    if len2 == 0:
        return len1

    # One DP row per character of s1. Deletions and substitutions come from
    # the previous row in one vector step; insertions chain along the row,
    # which a running minimum over (cost - column) resolves.
    targets = np.array(s2, dtype=object)
    columns = np.arange(len2 + 1, dtype=np.int64)
    previous = columns.copy()
    for i, unit in enumerate(s1, start=1):
        cost = (targets != unit).astype(np.int64)
        current = np.empty_like(previous)
        current[0] = i
        current[1:] = np.minimum(previous[1:] + 1, previous[:-1] + cost)
        previous = np.minimum.accumulate(current - columns) + columns
    return int(previous[-1])


def similarity(a: Text, b: Text) -> float:
    """Normalised similarity in [0, 1]; two empty inputs are identical."""
    s1 = _units(a)
    s2 = _units(b)
    max_len = max(len(s1), len(s2))
    if max_len == 0:
        return 1.0
    return 1.0 - edit_distance(s1, s2) / max_len


def cognate_score(forms: Iterable[str]) -> float:
    """Average pairwise similarity over all unordered pairs of ``forms``."""
    units = [graphemes(f) for f in forms]
    if len(units) < 2:
        return 1.0

    total = 0.0
    comparisons = 0
    for left, right in combinations(units, 2):
        total += similarity(left, right)
        comparisons += 1
    return total / comparisons if comparisons > 0 else 0.0


def word_cognate_score(word: Any, codes: Optional[Sequence[str]] = None) -> float:
    """Cognate score over a word's native forms in the given languages."""
    forms = [word.native(code) for code in (codes or LANGUAGE_CODES)]
    return cognate_score([f for f in forms if f])


def score_band(score: float) -> str:
    for threshold, band, _color in SCORE_BANDS:
        if score >= threshold:
            return band
    return "low"


def color_for_score(score: float) -> str:
    """Hex colour used to visualise a cognate score."""
    for threshold, _band, color in SCORE_BANDS:
        if score >= threshold:
            return color
    return SCORE_BANDS[-1][2]
