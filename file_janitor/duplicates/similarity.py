"""
Filename similarity based on edit distance.

Names are compared without their extension, lower-cased, with everything
that is not a letter, digit or Hangul syllable collapsed into single spaces:

    "Report_Final (2).docx"  ->  "report final 2"
"""
import re
from functools import lru_cache

from rapidfuzz.distance import Levenshtein

_NON_WORD = re.compile(r'[^a-z0-9가-힣]+')


@lru_cache(maxsize=8192)
def normalize_name(file_name: str) -> str:
    last_dot = file_name.rfind('.')
    stem = file_name[:last_dot] if last_dot > 0 else file_name
    return _NON_WORD.sub(' ', stem.lower()).strip()


def levenshtein_distance(a: str, b: str) -> int:
    """Insertions, deletions and substitutions at unit cost."""
    return Levenshtein.distance(a, b)


def name_similarity(name_a: str, name_b: str) -> float:
    """1 - distance / longer length, in [0, 1]. Two empty names score 0."""
    a = normalize_name(name_a)
    b = normalize_name(name_b)
    longest = max(len(a), len(b))
    if longest == 0:
        return 0.0
    return 1.0 - levenshtein_distance(a, b) / longest
