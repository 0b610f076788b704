import re
from typing import Sequence, Tuple, List

from .. import config
from ..models import FileRecord

_WORD = re.compile(config.NAME_WORD_PATTERN)
_SEPARATORS = re.compile(r'[\\/]+')


def name_quality_score(file_name: str) -> int:
    """Higher score = name that looks more like the original than a copy."""
    score = 0

    # Reward a real word
    if _WORD.search(file_name):
        score += 10

    # Penalize numbering
    score -= sum(c.isdigit() for c in file_name) // 2

    # Penalize copy/backup/temp markers
    lower = file_name.lower()
    if any(marker in lower for marker in config.NAME_COPY_MARKERS):
        score -= 20

    low, high = config.NAME_GOOD_LENGTH
    if low < len(file_name) < high:
        score += 5

    return score


def location_score(path: str) -> int:
    """Higher score = folder a user is more likely to look in."""
    # Whole directory names only: 'templates' is not 'temp'
    folders = {s for s in _SEPARATORS.split(path.lower())[:-1] if s}
    score = 0
    for markers, points in config.LOCATION_SCORES:
        if folders.intersection(markers):
            score += points

    # Shallower paths are easier to find
    separators = path.count('/') + path.count('\\')
    score += max(0, config.LOCATION_DEPTH_BONUS - separators)
    return score


def _modified_key(record: FileRecord) -> float:
    if record.modified_at is None:
        return float('-inf')
    return record.modified_at.timestamp()


def rank_key(record: FileRecord) -> Tuple[float, int, int, int]:
    """Keys compared in order: newest, best name, largest, best location."""
    return (
        _modified_key(record),
        name_quality_score(record.file_name),
        record.size_bytes,
        location_score(record.path),
    )


def choose_keeper(members: Sequence[FileRecord]) -> Tuple[FileRecord, List[str]]:
    """
    Picks the member to keep and explains why.

    The maximum rank_key wins; on a complete tie the first member stays.
    Reasons list every key on which the keeper is (jointly) best.
    """
    keys = [rank_key(m) for m in members]
    best = 0
    for i in range(1, len(members)):
        if keys[i] > keys[best]:
            best = i

    keeper = members[best]
    labels = ("newest", "best name", "largest", "best location")
    reasons = []
    for pos, label in enumerate(labels):
        values = {k[pos] for k in keys}
        if len(values) > 1 and keys[best][pos] == max(values):
            reasons.append(label)
    if not reasons:
        reasons.append("first encountered")
    return keeper, reasons
