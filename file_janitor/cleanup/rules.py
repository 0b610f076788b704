"""
Cleanup detection rules.

Every rule looks at one FileRecord and returns a CleanupCandidate or None.
A rule that needs `modified_at` raises MissingMetadataError for a record
without one; CleanupClassifier treats that as "no match" and records the
path as skipped.

Category data (sort priority, base confidence, default safety) lives in
CATEGORY_PROFILES, and the confidence adjustment per safety level in
SAFETY_ADJUSTMENTS, so the whole rule set can be inspected as data.
"""
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Optional, Callable, List, Mapping, Iterable

from .. import config
from ..exceptions import MissingMetadataError
from ..models import (
    FileRecord, CleanupCandidate, CleanupCategory, SafetyLevel,
    DuplicateGroup, DuplicateKind,
)


@dataclass(frozen=True)
class CategoryProfile:
    priority: int            # lower sorts first
    base_confidence: float
    default_safety: SafetyLevel
    display_name: str


CATEGORY_PROFILES: Mapping[CleanupCategory, CategoryProfile] = MappingProxyType({
    CleanupCategory.TEMP_FILES:      CategoryProfile(1, 0.9, SafetyLevel.SAFE, "Temporary files"),
    CleanupCategory.CACHE_FILES:     CategoryProfile(2, 0.8, SafetyLevel.SAFE, "Cache files"),
    CleanupCategory.EMPTY_FILES:     CategoryProfile(3, 0.9, SafetyLevel.SAFE, "Empty files"),
    CleanupCategory.DUPLICATE_FILES: CategoryProfile(4, 0.7, SafetyLevel.LIKELY_SAFE, "Duplicate files"),
    CleanupCategory.LOG_FILES:       CategoryProfile(5, 0.7, SafetyLevel.LIKELY_SAFE, "Log files"),
    CleanupCategory.BACKUP_FILES:    CategoryProfile(6, 0.5, SafetyLevel.CAUTION, "Backup files"),
    CleanupCategory.OLD_INSTALLERS:  CategoryProfile(7, 0.6, SafetyLevel.CAUTION, "Old installers"),
    CleanupCategory.LARGE_UNUSED:    CategoryProfile(8, 0.4, SafetyLevel.USER_DECISION, "Large unused files"),
    CleanupCategory.OTHER:           CategoryProfile(9, 0.3, SafetyLevel.USER_DECISION, "Other"),
})

# safety level -> (delta, floor, ceiling)
SAFETY_ADJUSTMENTS: Mapping[SafetyLevel, tuple] = MappingProxyType({
    SafetyLevel.SAFE:          (+0.1, 0.0, 1.0),
    SafetyLevel.LIKELY_SAFE:   (0.0, 0.0, 1.0),
    SafetyLevel.CAUTION:       (-0.2, 0.1, 1.0),
    SafetyLevel.USER_DECISION: (-0.3, 0.1, 1.0),
})


def confidence_for(category: CleanupCategory, safety: SafetyLevel) -> float:
    delta, floor, ceiling = SAFETY_ADJUSTMENTS[safety]
    # Round away float noise so 0.9 + 0.1 == 1.0 exactly
    return round(min(max(CATEGORY_PROFILES[category].base_confidence + delta, floor), ceiling), 6)


def make_candidate(record: FileRecord,
                   category: CleanupCategory,
                   safety: SafetyLevel,
                   reason: str) -> CleanupCandidate:
    return CleanupCandidate(
        path=record.path,
        category=category,
        safety_level=safety,
        reason=reason,
        confidence=confidence_for(category, safety),
        size_bytes=record.size_bytes,
        file_name=record.file_name,
        is_dir=record.is_dir,
        modified_at=record.modified_at,
    )


@dataclass(frozen=True)
class CustomRule:
    """Caller-supplied classification for one extension."""
    category: CleanupCategory
    safety_level: SafetyLevel
    reason: str = "Custom rule"


@dataclass(frozen=True)
class RuleContext:
    now: datetime
    custom_rules: Mapping[str, CustomRule] = field(default_factory=lambda: MappingProxyType({}))


# --- Helpers ---

def _segments(directory: str) -> List[str]:
    return [s for s in re.split(r'[\\/]+', directory.lower()) if s]


def _slashed(path: str) -> str:
    return path.lower().replace('\\', '/')


def is_older_than(record: FileRecord, now: datetime, days: int) -> bool:
    """True when `modified_at` is strictly before `now - days`."""
    modified = record.modified_at
    if modified is None:
        raise MissingMetadataError(f"{record.path} has no modification time")
    # Compare aware and naive values in local time
    if (modified.tzinfo is None) != (now.tzinfo is None):
        if modified.tzinfo is not None:
            modified = modified.astimezone().replace(tzinfo=None)
        else:
            now = now.astimezone().replace(tzinfo=None)
    return modified < now - timedelta(days=days)


def in_temp_directory(record: FileRecord) -> bool:
    if any(seg in config.TEMP_DIR_SEGMENTS for seg in _segments(record.original_location)):
        return True
    location = _slashed(record.original_location)
    return any(marker in location for marker in config.TEMP_DIR_PATHS)


def in_cache_directory(record: FileRecord) -> bool:
    return any(config.CACHE_MARKER in seg for seg in _segments(record.original_location))


_LOG_DATE = re.compile(config.LOG_DATE_PATTERN)


def looks_like_log(file_name: str) -> bool:
    name = file_name.lower()
    stripped = name
    for word in config.LOG_FALSE_FRIENDS:
        stripped = stripped.replace(word, ' ')
    if 'log' in stripped:
        return True
    if any(k in name for k in config.LOG_KEYWORDS):
        return True
    return bool(_LOG_DATE.search(name))


# --- Rules ---

def detect_temp_file(record: FileRecord, ctx: RuleContext) -> Optional[CleanupCandidate]:
    if record.is_dir:
        return None
    name = record.file_name.lower()
    cat = CleanupCategory.TEMP_FILES

    if record.extension in config.TEMP_EXTS:
        return make_candidate(record, cat, SafetyLevel.SAFE, f"Temporary file extension: .{record.extension}")
    if name in config.TEMP_FILENAMES:
        return make_candidate(record, cat, SafetyLevel.SAFE, f"System-generated file: {record.file_name}")
    if in_temp_directory(record):
        return make_candidate(record, cat, SafetyLevel.SAFE, "File inside a temporary folder")
    if name.startswith('~$') or name.endswith('~') or '.tmp.' in name or 'temp' in name:
        return make_candidate(record, cat, SafetyLevel.LIKELY_SAFE, "Temporary file name pattern")
    return None


def detect_empty(record: FileRecord, ctx: RuleContext) -> Optional[CleanupCandidate]:
    cat = CleanupCategory.EMPTY_FILES
    if record.is_dir:
        if record.entry_count == 0:
            return make_candidate(record, cat, SafetyLevel.LIKELY_SAFE, "Empty folder")
        return None
    if record.size_bytes == 0:
        return make_candidate(record, cat, SafetyLevel.SAFE, "Zero-byte file")
    return None


def detect_cache_file(record: FileRecord, ctx: RuleContext) -> Optional[CleanupCandidate]:
    if record.is_dir:
        return None
    cat = CleanupCategory.CACHE_FILES
    path = _slashed(record.path)

    if any(marker in path for marker in config.BROWSER_CACHE_PATHS):
        return make_candidate(record, cat, SafetyLevel.SAFE, "Browser cache file")
    if in_cache_directory(record):
        return make_candidate(record, cat, SafetyLevel.SAFE, "File inside a cache folder")
    if config.CACHE_MARKER in record.file_name.lower():
        return make_candidate(record, cat, SafetyLevel.LIKELY_SAFE, "Cache file name pattern")
    return None


def detect_log_file(record: FileRecord, ctx: RuleContext) -> Optional[CleanupCandidate]:
    if record.is_dir or record.extension not in config.LOG_EXTS:
        return None
    if not looks_like_log(record.file_name):
        return None
    safety = SafetyLevel.LIKELY_SAFE if record.size_bytes >= config.LARGE_LOG_SIZE else SafetyLevel.CAUTION
    return make_candidate(record, CleanupCategory.LOG_FILES, safety, f"Log file ({record.size_bytes} bytes)")


def detect_old_installer(record: FileRecord, ctx: RuleContext) -> Optional[CleanupCandidate]:
    if record.is_dir or record.extension not in config.INSTALLER_EXTS:
        return None
    if not is_older_than(record, ctx.now, config.INSTALLER_MAX_AGE_DAYS):
        return None
    name = record.file_name.lower()
    if any(hint in name for hint in config.INSTALLER_HINTS):
        safety = SafetyLevel.CAUTION
    else:
        safety = SafetyLevel.USER_DECISION
    return make_candidate(record, CleanupCategory.OLD_INSTALLERS, safety,
                          f"Installer older than {config.INSTALLER_MAX_AGE_DAYS} days")


def detect_backup_file(record: FileRecord, ctx: RuleContext) -> Optional[CleanupCandidate]:
    if record.is_dir:
        return None
    name = record.file_name.lower()
    if (record.extension in config.BACKUP_EXTS
            or name.endswith('~')
            or any(m in name for m in config.BACKUP_MARKERS)
            or name.startswith(config.BACKUP_PREFIXES)):
        return make_candidate(record, CleanupCategory.BACKUP_FILES, SafetyLevel.CAUTION, "Backup file pattern")
    return None


def detect_large_unused(record: FileRecord, ctx: RuleContext) -> Optional[CleanupCandidate]:
    if record.is_dir or record.size_bytes < config.LARGE_FILE_SIZE:
        return None
    if not is_older_than(record, ctx.now, config.UNUSED_MAX_AGE_DAYS):
        return None
    return make_candidate(record, CleanupCategory.LARGE_UNUSED, SafetyLevel.USER_DECISION,
                          f"Large file not modified for {config.UNUSED_MAX_AGE_DAYS}+ days")


def detect_custom(record: FileRecord, ctx: RuleContext) -> Optional[CleanupCandidate]:
    rule = ctx.custom_rules.get(record.extension)
    if rule is None or record.is_dir:
        return None
    return make_candidate(record, rule.category, rule.safety_level, rule.reason)


def duplicate_candidates(groups: Iterable[DuplicateGroup]) -> List[CleanupCandidate]:
    """Every recommended-delete member becomes a DUPLICATE_FILES candidate."""
    candidates = []
    for group in groups:
        if group.kind == DuplicateKind.EXACT:
            safety, reason = SafetyLevel.LIKELY_SAFE, "Exact duplicate"
        else:
            safety, reason = SafetyLevel.CAUTION, f"Similar file ({group.similarity:.0%} similar name)"
        for record in group.recommended_delete:
            candidates.append(make_candidate(
                record, CleanupCategory.DUPLICATE_FILES, safety,
                f"{reason} of {group.recommended_keep.path}"))
    return candidates


RecordRule = Callable[[FileRecord, RuleContext], Optional[CleanupCandidate]]

# Evaluation order matters only for ties in aggregation (first one wins).
# The duplicate pass runs between EMPTY and CACHE.
RULES_BEFORE_DUPLICATES: List[RecordRule] = [detect_temp_file, detect_empty]
RULES_AFTER_DUPLICATES: List[RecordRule] = [
    detect_cache_file,
    detect_log_file,
    detect_old_installer,
    detect_backup_file,
    detect_large_unused,
    detect_custom,
]
