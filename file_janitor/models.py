import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple, List, Dict


def split_extension(file_name: str) -> str:
    """Lowercased extension without the dot; dotfiles like '.bashrc' have none."""
    last_dot = file_name.rfind('.')
    if last_dot <= 0:
        return ""
    return file_name[last_dot + 1:].lower()


@dataclass(frozen=True)
class FileRecord:
    """
    Represents one file (or directory) found by a scan.
    Two records are equal only when their paths are equal.
    """
    path: str
    file_name: str = field(compare=False)
    extension: str = field(compare=False)     # lowercase, no dot
    size_bytes: int = field(compare=False)
    modified_at: Optional[datetime] = field(default=None, compare=False)
    original_location: str = field(default="", compare=False)

    # Directories are only reported when empty (entry_count == 0)
    is_dir: bool = field(default=False, compare=False)
    entry_count: Optional[int] = field(default=None, compare=False)

    @classmethod
    def from_path(cls,
                  path,
                  size_bytes: int,
                  modified_at: Optional[datetime] = None,
                  is_dir: bool = False,
                  entry_count: Optional[int] = None) -> "FileRecord":
        path = str(path)
        name = os.path.basename(path.rstrip("/\\")) or path
        return cls(
            path=path,
            file_name=name,
            extension="" if is_dir else split_extension(name),
            size_bytes=size_bytes,
            modified_at=modified_at,
            original_location=os.path.dirname(path.rstrip("/\\")),
            is_dir=is_dir,
            entry_count=entry_count,
        )


class DuplicateKind(Enum):
    EXACT = "exact"      # byte-identical content (same digest)
    SIMILAR = "similar"  # similar names, content not compared


@dataclass(frozen=True)
class DuplicateGroup:
    """
    Two or more related files plus the recommendation of which one to keep.
    Built once by the DuplicateEngine and never modified afterwards.
    """
    group_id: str
    kind: DuplicateKind
    members: Tuple[FileRecord, ...]
    similarity: float
    recommended_keep: FileRecord
    recommended_delete: Tuple[FileRecord, ...]
    total_size: int
    wasted_size: int
    digest: Optional[str] = None
    recommendation_reasons: Tuple[str, ...] = ()

    @property
    def file_count(self) -> int:
        return len(self.members)

    def summary(self) -> str:
        label = "Exact duplicates" if self.kind == DuplicateKind.EXACT else "Similar files"
        text = f"{label}: {self.file_count} files, {self.wasted_size} bytes reclaimable"
        if self.kind == DuplicateKind.SIMILAR:
            text += f" (similarity {self.similarity:.0%})"
        return text


class SafetyLevel(Enum):
    SAFE = 1
    LIKELY_SAFE = 2
    CAUTION = 3
    USER_DECISION = 4

    @property
    def priority(self) -> int:
        """Lower number = more confidently safe."""
        return self.value

    @property
    def display_name(self) -> str:
        return self.name.replace("_", " ").title()

    @property
    def auto_selectable(self) -> bool:
        return self in (SafetyLevel.SAFE, SafetyLevel.LIKELY_SAFE)


class CleanupCategory(Enum):
    TEMP_FILES = "temp_files"
    CACHE_FILES = "cache_files"
    EMPTY_FILES = "empty_files"
    DUPLICATE_FILES = "duplicate_files"
    LOG_FILES = "log_files"
    BACKUP_FILES = "backup_files"
    OLD_INSTALLERS = "old_installers"
    LARGE_UNUSED = "large_unused"
    OTHER = "other"


@dataclass(frozen=True)
class CleanupCandidate:
    """
    A file flagged for possible deletion.
    """
    path: str
    category: CleanupCategory
    safety_level: SafetyLevel
    reason: str
    confidence: float

    # Copied from the FileRecord for sorting and reporting
    size_bytes: int = 0
    file_name: str = ""
    is_dir: bool = False
    modified_at: Optional[datetime] = None

    @property
    def is_safe_to_delete(self) -> bool:
        return self.safety_level.auto_selectable


@dataclass(frozen=True)
class SkippedRecord:
    """A record the analysis could not use, and why."""
    path: Optional[str]
    reason: str   # 'invalid' | 'unreadable' | 'missing_metadata'
    detail: str = ""


@dataclass
class DuplicateSummary:
    exact_groups: int = 0
    similar_groups: int = 0
    file_count: int = 0
    reclaimable_bytes: int = 0
    top_groups: List[DuplicateGroup] = field(default_factory=list)


@dataclass
class CleanupSummary:
    candidate_count: int = 0
    total_bytes: int = 0
    safe_bytes: int = 0
    by_category: Dict[CleanupCategory, Tuple[int, int]] = field(default_factory=dict)  # (count, bytes)
    by_safety: Dict[SafetyLevel, Tuple[int, int]] = field(default_factory=dict)


@dataclass
class AnalysisResult:
    duplicate_groups: List[DuplicateGroup]
    candidates: List[CleanupCandidate]
    skipped: List[SkippedRecord]
    duplicate_summary: DuplicateSummary
    cleanup_summary: CleanupSummary
