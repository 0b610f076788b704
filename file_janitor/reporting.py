import csv
import logging
from collections import defaultdict
from pathlib import Path
from typing import Iterable, List, Dict

from .cleanup.rules import CATEGORY_PROFILES
from .models import (
    CleanupCandidate, DuplicateGroup, DuplicateKind, SafetyLevel,
    DuplicateSummary, CleanupSummary, AnalysisResult,
)


def aggregate_candidates(raw: Iterable[CleanupCandidate]) -> List[CleanupCandidate]:
    """
    Merges candidates so each path appears once and sorts the result.

    For a path flagged by several rules the candidate with the lowest safety
    priority is kept; on equal priority the first one seen stays. Output
    order: category priority, safety priority, size (largest first), path.
    """
    by_path: Dict[str, CleanupCandidate] = {}
    for c in raw:
        current = by_path.get(c.path)
        if current is None or c.safety_level.priority < current.safety_level.priority:
            by_path[c.path] = c

    return sorted(by_path.values(), key=lambda c: (
        CATEGORY_PROFILES[c.category].priority,
        c.safety_level.priority,
        -c.size_bytes,
        c.path,
    ))


def summarize_duplicates(groups: List[DuplicateGroup], top: int = 5) -> DuplicateSummary:
    summary = DuplicateSummary()
    for g in groups:
        if g.kind == DuplicateKind.EXACT:
            summary.exact_groups += 1
        else:
            summary.similar_groups += 1
        summary.file_count += g.file_count
        summary.reclaimable_bytes += g.wasted_size
    summary.top_groups = sorted(groups, key=lambda g: (-g.wasted_size, g.group_id))[:top]
    return summary


def summarize_candidates(candidates: List[CleanupCandidate]) -> CleanupSummary:
    counts = defaultdict(lambda: [0, 0])
    safety_counts = defaultdict(lambda: [0, 0])
    summary = CleanupSummary()

    for c in candidates:
        summary.candidate_count += 1
        summary.total_bytes += c.size_bytes
        if c.safety_level == SafetyLevel.SAFE:
            summary.safe_bytes += c.size_bytes
        counts[c.category][0] += 1
        counts[c.category][1] += c.size_bytes
        safety_counts[c.safety_level][0] += 1
        safety_counts[c.safety_level][1] += c.size_bytes

    summary.by_category = {k: tuple(v) for k, v in counts.items()}
    summary.by_safety = {k: tuple(v) for k, v in safety_counts.items()}
    return summary


def format_size(n: int) -> str:
    size = float(n)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{int(size)} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024


class ReportGenerator:
    """Writes an AnalysisResult to CSV: one row per cleanup candidate, one per duplicate member."""

    HEADERS = [
        "Section",
        "Path",
        "Category / Group",
        "Safety / Role",
        "Size (bytes)",
        "Confidence / Similarity",
        "Reason",
    ]

    def write_csv(self, result: AnalysisResult, output_csv) -> int:
        output_csv = Path(output_csv)
        logging.info(f"Writing report -> {output_csv}")

        rows = 0
        with open(output_csv, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(self.HEADERS)

            for c in result.candidates:
                writer.writerow([
                    "cleanup",
                    c.path,
                    CATEGORY_PROFILES[c.category].display_name,
                    c.safety_level.display_name,
                    c.size_bytes,
                    f"{c.confidence:.2f}",
                    c.reason,
                ])
                rows += 1

            for g in result.duplicate_groups:
                for m in g.members:
                    keep = m.path == g.recommended_keep.path
                    writer.writerow([
                        f"duplicate:{g.kind.value}",
                        m.path,
                        g.group_id,
                        "keep" if keep else "delete",
                        m.size_bytes,
                        f"{g.similarity:.2f}",
                        ", ".join(g.recommendation_reasons) if keep else "",
                    ])
                    rows += 1

        logging.info(f"Report complete. {rows} rows written.")
        return rows
