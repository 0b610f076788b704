import logging
from datetime import datetime
from typing import List, Optional, Mapping, Callable

from .cleanup.classifier import CleanupClassifier
from .cleanup.rules import CustomRule
from .duplicates.engine import DuplicateEngine
from .exceptions import InvalidRecordError, AnalysisCancelled
from .models import FileRecord, DuplicateGroup, CleanupCandidate, SkippedRecord, AnalysisResult
from .reporting import summarize_duplicates, summarize_candidates


def _check_record(record: FileRecord, seen: set):
    if not record.path:
        raise InvalidRecordError("record has no path")
    if record.size_bytes is None or record.size_bytes < 0:
        raise InvalidRecordError(f"negative size {record.size_bytes}")
    if record.path in seen:
        raise InvalidRecordError("duplicate path")


def validate_records(records: List[FileRecord], skipped: Optional[List[SkippedRecord]] = None) -> List[FileRecord]:
    """Drops unusable records; the first record for a path wins."""
    valid = []
    seen = set()
    dropped = 0
    for record in records:
        try:
            _check_record(record, seen)
        except InvalidRecordError as e:
            dropped += 1
            logging.debug(f"Invalid record {record.path!r}: {e}")
            if skipped is not None:
                skipped.append(SkippedRecord(record.path or None, "invalid", str(e)))
            continue
        seen.add(record.path)
        valid.append(record)

    if dropped:
        logging.warning(f"Dropped {dropped} invalid records")
    return valid


def find_duplicates(records: List[FileRecord],
                    stopped_flag: Optional[Callable[[], bool]] = None,
                    skipped: Optional[List[SkippedRecord]] = None,
                    **options) -> List[DuplicateGroup]:
    """Validates the records, then runs a DuplicateEngine built from `options`."""
    records = validate_records(records, skipped)
    return DuplicateEngine(**options).find_duplicates(records, stopped_flag, skipped)


def find_cleanup_candidates(records: List[FileRecord],
                            custom_rules: Optional[Mapping[str, CustomRule]] = None,
                            now: Optional[datetime] = None,
                            stopped_flag: Optional[Callable[[], bool]] = None,
                            skipped: Optional[List[SkippedRecord]] = None,
                            **options) -> List[CleanupCandidate]:
    records = validate_records(records, skipped)
    engine = DuplicateEngine(**options)
    classifier = CleanupClassifier(
        duplicate_groups=lambda recs: engine.find_duplicates(recs, stopped_flag, skipped),
        custom_rules=custom_rules,
        now=now,
    )
    return classifier.classify(records, stopped_flag, skipped)


class CleanupAnalyzer:
    """
    Runs duplicate detection and cleanup classification over one record list,
    computing duplicates only once.
    """

    def __init__(self,
                 engine: Optional[DuplicateEngine] = None,
                 custom_rules: Optional[Mapping[str, CustomRule]] = None,
                 now: Optional[datetime] = None,
                 stopped_flag: Optional[Callable[[], bool]] = None):
        self.engine = engine or DuplicateEngine()
        self.custom_rules = custom_rules
        self.now = now
        self.stopped_flag = stopped_flag

    def analyze(self, records: List[FileRecord]) -> AnalysisResult:
        skipped: List[SkippedRecord] = []
        records = validate_records(records, skipped)
        logging.info(f"Analyzing {len(records)} records")

        groups = self.engine.find_duplicates(records, self.stopped_flag, skipped)
        self._check_stopped("duplicate detection")

        classifier = CleanupClassifier(duplicate_groups=groups, custom_rules=self.custom_rules, now=self.now)
        candidates = classifier.classify(records, self.stopped_flag, skipped)
        self._check_stopped("cleanup classification")

        return AnalysisResult(
            duplicate_groups=groups,
            candidates=candidates,
            skipped=skipped,
            duplicate_summary=summarize_duplicates(groups),
            cleanup_summary=summarize_candidates(candidates),
        )

    def _check_stopped(self, stage: str):
        if self.stopped_flag and self.stopped_flag():
            logging.warning(f"Analysis cancelled during {stage}")
            raise AnalysisCancelled(f"Analysis cancelled during {stage}")


def analyze(records: List[FileRecord],
            custom_rules: Optional[Mapping[str, CustomRule]] = None,
            now: Optional[datetime] = None,
            stopped_flag: Optional[Callable[[], bool]] = None,
            **options) -> AnalysisResult:
    """Runs a CleanupAnalyzer with a DuplicateEngine built from `options`."""
    analyzer = CleanupAnalyzer(DuplicateEngine(**options), custom_rules, now, stopped_flag)
    return analyzer.analyze(records)
