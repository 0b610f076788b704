import logging
from datetime import datetime
from types import MappingProxyType
from typing import List, Optional, Callable, Mapping, Union, Sequence

from ..exceptions import MissingMetadataError
from ..models import FileRecord, CleanupCandidate, DuplicateGroup, SkippedRecord
from ..reporting import aggregate_candidates
from .rules import (
    RuleContext, CustomRule, duplicate_candidates,
    RULES_BEFORE_DUPLICATES, RULES_AFTER_DUPLICATES,
)

DuplicateSource = Union[Sequence[DuplicateGroup], Callable[[List[FileRecord]], List[DuplicateGroup]], None]


class CleanupClassifier:
    """
    Runs every detection rule over a list of records and merges the results
    so each path appears at most once.

    Duplicate groups come from the caller, either as a finished list or as a
    callable that receives the records. With neither, the duplicate pass is
    skipped.
    """

    def __init__(self,
                 duplicate_groups: DuplicateSource = None,
                 custom_rules: Optional[Mapping[str, CustomRule]] = None,
                 now: Optional[datetime] = None):
        self.duplicate_groups = duplicate_groups
        self.custom_rules = MappingProxyType(
            {ext.lower().lstrip('.'): rule for ext, rule in (custom_rules or {}).items()})
        self.now = now

    def classify(self,
                 records: List[FileRecord],
                 stopped_flag: Optional[Callable[[], bool]] = None,
                 skipped: Optional[List[SkippedRecord]] = None) -> List[CleanupCandidate]:
        """
        Returns one candidate per flagged path, ordered for display.

        A rule that cannot evaluate a record (no modification time) does not
        match it. Such paths are added to `skipped` once, with reason
        "missing_metadata", when a list is given.
        """
        ctx = RuleContext(now=self.now or datetime.now(), custom_rules=self.custom_rules)
        raw: List[CleanupCandidate] = []
        missing = _MissingMetadata(skipped)

        raw.extend(self._run(RULES_BEFORE_DUPLICATES, records, ctx, stopped_flag, missing))
        if not self._stopped(stopped_flag):
            raw.extend(duplicate_candidates(self._groups(records)))
        if not self._stopped(stopped_flag):
            raw.extend(self._run(RULES_AFTER_DUPLICATES, records, ctx, stopped_flag, missing))

        candidates = aggregate_candidates(raw)
        logging.info(f"Cleanup rules produced {len(raw)} raw candidates, {len(candidates)} after merging")
        return candidates

    def _groups(self, records: List[FileRecord]) -> List[DuplicateGroup]:
        if self.duplicate_groups is None:
            return []
        if callable(self.duplicate_groups):
            return list(self.duplicate_groups(records))
        return list(self.duplicate_groups)

    def _run(self, rules, records, ctx, stopped_flag, missing) -> List[CleanupCandidate]:
        found = []
        for rule in rules:
            for record in records:
                if self._stopped(stopped_flag):
                    return found
                try:
                    candidate = rule(record, ctx)
                except MissingMetadataError as e:
                    logging.debug(f"Rule {rule.__name__} cannot evaluate {record.path}: {e}")
                    missing.note(record, e)
                    continue
                if candidate is not None:
                    found.append(candidate)
            logging.debug(f"Rule {rule.__name__}: {len(found)} candidates so far")
        return found

    @staticmethod
    def _stopped(stopped_flag) -> bool:
        return bool(stopped_flag and stopped_flag())


class _MissingMetadata:
    """Collects each path once into the caller's skipped list."""

    def __init__(self, skipped: Optional[List[SkippedRecord]]):
        self.skipped = skipped
        self.paths = set()

    def note(self, record: FileRecord, error: MissingMetadataError):
        if self.skipped is None or record.path in self.paths:
            return
        self.paths.add(record.path)
        self.skipped.append(SkippedRecord(record.path, "missing_metadata", str(error)))
