import hashlib
import logging
import os
from collections import defaultdict, deque
from concurrent.futures import ThreadPoolExecutor, Future
from itertools import combinations, islice
from typing import List, Dict, Optional, Callable, Iterable, Iterator, Tuple, Deque, Any

from tqdm import tqdm

from .. import config
from ..models import FileRecord, DuplicateGroup, DuplicateKind, SkippedRecord
from ..scanning.hasher import ContentHasher, HashResult
from .ranking import choose_keeper
from .similarity import name_similarity

StoppedFlag = Optional[Callable[[], bool]]
Pair = Tuple[FileRecord, FileRecord]


def _group_id(kind: DuplicateKind, members: Iterable[FileRecord]) -> str:
    h = hashlib.sha1("\n".join(m.path for m in members).encode("utf-8"))
    return f"{kind.value}-{h.hexdigest()[:16]}"


def build_group(members: Iterable[FileRecord],
                kind: DuplicateKind,
                similarity: float,
                digest: Optional[str] = None) -> DuplicateGroup:
    """Orders members by path, picks the keeper and fills in the size statistics."""
    ordered = tuple(sorted(members, key=lambda r: r.path))
    keeper, reasons = choose_keeper(ordered)
    total = sum(m.size_bytes for m in ordered)
    return DuplicateGroup(
        group_id=_group_id(kind, ordered),
        kind=kind,
        members=ordered,
        similarity=similarity,
        recommended_keep=keeper,
        recommended_delete=tuple(m for m in ordered if m.path != keeper.path),
        total_size=total,
        wasted_size=total - keeper.size_bytes,
        digest=digest,
        recommendation_reasons=tuple(reasons),
    )


class DuplicateEngine:
    """
    Finds exact duplicates (same size, same content digest) and similar files
    (same extension, similar names) in a list of FileRecords.

    Pipeline:
      1. Bucket by size; zero-byte files and directories never take part.
      2. Hash every file in a bucket of 2+; equal digests form EXACT groups.
      3. Score name similarity for every same-extension pair of the files
         left over; pairs at or above the threshold form SIMILAR groups.
      4. Rank the members of each group to recommend a keeper.

    Hashing and pair scoring run on a thread pool. Results are consumed in
    submission order, so the output does not depend on thread timing.
    """

    def __init__(self,
                 hasher: Optional[ContentHasher] = None,
                 max_workers: Optional[int] = None,
                 similarity_threshold: float = config.SIMILARITY_THRESHOLD,
                 grouping: str = config.GROUPING_PAIRWISE,
                 show_progress: bool = False):
        if not 0.0 <= similarity_threshold <= 1.0:
            raise ValueError(f"similarity_threshold must be within [0, 1], got {similarity_threshold}")
        if grouping not in config.GROUPING_MODES:
            raise ValueError(f"Unknown grouping mode: {grouping!r}")

        self.hasher = hasher or ContentHasher()
        self.max_workers = max_workers
        self.similarity_threshold = similarity_threshold
        self.grouping = grouping
        self.show_progress = show_progress

    def find_duplicates(self,
                        records: List[FileRecord],
                        stopped_flag: StoppedFlag = None,
                        skipped: Optional[List[SkippedRecord]] = None) -> List[DuplicateGroup]:
        """
        Returns EXACT groups (largest waste first) followed by SIMILAR groups
        (most similar first). Unreadable files are logged, added to `skipped`
        when given, and left out. If `stopped_flag` fires, the groups finished
        so far are returned.
        """
        candidates = [r for r in records if not r.is_dir and r.size_bytes > 0]
        logging.info(f"Duplicate analysis: {len(candidates)} of {len(records)} records eligible")

        exact = self._find_exact(candidates, stopped_flag, skipped)
        grouped_paths = {m.path for g in exact for m in g.members}
        remaining = [r for r in candidates if r.path not in grouped_paths]

        similar = []
        if not self._stopped(stopped_flag):
            similar = self._find_similar(remaining, stopped_flag)

        if self._stopped(stopped_flag):
            logging.warning("Duplicate analysis stopped; returning the groups completed so far")

        exact.sort(key=lambda g: (-g.wasted_size, g.group_id))
        similar.sort(key=lambda g: (-g.similarity, [m.path for m in g.members]))

        logging.info(f"Found {len(exact)} exact and {len(similar)} similar groups")
        return exact + similar

    # --- Exact pass ---

    def _find_exact(self,
                    records: List[FileRecord],
                    stopped_flag: StoppedFlag,
                    skipped: Optional[List[SkippedRecord]]) -> List[DuplicateGroup]:
        buckets: Dict[int, List[FileRecord]] = defaultdict(list)
        for r in records:
            buckets[r.size_bytes].append(r)

        # Only sizes shared by 2+ files need reading
        to_hash = [r
                   for size in sorted(buckets)
                   if len(buckets[size]) > 1
                   for r in sorted(buckets[size], key=lambda r: r.path)]
        if not to_hash:
            return []

        logging.info(f"Hashing {len(to_hash)} files in {sum(1 for b in buckets.values() if len(b) > 1)} size buckets")

        digests: Dict[Tuple[int, str], List[FileRecord]] = defaultdict(list)
        for record, result in self._hash_all(to_hash, stopped_flag):
            if result is None:
                break
            if result.ok:
                digests[(record.size_bytes, result.value)].append(record)
            elif not result.cancelled:
                logging.warning(f"Skipping unreadable file {record.path}: {result.error}")
                if skipped is not None:
                    skipped.append(SkippedRecord(record.path, "unreadable", result.error or ""))

        groups = []
        for (_, digest), members in digests.items():
            if len(members) > 1:
                groups.append(build_group(members, DuplicateKind.EXACT, 1.0, digest=digest))
        return groups

    def _hash_all(self, records: List[FileRecord], stopped_flag: StoppedFlag):
        """Yields (record, HashResult) in input order; result is None once stopped."""
        def work(record: FileRecord) -> Optional[HashResult]:
            if self._stopped(stopped_flag):
                return None
            return self.hasher.hash(record.path, stopped_flag)

        results = tqdm(self._ordered_map(work, records), total=len(records),
                       desc="Hashing", disable=not self.show_progress)
        for record, result in zip(records, results):
            yield record, result

    # --- Similar pass ---

    def _find_similar(self, records: List[FileRecord], stopped_flag: StoppedFlag) -> List[DuplicateGroup]:
        by_ext: Dict[str, List[FileRecord]] = defaultdict(list)
        for r in records:
            by_ext[r.extension].append(r)

        pairs_total = 0
        for ext in by_ext:
            by_ext[ext].sort(key=lambda r: r.path)
            n = len(by_ext[ext])
            pairs_total += n * (n - 1) // 2
        if pairs_total == 0:
            return []

        logging.info(f"Comparing names: {pairs_total} pairs across {len(by_ext)} extensions")

        matches: List[Tuple[FileRecord, FileRecord, float]] = []
        for pair, score in self._score_pairs(by_ext, pairs_total, stopped_flag):
            if score is None:
                break
            if score >= self.similarity_threshold:
                matches.append((pair[0], pair[1], score))

        if self.grouping == config.GROUPING_COMPONENTS:
            return self._components(matches)
        return self._pairwise(matches)

    def _score_pairs(self, by_ext: Dict[str, List[FileRecord]], total: int, stopped_flag: StoppedFlag):
        """Yields ((a, b), similarity) in a fixed order; similarity is None once stopped."""
        def all_pairs():
            for ext in sorted(by_ext):
                yield from combinations(by_ext[ext], 2)

        def chunks():
            it = all_pairs()
            while chunk := list(islice(it, config.SIMILARITY_PAIR_CHUNK)):
                yield chunk

        def work(chunk: List[Pair]) -> List[Tuple[Pair, Optional[float]]]:
            scored = []
            for a, b in chunk:
                if self._stopped(stopped_flag):
                    scored.append(((a, b), None))
                    break
                scored.append(((a, b), name_similarity(a.file_name, b.file_name)))
            return scored

        with tqdm(total=total, desc="Comparing names", disable=not self.show_progress) as bar:
            for scored in self._ordered_map(work, chunks()):
                bar.update(len(scored))
                yield from scored
                if scored and scored[-1][1] is None:
                    return

    def _pairwise(self, matches: List[Tuple[FileRecord, FileRecord, float]]) -> List[DuplicateGroup]:
        """One group per matching pair; overlapping pairs are not merged."""
        groups = []
        covered = set()
        for a, b, score in matches:
            key = frozenset((a.path, b.path))
            if key in covered:
                continue
            covered.add(key)
            groups.append(build_group((a, b), DuplicateKind.SIMILAR, score))
        return groups

    def _components(self, matches: List[Tuple[FileRecord, FileRecord, float]]) -> List[DuplicateGroup]:
        """Connected components of the similarity graph; similarity = weakest edge."""
        parent: Dict[str, str] = {}
        records: Dict[str, FileRecord] = {}

        def find(p: str) -> str:
            while parent[p] != p:
                parent[p] = parent[parent[p]]
                p = parent[p]
            return p

        for a, b, _ in matches:
            for r in (a, b):
                records.setdefault(r.path, r)
                parent.setdefault(r.path, r.path)
            root_a, root_b = find(a.path), find(b.path)
            if root_a != root_b:
                parent[max(root_a, root_b)] = min(root_a, root_b)

        members: Dict[str, List[FileRecord]] = defaultdict(list)
        for path in sorted(records):
            members[find(path)].append(records[path])
        weakest: Dict[str, float] = {}
        for a, _, score in matches:
            root = find(a.path)
            weakest[root] = min(score, weakest.get(root, 1.0))

        return [build_group(group, DuplicateKind.SIMILAR, weakest[root])
                for root, group in members.items()]

    def _ordered_map(self, fn: Callable[[Any], Any], items: Iterable[Any]) -> Iterator[Any]:
        """
        Like map(), but on the worker pool with a bounded number of tasks in
        flight. Results come back in input order.
        """
        if self.max_workers is not None and self.max_workers <= 1:
            # Sequential mode
            yield from map(fn, items)
            return

        workers = self.max_workers or min(32, (os.cpu_count() or 1) + 4)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            window = workers * 2
            pending: Deque[Future] = deque()
            for item in items:
                pending.append(pool.submit(fn, item))
                if len(pending) >= window:
                    yield pending.popleft().result()
            while pending:
                yield pending.popleft().result()

    @staticmethod
    def _stopped(stopped_flag: StoppedFlag) -> bool:
        return bool(stopped_flag and stopped_flag())
