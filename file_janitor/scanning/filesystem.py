import os
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterator, Set, Optional

from ..models import FileRecord


class DiskScanner:
    """Turns a directory tree into FileRecords for the analysis."""

    def scan(self, root: Path, skip_dirs: Optional[Set[Path]] = None) -> Iterator[FileRecord]:
        """
        Yields a record for every regular file under root, plus one
        `is_dir=True, entry_count=0` record for each empty directory.
        Order is stable: entries sorted by name, depth-first.
        """
        root = Path(root)
        if not root.is_dir():
            raise FileNotFoundError(f"Source path {root} does not exist or is not a directory.")

        skip_dirs = {Path(d) for d in (skip_dirs or set())}
        count = 0
        for record in self._walk(root, skip_dirs):
            count += 1
            if count % 1000 == 0:
                logging.info(f"Scanned {count} entries...")
            yield record
        logging.info(f"Scan complete. {count} records from {root}")

    def _walk(self, root: Path, skip_dirs: Set[Path]) -> Iterator[FileRecord]:
        stack = [root]
        while stack:
            current = stack.pop()
            if skip_dirs and any(sd == current or sd in current.parents for sd in skip_dirs):
                logging.debug(f"Skipping {current}")
                continue

            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError as e:
                logging.warning(f"Cannot read directory {current}: {e}")
                continue

            if not entries and current != root:
                record = self._record(current, is_dir=True)
                if record:
                    yield record
                continue

            # Sort for stable traversal order
            entries.sort(key=lambda e: e.name.lower())

            dirs = []
            for e in entries:
                if e.is_dir(follow_symlinks=False):
                    dirs.append(Path(e.path))
                elif e.is_file(follow_symlinks=False):
                    record = self._record(Path(e.path))
                    if record:
                        yield record

            # Reversed so A is processed before Z
            for d in reversed(dirs):
                stack.append(d)

    def _record(self, path: Path, is_dir: bool = False) -> Optional[FileRecord]:
        try:
            st = path.stat()
        except OSError as e:
            logging.warning(f"Failed to stat {path}: {e}")
            return None
        return FileRecord.from_path(
            path,
            size_bytes=0 if is_dir else st.st_size,
            modified_at=datetime.fromtimestamp(st.st_mtime),
            is_dir=is_dir,
            entry_count=0 if is_dir else None,
        )
