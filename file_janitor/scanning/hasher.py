import hashlib
import logging
from pathlib import Path
from dataclasses import dataclass
from typing import Optional, Callable

from .. import config
from ..exceptions import FileHashError, AnalysisCancelled


@dataclass
class HashResult:
    value: Optional[str]          # hex digest, None when the file could not be read
    error: Optional[str] = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.value is not None


class ContentHasher:
    def __init__(self, algorithm: str = config.HASH_ALGORITHM, chunk_size: int = config.HASH_CHUNK_SIZE):
        # Fail early on a typo rather than on the first file
        hashlib.new(algorithm)
        self.algorithm = algorithm
        self.chunk_size = chunk_size

    def hash(self, path, stopped_flag: Optional[Callable[[], bool]] = None) -> HashResult:
        """
        Streams the file through the digest in fixed-size chunks.

        Never raises for I/O problems: an unreadable file comes back as a
        HashResult with `value=None` and the error text, so the caller can
        leave it out of the comparison. `stopped_flag` is polled between
        chunks so a long read can be abandoned.
        """
        try:
            return HashResult(self._digest(Path(path), stopped_flag))
        except AnalysisCancelled as e:
            return HashResult(None, error=str(e), cancelled=True)
        except OSError as e:
            logging.debug(f"Hash failed for {path}: {e}")
            return HashResult(None, error=str(e))

    def hash_or_raise(self, path) -> str:
        """Same digest as hash(), but raises FileHashError on failure."""
        result = self.hash(path)
        if not result.ok:
            raise FileHashError(f"Cannot hash {path}: {result.error}")
        return result.value

    def _digest(self, path: Path, stopped_flag: Optional[Callable[[], bool]]) -> str:
        h = hashlib.new(self.algorithm)
        with open(path, 'rb') as f:
            while chunk := f.read(self.chunk_size):
                if stopped_flag and stopped_flag():
                    raise AnalysisCancelled(f"Hashing of {path} cancelled")
                h.update(chunk)
        return h.hexdigest()
