"""
Custom exception hierarchy for the file janitor.

The analysis core recovers from most of these locally (see SkippedRecord in
models.py); they are raised at the edges where a caller asks for them.
"""


class FileJanitorError(Exception):
    """Base exception for all file janitor errors."""
    pass


class FileHashError(FileJanitorError):
    """Raised when a file cannot be opened or read for hashing."""
    pass


class MissingMetadataError(FileJanitorError):
    """Raised when a record lacks a field a rule needs (e.g. modification time)."""
    pass


class InvalidRecordError(FileJanitorError):
    """Raised when a record has no path or a negative size."""
    pass


class AnalysisCancelled(FileJanitorError):
    """Raised when a run is stopped through its stopped_flag."""
    pass


class RuleConfigError(FileJanitorError):
    """Raised when a custom rules file cannot be parsed."""
    pass
