import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict

from . import config
from .cleanup.rules import CustomRule, CATEGORY_PROFILES
from .core import CleanupAnalyzer
from .duplicates.engine import DuplicateEngine
from .exceptions import RuleConfigError
from .models import CleanupCategory, SafetyLevel, AnalysisResult
from .reporting import ReportGenerator, format_size
from .scanning.filesystem import DiskScanner


def setup_logging(verbose: bool):
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="File Janitor: find duplicates and cleanup candidates")

    p.add_argument("src", type=Path, help="Directory to analyze")

    p.add_argument("--workers", type=int, default=None, help="Worker threads for hashing and name comparison (1 = sequential)")
    p.add_argument("--report-csv", type=Path, default=None, help="Write a CSV report to this path")
    p.add_argument("--rules-file", type=Path, default=None, help="JSON file with custom extension rules")
    p.add_argument("--grouping", choices=config.GROUPING_MODES, default=config.GROUPING_PAIRWISE,
                   help="How similar-name matches are grouped")
    p.add_argument("--threshold", type=float, default=config.SIMILARITY_THRESHOLD, help="Name similarity threshold (0-1)")
    p.add_argument("--skip-dirs-file", type=Path, default=None, help="File containing paths to ignore")
    p.add_argument("--no-progress", action="store_true", help="Disable progress bars")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    return p.parse_args(argv)


def load_skip_dirs(skip_file: Path) -> set:
    if not skip_file or not skip_file.exists():
        return set()

    skips = set()
    with skip_file.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#"):
                skips.add(Path(line))
    return skips


def load_rules_file(rules_file: Path) -> Dict[str, CustomRule]:
    """
    Reads `{ext: {"category": NAME, "safety": NAME, "reason": TEXT}}`.
    Category and safety are enum member names, case-insensitive.
    """
    try:
        with rules_file.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise RuleConfigError(f"Cannot read rules file {rules_file}: {e}") from e

    if not isinstance(data, dict):
        raise RuleConfigError("Rules file must contain a JSON object")

    rules = {}
    for ext, entry in data.items():
        if not isinstance(entry, dict):
            raise RuleConfigError(f"Rule for {ext!r} must be an object")
        try:
            category = CleanupCategory[str(entry["category"]).upper()]
            safety = SafetyLevel[str(entry["safety"]).upper()]
        except KeyError as e:
            raise RuleConfigError(f"Rule for {ext!r}: unknown or missing value {e}") from e
        rules[ext.lower().lstrip(".")] = CustomRule(category, safety, entry.get("reason", "Custom rule"))

    logging.info(f"Loaded {len(rules)} custom rules from {rules_file}")
    return rules


def print_summary(result: AnalysisResult):
    dup = result.duplicate_summary
    clean = result.cleanup_summary

    print()
    print(f"Duplicates: {dup.exact_groups} exact groups, {dup.similar_groups} similar groups, "
          f"{dup.file_count} files, {format_size(dup.reclaimable_bytes)} reclaimable")
    for g in dup.top_groups:
        print(f"  {g.summary()}")
        print(f"    keep: {g.recommended_keep.path}")

    print(f"Cleanup candidates: {clean.candidate_count}, {format_size(clean.total_bytes)} total, "
          f"{format_size(clean.safe_bytes)} safe")
    for category, (count, size) in sorted(clean.by_category.items(), key=lambda kv: CATEGORY_PROFILES[kv[0]].priority):
        print(f"  {CATEGORY_PROFILES[category].display_name}: {count} ({format_size(size)})")
    for level, (count, size) in sorted(clean.by_safety.items(), key=lambda kv: kv[0].priority):
        print(f"  [{level.display_name}] {count} ({format_size(size)})")

    if result.skipped:
        print(f"Skipped: {len(result.skipped)} records")


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.verbose)

    src_root = args.src.resolve()
    logging.info("=== File Janitor Started ===")
    logging.info(f"Source: {src_root}")

    try:
        custom_rules = load_rules_file(args.rules_file) if args.rules_file else {}
        skip_dirs = load_skip_dirs(args.skip_dirs_file) if args.skip_dirs_file else set()

        records = list(DiskScanner().scan(src_root, skip_dirs))

        engine = DuplicateEngine(
            max_workers=args.workers,
            similarity_threshold=args.threshold,
            grouping=args.grouping,
            show_progress=not args.no_progress,
        )
        result = CleanupAnalyzer(engine=engine, custom_rules=custom_rules).analyze(records)

        print_summary(result)
        if args.report_csv:
            ReportGenerator().write_csv(result, args.report_csv)
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        sys.exit(1)
    except Exception:
        logging.exception("Fatal error during analysis.")
        sys.exit(1)

    logging.info("=== File Janitor Finished ===")
    return 0


if __name__ == "__main__":
    main()
