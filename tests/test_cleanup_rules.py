from datetime import timedelta, timezone

import pytest

from file_janitor.cleanup import rules
from file_janitor.cleanup.rules import RuleContext, CustomRule, confidence_for, CATEGORY_PROFILES
from file_janitor.duplicates.engine import build_group
from file_janitor.exceptions import MissingMetadataError
from file_janitor.models import CleanupCategory as Cat, SafetyLevel as Safety, DuplicateKind

MB = 1024 * 1024


@pytest.fixture
def ctx(now):
    return RuleContext(now=now)


def test_rule_context_defaults_to_empty_read_only_rules(now):
    first = RuleContext(now=now)
    second = RuleContext(now=now)

    assert first.custom_rules == {}
    assert second.custom_rules == {}
    with pytest.raises(TypeError):
        first.custom_rules["iso"] = CustomRule(Cat.OTHER, Safety.USER_DECISION)


# --- Confidence table ---

@pytest.mark.parametrize(
    "category,safety,expected",
    [
        (Cat.TEMP_FILES, Safety.SAFE, 1.0),
        (Cat.CACHE_FILES, Safety.SAFE, 0.9),
        (Cat.EMPTY_FILES, Safety.LIKELY_SAFE, 0.9),
        (Cat.DUPLICATE_FILES, Safety.LIKELY_SAFE, 0.7),
        (Cat.LOG_FILES, Safety.CAUTION, 0.5),
        (Cat.BACKUP_FILES, Safety.CAUTION, 0.3),
        (Cat.OLD_INSTALLERS, Safety.USER_DECISION, 0.3),
        (Cat.LARGE_UNUSED, Safety.USER_DECISION, 0.1),
        (Cat.OTHER, Safety.USER_DECISION, 0.1),
    ],
)
def test_confidence_table(category, safety, expected):
    assert confidence_for(category, safety) == pytest.approx(expected)


def test_every_category_has_a_profile():
    assert set(CATEGORY_PROFILES) == set(Cat)
    priorities = [p.priority for p in CATEGORY_PROFILES.values()]
    assert sorted(priorities) == list(range(1, 10))


def test_confidence_always_in_range():
    for category in Cat:
        for safety in Safety:
            assert 0.0 <= confidence_for(category, safety) <= 1.0


# --- Temp files ---

@pytest.mark.parametrize(
    "path,safety",
    [
        ("/home/u/docs/file.tmp", Safety.SAFE),
        ("/home/u/docs/old_draft.BAK", Safety.SAFE),
        ("/home/u/Music/Thumbs.db", Safety.SAFE),
        ("/home/u/.DS_Store", Safety.SAFE),
        ("/home/u/AppData/Local/Temp/x.dat", Safety.SAFE),
        ("/var/tmp/build/output.o", Safety.SAFE),
        ("/home/u/docs/~$report.docx", Safety.LIKELY_SAFE),
        ("/home/u/docs/notes.txt~", Safety.LIKELY_SAFE),
        ("/home/u/docs/download.tmp.part", Safety.LIKELY_SAFE),
    ],
)
def test_temp_files(make_record, ctx, path, safety):
    c = rules.detect_temp_file(make_record(path), ctx)
    assert c is not None
    assert c.category == Cat.TEMP_FILES
    assert c.safety_level == safety


def test_not_temp(make_record, ctx):
    assert rules.detect_temp_file(make_record("/home/u/docs/report.docx"), ctx) is None
    assert rules.detect_temp_file(make_record("/home/u/tmp", is_dir=True, entry_count=0), ctx) is None


# --- Empty files and folders ---

def test_empty_file_and_folder(make_record, ctx):
    f = rules.detect_empty(make_record("/home/u/docs/blank.txt", size=0), ctx)
    assert (f.category, f.safety_level, f.confidence) == (Cat.EMPTY_FILES, Safety.SAFE, 1.0)

    d = rules.detect_empty(make_record("/home/u/old_stuff", size=0, is_dir=True, entry_count=0), ctx)
    assert (d.safety_level, d.confidence) == (Safety.LIKELY_SAFE, 0.9)
    assert d.is_dir

    assert rules.detect_empty(make_record("/home/u/full", size=0, is_dir=True, entry_count=3), ctx) is None
    assert rules.detect_empty(make_record("/home/u/docs/a.txt", size=1), ctx) is None


# --- Cache ---

def test_cache_files(make_record, ctx):
    in_dir = rules.detect_cache_file(make_record("/home/u/.cache/pip/wheel.whl"), ctx)
    assert (in_dir.category, in_dir.safety_level) == (Cat.CACHE_FILES, Safety.SAFE)

    gpu = rules.detect_cache_file(make_record("/home/u/app/GPUCache/data_1"), ctx)
    assert gpu.safety_level == Safety.SAFE

    by_name = rules.detect_cache_file(make_record("/home/u/docs/thumbcache_32.db"), ctx)
    assert (by_name.safety_level, by_name.confidence) == (Safety.LIKELY_SAFE, pytest.approx(0.8))

    assert rules.detect_cache_file(make_record("/home/u/docs/report.pdf"), ctx) is None


# --- Logs ---

@pytest.mark.parametrize(
    "name,matches",
    [
        ("app.log", True),
        ("error_report.txt", True),
        ("server-2024-01-05.txt", True),
        ("changelog.txt", True),
        ("catalog.txt", False),
        ("dialog_notes.txt", False),
        ("notes.txt", False),
        ("debug.csv", False),
    ],
)
def test_log_detection(make_record, ctx, name, matches):
    c = rules.detect_log_file(make_record(f"/home/u/logs/{name}", size=1024), ctx)
    assert (c is not None) == matches
    if c:
        assert c.category == Cat.LOG_FILES
        assert c.safety_level == Safety.CAUTION


def test_large_log_is_likely_safe(make_record, ctx):
    c = rules.detect_log_file(make_record("/var/log/app.log", size=60 * MB), ctx)
    assert c.safety_level == Safety.LIKELY_SAFE
    assert c.confidence == pytest.approx(0.7)


# --- Installers ---

def test_old_installers(make_record, ctx, now):
    old = now - timedelta(days=40)
    setup = rules.detect_old_installer(make_record("/home/u/Downloads/setup_tool.exe", modified_at=old), ctx)
    assert (setup.category, setup.safety_level) == (Cat.OLD_INSTALLERS, Safety.CAUTION)
    assert setup.confidence == pytest.approx(0.4)

    plain = rules.detect_old_installer(make_record("/home/u/Downloads/tool.dmg", modified_at=old), ctx)
    assert plain.safety_level == Safety.USER_DECISION

    recent = make_record("/home/u/Downloads/setup.msi", modified_at=now - timedelta(days=10))
    assert rules.detect_old_installer(recent, ctx) is None


def test_age_rules_need_modified_time(make_record, ctx):
    installer = make_record("/home/u/setup.exe", modified_at=None)
    with pytest.raises(MissingMetadataError):
        rules.detect_old_installer(installer, ctx)

    video = make_record("/home/u/videos/x.mov", size=200 * MB, modified_at=None)
    with pytest.raises(MissingMetadataError):
        rules.detect_large_unused(video, ctx)

    # Size and extension checks come first, so unrelated records never need a time
    assert rules.detect_old_installer(make_record("/home/u/notes.txt", modified_at=None), ctx) is None
    assert rules.detect_large_unused(make_record("/home/u/small.mov", modified_at=None), ctx) is None


# --- Backups ---

@pytest.mark.parametrize(
    "name",
    ["report.docx.bak", "Copy of report.docx", "report - Copy.docx", "db_backup.sql", "보고서 백업.hwp"],
)
def test_backup_files(make_record, ctx, name):
    c = rules.detect_backup_file(make_record(f"/home/u/docs/{name}"), ctx)
    assert c is not None
    assert (c.category, c.safety_level) == (Cat.BACKUP_FILES, Safety.CAUTION)


def test_not_backup(make_record, ctx):
    assert rules.detect_backup_file(make_record("/home/u/docs/report.docx"), ctx) is None


# --- Large unused ---

def test_large_unused(make_record, ctx, now):
    big_old = make_record("/home/u/videos/footage.mov", size=200 * MB, modified_at=now - timedelta(days=120))
    c = rules.detect_large_unused(big_old, ctx)
    assert (c.category, c.safety_level) == (Cat.LARGE_UNUSED, Safety.USER_DECISION)
    assert c.confidence == pytest.approx(0.1)

    big_new = make_record("/home/u/videos/new.mov", size=200 * MB, modified_at=now - timedelta(days=10))
    assert rules.detect_large_unused(big_new, ctx) is None

    small_old = make_record("/home/u/videos/clip.mov", size=MB, modified_at=now - timedelta(days=400))
    assert rules.detect_large_unused(small_old, ctx) is None


def test_age_check_mixes_aware_and_naive(make_record, now):
    aware = now.replace(tzinfo=timezone.utc) - timedelta(days=200)
    record = make_record("/home/u/videos/footage.mov", size=200 * MB, modified_at=aware)
    assert rules.is_older_than(record, now, 90)
    assert not rules.is_older_than(record, now, 365)


# --- Custom rules ---

def test_custom_rule(make_record, now):
    ctx = RuleContext(now=now, custom_rules={"iso": CustomRule(Cat.OTHER, Safety.USER_DECISION, "Disk image")})
    c = rules.detect_custom(make_record("/home/u/images/ubuntu.iso"), ctx)
    assert (c.category, c.safety_level, c.reason) == (Cat.OTHER, Safety.USER_DECISION, "Disk image")
    assert c.confidence == pytest.approx(0.1)
    assert rules.detect_custom(make_record("/home/u/images/ubuntu.img"), ctx) is None


# --- Duplicates ---

def test_duplicate_candidates(make_record, now):
    keep = make_record("/home/u/docs/a.bin", modified_at=now)
    extra = make_record("/home/u/old/a.bin", modified_at=now - timedelta(days=3))
    exact = build_group([keep, extra], DuplicateKind.EXACT, 1.0)
    similar = build_group([make_record("/x/plan_v1.txt", modified_at=now), make_record("/x/plan_v2.txt")],
                          DuplicateKind.SIMILAR, 0.9)

    found = rules.duplicate_candidates([exact, similar])

    assert [c.path for c in found] == [extra.path, "/x/plan_v2.txt"]
    assert found[0].safety_level == Safety.LIKELY_SAFE
    assert found[0].confidence == pytest.approx(0.7)
    assert found[1].safety_level == Safety.CAUTION
    assert all(c.category == Cat.DUPLICATE_FILES for c in found)
