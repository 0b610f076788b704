import pytest

from file_janitor.duplicates.similarity import normalize_name, levenshtein_distance, name_similarity


@pytest.mark.parametrize(
    "name,expected",
    [
        ("Report_Final (2).docx", "report final 2"),
        ("photo.JPG", "photo"),
        ("archive.tar.gz", "archive tar"),
        (".bashrc", "bashrc"),
        ("no_extension", "no extension"),
        ("보고서_최종.hwp", "보고서 최종"),
        ("___.txt", ""),
    ],
)
def test_normalize_name(name, expected):
    assert normalize_name(name) == expected


def test_levenshtein_distance():
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_distance("", "abc") == 3
    assert levenshtein_distance("abc", "") == 3
    assert levenshtein_distance("same", "same") == 0
    assert levenshtein_distance("flaw", "lawn") == 2


def test_levenshtein_distance_counts_characters_not_bytes():
    assert levenshtein_distance("보고서", "보고서 복사본") == 4
    assert levenshtein_distance("a" * 300, "a" * 298 + "bc") == 2
    assert levenshtein_distance("x" * 500, "") == 500


def test_similarity_identity_and_symmetry():
    assert name_similarity("notes.txt", "notes.txt") == 1.0
    assert name_similarity("Notes.TXT", "notes.txt") == 1.0
    a, b = "quarterly_report.txt", "quarterly_report_copy.txt"
    assert name_similarity(a, b) == name_similarity(b, a)


def test_similarity_formula():
    # "quarterly report" vs "quarterly report copy": 5 inserts over 21 chars
    assert name_similarity("quarterly_report.txt", "quarterly_report_copy.txt") == pytest.approx(1 - 5 / 21)
    # "report" vs "report copy": 5 inserts over 11 chars
    assert name_similarity("report.txt", "report_copy.txt") == pytest.approx(1 - 5 / 11)


def test_similarity_of_empty_names_is_zero():
    assert name_similarity("___.txt", "--.txt") == 0.0


def test_similarity_in_range():
    for a, b in [("a.txt", "zzzzzz.txt"), ("abc", "abd"), ("x", "")]:
        assert 0.0 <= name_similarity(a, b) <= 1.0
