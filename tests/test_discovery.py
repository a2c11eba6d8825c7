"""
Unit tests for stress unit discovery.
"""

from stresslib.orchestrator.discovery import StressUnit, discover_units


def touch(path, text=""):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


def test_units_are_sorted_by_stem(tmp_path):
    for name in ("c.py", "a.py", "b.py"):
        touch(tmp_path / "stress" / name)

    units = discover_units(tmp_path / "stress")

    assert [u.stem for u in units] == ["a", "b", "c"]
    assert units[0].executable_name == "stress_a"


def test_helpers_and_other_files_are_skipped(tmp_path):
    touch(tmp_path / "stress" / "real.py")
    touch(tmp_path / "stress" / "_helper.py")
    touch(tmp_path / "stress" / "notes.txt")
    touch(tmp_path / "stress" / "pkg" / "nested.py")

    assert [u.stem for u in discover_units(tmp_path / "stress")] == ["real"]


def test_only_matches_stem_or_executable_name(tmp_path):
    touch(tmp_path / "stress" / "fsync.py")
    touch(tmp_path / "stress" / "sort.py")

    assert [u.stem for u in discover_units(tmp_path / "stress", only="fsync")] == ["fsync"]
    assert [u.stem for u in discover_units(tmp_path / "stress", only="stress_sort")] == ["sort"]
    assert discover_units(tmp_path / "stress", only="nope") == []


def test_missing_directory_yields_nothing(tmp_path):
    assert discover_units(tmp_path / "stress") == []


def test_from_path_rejects_non_units(tmp_path):
    assert StressUnit.from_path(tmp_path / "x.txt") is None
    assert StressUnit.from_path(tmp_path / "_x.py") is None
    assert StressUnit.from_path(tmp_path / "x.py").stem == "x"
