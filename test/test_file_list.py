"""
Unit tests for file discovery and list filtering, no image decoding involved.
"""
import os
import pytest

from hdr_meta.file_list import (
    exclude_processed, file_name, find_tiff_files, map_by_name, read_file_list,
    safe_absolute_path, select_mandatory,
)


def touch(path):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"")
    return path


def test_find_tiff_files_recursive_and_case_insensitive(tmp_path):
    touch(tmp_path / "reel1" / "B_0002.TIF")
    touch(tmp_path / "reel1" / "a_0001.tif")
    touch(tmp_path / "reel2" / "c_0003.tiff")
    touch(tmp_path / "notes.txt")
    touch(tmp_path / "thumb.png")

    found = find_tiff_files(str(tmp_path))

    assert [os.path.basename(p) for p in found] == ["a_0001.tif", "B_0002.TIF", "c_0003.tiff"]
    assert all(os.path.isabs(p) for p in found)


def test_find_tiff_files_empty(tmp_path):
    assert find_tiff_files(str(tmp_path)) == []


def test_read_file_list_skips_blanks_and_timestamps(tmp_path):
    listing = tmp_path / "processed.txt"
    listing.write_text(
        "Mon Oct 19 07:00:00 2026\n"
        "/frames/a.tif\tMon Oct 19 07:00:01 2026\n"
        "\n"
        "/frames/b.tif\n"
    )

    assert read_file_list(str(listing)) == ["Mon Oct 19 07:00:00 2026", "/frames/a.tif", "/frames/b.tif"]


def test_read_file_list_missing_file(tmp_path):
    assert read_file_list(str(tmp_path / "nope.txt")) == []


@pytest.mark.parametrize("path, expected", [
    ("/frames/reel1/a.tif", "a.tif"),
    ("C:\\frames\\reel1\\a.tif", "a.tif"),
    ("a.tif", "a.tif"),
    ("/frames/reel1/", ""),
])
def test_file_name(path, expected):
    assert file_name(path) == expected


def test_map_by_name_skips_empty_names():
    mapping = map_by_name(["/x/a.tif", "/y/", "D:\\z\\b.tif"])
    assert mapping == {"a.tif": "/x/a.tif", "b.tif": "D:\\z\\b.tif"}


def test_select_mandatory_reports_missing():
    found = ["/f/c.tif", "/f/a.tif", "/f/b.tif"]
    mandatory = ["X:\\delivery\\b.tif", "/other/a.tif", "/other/zz.tif"]

    selected, missing = select_mandatory(found, mandatory)

    assert selected == ["/f/a.tif", "/f/b.tif"]
    assert missing == ["zz.tif"]


def test_exclude_processed_by_name():
    found = ["/f/c.tif", "/f/a.tif", "/f/b.tif"]
    processed = ["/old/location/b.tif"]

    assert exclude_processed(found, processed) == ["/f/a.tif", "/f/c.tif"]


def test_safe_absolute_path_expands_home(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    assert safe_absolute_path("~/frames") == os.path.realpath(str(tmp_path / "frames"))
