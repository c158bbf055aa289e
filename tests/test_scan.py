import pytest
from helpers import make_tree

from vidmanager.scan import scan_folder


def test_scan_prefixes_folder_name_and_skips_hidden(tmp_path):
    root = make_tree(tmp_path / "Movies", {
        "b.mkv": b"12345",
        "a.srt": "x",
        "Action/c.mp4": b"",
        ".DS_Store": b"",
        "._b.mkv": b"",
        ".cache/d.mp4": b"",
    })
    entries = scan_folder(root)
    assert [e.relative_path for e in entries] == ["Movies/a.srt", "Movies/b.mkv", "Movies/Action/c.mp4"]
    b = entries[1]
    assert b.name == "b.mkv"
    assert b.extension == ".mkv"
    assert b.size == 5
    assert b.handle == root / "b.mkv"
    assert b.directory == "Movies"


def test_scan_empty_folder(tmp_path):
    (tmp_path / "Empty").mkdir()
    assert scan_folder(tmp_path / "Empty") == []


def test_scan_requires_a_directory(tmp_path):
    f = tmp_path / "file.mp4"
    f.write_bytes(b"")
    with pytest.raises(NotADirectoryError):
        scan_folder(f)
    with pytest.raises(NotADirectoryError):
        scan_folder(tmp_path / "missing")
