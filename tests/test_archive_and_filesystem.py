import zipfile

import pytest

from core import archive, filesystem
from domain.errors import ArchiveError


def test_zip_files_flattens_names(tmp_path):
    nested = tmp_path / "a" / "b"
    filesystem.write_text(str(nested / "appfilter.xml"), "<resources/>")
    filesystem.write_text(str(tmp_path / "com.x.png"), "png")
    out = archive.zip_files(
        str(tmp_path / "out.zip"), [str(nested / "appfilter.xml"), str(tmp_path / "com.x.png")]
    )
    with zipfile.ZipFile(out) as zf:
        assert sorted(zf.namelist()) == ["appfilter.xml", "com.x.png"]
        assert zf.read("appfilter.xml") == b"<resources/>"


def test_zip_files_refuses_empty(tmp_path):
    with pytest.raises(ArchiveError, match="no files"):
        archive.zip_files(str(tmp_path / "out.zip"), [])
    assert not (tmp_path / "out.zip").exists()


def test_zip_files_missing_input(tmp_path):
    with pytest.raises(ArchiveError, match="Failed to create"):
        archive.zip_files(str(tmp_path / "out.zip"), [str(tmp_path / "ghost.png")])


def test_delete_quietly_counts_removed(tmp_path):
    a = tmp_path / "a.txt"
    a.write_text("x")
    assert filesystem.delete_quietly([str(a), str(tmp_path / "missing.txt")]) == 1
    assert not a.exists()


def test_wipe_and_read_text(tmp_path):
    target = tmp_path / "dir"
    filesystem.write_text(str(target / "f.txt"), "hello")
    assert filesystem.read_text(str(target / "f.txt")) == "hello"
    filesystem.wipe(str(target))
    assert not target.exists()
    filesystem.wipe(str(target))  # missing is fine
