"""Tests for the zip archive sink."""

import json
import os
import zipfile

import pytest

from fnpack.archive import TOOLCHAIN_ENTRY, ZipArchive, add_toolchain_file


@pytest.fixture
def sources(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "a.js").write_text("module.exports = 1;\n")
    (src / "b.js").write_text("module.exports = 2;\n")
    return src


def _build(sources, dest):
    with ZipArchive(dest) as archive:
        for name in ("a.js", "b.js"):
            archive.add_file(sources / name, name)
        add_toolchain_file(archive, "js")
    return dest


class TestZipArchive:
    def test_entries_and_toolchain(self, sources, tmp_path):
        dest = _build(sources, tmp_path / "out" / "fn.zip")
        with zipfile.ZipFile(dest) as zf:
            assert zf.namelist() == ["a.js", "b.js", TOOLCHAIN_ENTRY]
            assert zf.read("a.js") == b"module.exports = 1;\n"
            assert json.loads(zf.read(TOOLCHAIN_ENTRY)) == {"runtime": "js"}

    def test_deterministic(self, sources, tmp_path):
        first = _build(sources, tmp_path / "one.zip")
        second = _build(sources, tmp_path / "two.zip")
        assert first.read_bytes() == second.read_bytes()

    def test_mode_preserved(self, sources, tmp_path):
        os.chmod(sources / "a.js", 0o755)
        dest = tmp_path / "fn.zip"
        with ZipArchive(dest) as archive:
            archive.add_file(sources / "a.js", "a.js")
        with zipfile.ZipFile(dest) as zf:
            assert (zf.getinfo("a.js").external_attr >> 16) & 0o777 == 0o755

    def test_old_timestamps_clamped(self, sources, tmp_path):
        dest = tmp_path / "fn.zip"
        with ZipArchive(dest) as archive:
            archive.add_file(sources / "a.js", "a.js", mtime=0)
            archive.add_content("x", "content.txt")
        with zipfile.ZipFile(dest) as zf:
            assert zf.getinfo("a.js").date_time == (1980, 1, 1, 0, 0, 0)
            assert zf.getinfo("content.txt").date_time == (1980, 1, 1, 0, 0, 0)

    def test_duplicate_entry_skipped(self, sources, tmp_path):
        dest = tmp_path / "fn.zip"
        with ZipArchive(dest) as archive:
            archive.add_file(sources / "a.js", "lib.js")
            archive.add_file(sources / "b.js", "lib.js")
            assert archive.entry_names == ["lib.js"]
        with zipfile.ZipFile(dest) as zf:
            assert zf.read("lib.js") == b"module.exports = 1;\n"

    def test_add_after_finalize(self, sources, tmp_path):
        archive = ZipArchive(tmp_path / "fn.zip")
        assert archive.finalize() == tmp_path / "fn.zip"
        with pytest.raises(ValueError):
            archive.add_content("late", "late.txt")

    def test_error_closes_archive(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            with ZipArchive(tmp_path / "fn.zip") as archive:
                archive.add_file(tmp_path / "missing.js", "missing.js")
