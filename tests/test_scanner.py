# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for FileCorpusScanner bounded walks."""

from pathlib import Path

import pytest

from codectx.scanner import FileCorpusScanner, extension_of, read_text_file


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Small tree with ignored directories and four depth levels."""
    (tmp_path / "a.ts").write_text("export const a = 1;\n")
    (tmp_path / "README").write_text("readme\n")
    (tmp_path / "src" / "deep" / "deeper").mkdir(parents=True)
    (tmp_path / "src" / "b.ts").write_text("export const b = 2;\n")
    (tmp_path / "src" / "deep" / "c.py").write_text("x = 1\n")
    (tmp_path / "src" / "deep" / "deeper" / "d.py").write_text("y = 2\n")
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "config").write_text("[core]\n")
    (tmp_path / "node_modules" / "pkg").mkdir(parents=True)
    (tmp_path / "node_modules" / "pkg" / "index.js").write_text("module.exports = {};\n")
    return tmp_path


class TestScan:
    """Tests for structure summaries."""

    def test_depth_zero_lists_root_only(self, project: Path) -> None:
        summary = FileCorpusScanner().scan(project, max_depth=0)

        assert summary.folders == ("src",)
        assert summary.total_files == 2
        assert summary.files_by_extension == {"": ("README",), "ts": ("a.ts",)}

    def test_depth_one_enters_first_level(self, project: Path) -> None:
        summary = FileCorpusScanner().scan(project, max_depth=1)

        assert summary.folders == ("src", "src/deep")
        assert summary.files_by_extension["ts"] == ("a.ts", "src/b.ts")
        assert summary.total_files == 3

    def test_full_depth(self, project: Path) -> None:
        summary = FileCorpusScanner().scan(project, max_depth=3)

        assert summary.folders == ("src", "src/deep", "src/deep/deeper")
        assert summary.files_by_extension["py"] == ("src/deep/c.py", "src/deep/deeper/d.py")
        assert summary.total_files == 5

    def test_never_descends_into_ignored_directories(self, project: Path) -> None:
        summary = FileCorpusScanner().scan(project, max_depth=10)

        all_paths = list(summary.folders)
        for paths in summary.files_by_extension.values():
            all_paths.extend(paths)

        assert not any(path.startswith((".git", "node_modules")) for path in all_paths)
        assert "js" not in summary.files_by_extension

    def test_custom_ignore_names(self, project: Path) -> None:
        summary = FileCorpusScanner(ignore_names=["src"]).scan(project, max_depth=3)

        assert summary.folders == (".git", "node_modules", "node_modules/pkg")
        assert "py" not in summary.files_by_extension

    def test_missing_root_is_empty(self, tmp_path: Path) -> None:
        summary = FileCorpusScanner().scan(tmp_path / "missing", max_depth=3)

        assert summary.total_files == 0
        assert summary.folders == ()


class TestFind:
    def test_find_by_extensions_shallow_first(self, project: Path) -> None:
        scanner = FileCorpusScanner()

        assert scanner.find_by_extensions(project, ["ts"], limit=5) == [
            project / "a.ts",
            project / "src" / "b.ts",
        ]
        assert scanner.find_by_extensions(project, [".TS"], limit=1) == [project / "a.ts"]

    def test_find_by_extensions_excludes_paths(self, project: Path) -> None:
        found = FileCorpusScanner().find_by_extensions(
            project, {"ts", "py"}, limit=10, exclude=[project / "a.ts"]
        )

        assert project / "a.ts" not in found
        assert found == [
            project / "src" / "b.ts",
            project / "src" / "deep" / "c.py",
            project / "src" / "deep" / "deeper" / "d.py",
        ]

    def test_find_by_extensions_respects_depth(self, project: Path) -> None:
        found = FileCorpusScanner().find_by_extensions(project, ["py"], limit=10, max_depth=2)

        assert found == [project / "src" / "deep" / "c.py"]

    def test_find_by_extensions_zero_limit(self, project: Path) -> None:
        assert FileCorpusScanner().find_by_extensions(project, ["ts"], limit=0) == []

    def test_find_by_name(self, project: Path) -> None:
        scanner = FileCorpusScanner()

        assert scanner.find_by_name(project, "a.ts") == project / "a.ts"
        deep = project / "src" / "deep"
        assert scanner.find_by_name(project, "c.py", max_depth=2) == deep / "c.py"
        assert scanner.find_by_name(project, "d.py", max_depth=2) is None
        assert scanner.find_by_name(project, "d.py", max_depth=3) == deep / "deeper" / "d.py"

    def test_find_by_name_skips_ignored_directories(self, project: Path) -> None:
        assert FileCorpusScanner().find_by_name(project, "index.js", max_depth=5) is None

    def test_find_by_name_missing_root(self, tmp_path: Path) -> None:
        assert FileCorpusScanner().find_by_name(tmp_path / "missing", "a.ts") is None

    def test_find_by_name_overlong_name(self, project: Path) -> None:
        assert FileCorpusScanner().find_by_name(project, "b" * 300 + ".ts") is None


class TestHelpers:
    @pytest.mark.parametrize(
        "path,expected",
        [("src/App.TSX", "tsx"), ("Makefile", ""), ("archive.tar.gz", "gz"), (".env", "")],
    )
    def test_extension_of(self, path: str, expected: str) -> None:
        assert extension_of(path) == expected

    def test_read_text_file_falls_back_to_latin1(self, tmp_path: Path) -> None:
        path = tmp_path / "legacy.txt"
        path.write_bytes(b"caf\xe9\n")

        assert read_text_file(path) == "caf\xe9\n"

    def test_read_text_file_missing_raises(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            read_text_file(tmp_path / "missing.txt")
