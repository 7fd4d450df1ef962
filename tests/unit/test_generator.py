"""Tests for MdBookGenerator — invocation contract and verbatim diagnostics."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from conftest import FakeMdBook
from pagewright.core.generator import MdBookGenerator
from pagewright.errors import ConfigurationError, GenerationError

BROKEN_SUMMARY = (
    "2024-05-01 10:00:00 [ERROR] (mdbook::utils): Error: Summary parsing failed for file=src/SUMMARY.md\n"
    "2024-05-01 10:00:00 [ERROR] (mdbook::utils): \tCaused by: There was an error parsing the numbered list item\n"
)


class TestMdBookGenerator:
    def test_build_invocation(self, book: Path):
        runner = FakeMdBook()
        out = MdBookGenerator("/opt/mdbook", runner=runner).build(book, book / "_site")

        assert out == (book / "_site").resolve()
        assert (out / "index.html").is_file()
        args, cwd = runner.calls[0]
        assert args == ["/opt/mdbook", "build", "-d", str(out)]
        assert cwd == book.resolve()

    def test_stale_output_removed(self, book: Path):
        stale = book / "_site" / "removed-chapter.html"
        stale.parent.mkdir()
        stale.write_text("old")

        out = MdBookGenerator("mdbook", runner=FakeMdBook()).build(book, book / "_site")
        assert not (out / "removed-chapter.html").exists()

    def test_failure_surfaces_output_verbatim(self, book: Path):
        runner = FakeMdBook(fail_with=BROKEN_SUMMARY)
        with pytest.raises(GenerationError) as excinfo:
            MdBookGenerator("mdbook", runner=runner).build(book, book / "_site")

        assert excinfo.value.returncode == 101
        assert excinfo.value.output == BROKEN_SUMMARY
        assert BROKEN_SUMMARY in str(excinfo.value)

    def test_missing_binary(self, book: Path):
        def runner(args, *, cwd=None):
            raise FileNotFoundError(2, "No such file or directory", args[0])

        with pytest.raises(GenerationError, match="Cannot execute") as excinfo:
            MdBookGenerator("mdbook", runner=runner).build(book, book / "_site")
        assert excinfo.value.returncode == -1

    def test_success_without_output(self, book: Path):
        def runner(args, *, cwd=None):
            return subprocess.CompletedProcess(args, 0, stdout="", stderr="")

        with pytest.raises(GenerationError, match="produced no"):
            MdBookGenerator("mdbook", runner=runner).build(book, book / "_site")

    @pytest.mark.parametrize("output", [".", ".."])
    def test_output_enclosing_source_refused(self, book: Path, output: str):
        runner = FakeMdBook()
        with pytest.raises(ConfigurationError, match="would replace the source tree"):
            MdBookGenerator("mdbook", runner=runner).build(book, book / output)
        assert (book / "book.toml").is_file()
        assert runner.calls == []
