"""Tests for scanning directory trees."""

import threading
from pathlib import Path

import pytest

from versionsift.models import ExecutionOptions, ExtractionResult
from versionsift.pipeline.rules import RuleBuilder, RuleEngine, RuleRegistry
from versionsift.pipeline.rules_factory import default_registry
from versionsift.pipeline.scan import collect_files, matches_pattern, scan_path


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A small project declaring its Python version in several places."""
    (tmp_path / ".python-version").write_text("3.11.4\n")
    (tmp_path / "pyproject.toml").write_text('[project]\nrequires-python = ">=3.10"\n')
    (tmp_path / "README.md").write_text("# project\n")
    docker = tmp_path / "docker"
    docker.mkdir()
    (docker / "Dockerfile").write_text("FROM python:3.12-slim\n")
    git = tmp_path / ".git"
    git.mkdir()
    (git / "runtime.txt").write_text("python-2.7.18\n")
    return tmp_path


class TestMatchesPattern:
    """Tests for ignore pattern matching."""

    def test_relative_path_and_name(self, tmp_path):
        """Test patterns against the relative path and the bare filename."""
        file_path = tmp_path / "docs" / "setup.py"
        assert matches_pattern(file_path, "docs/*.py", tmp_path)
        assert matches_pattern(file_path, "setup.py", tmp_path)
        assert not matches_pattern(file_path, "src/*.py", tmp_path)

    def test_directory_glob(self, tmp_path):
        """Test that dir/** ignores everything below dir."""
        assert matches_pattern(tmp_path / "vendor" / "a" / "tox.ini", "vendor/**", tmp_path)
        assert not matches_pattern(tmp_path / "vendored" / "tox.ini", "vendor/**", tmp_path)


class TestCollectFiles:
    """Tests for collect_files."""

    def test_skips_vcs_directories_and_sorts(self, project):
        """Test that .git is skipped and files come out in a stable order."""
        names = [p.relative_to(project).as_posix() for p in collect_files(project)]
        assert names == [".python-version", "README.md", "pyproject.toml", "docker/Dockerfile"]

    def test_ignore_patterns(self, project):
        """Test that ignored files are not yielded."""
        names = [p.name for p in collect_files(project, ["docker/**", "*.md"])]
        assert names == [".python-version", "pyproject.toml"]

    def test_single_file(self, project):
        """Test that a file root yields itself."""
        path = project / "pyproject.toml"
        assert list(collect_files(path)) == [path]


class TestScanPath:
    """Tests for scan_path."""

    def test_scan_project(self, project):
        """Test a full scan with the built-in rules."""
        report = scan_path(project, RuleEngine(default_registry()))

        assert report.files_seen == 4
        assert [f.path.name for f in report.files] == [".python-version", "Dockerfile", "pyproject.toml"]
        assert report.best_result.value == "3.11.4"
        assert report.rules_applied == 3
        assert report.error_count == 0
        assert report.failed_files == {}

    def test_scan_with_options(self, project):
        """Test that execution options apply to every file."""
        report = scan_path(project, RuleEngine(default_registry()), ExecutionOptions(tags=["docker"]))
        assert [f.path.name for f in report.files] == ["Dockerfile"]
        assert report.best_result.value == "3.12"

    def test_oversized_files_fail(self, project):
        """Test that files above the scan limit are recorded as failed."""
        report = scan_path(project, RuleEngine(default_registry()), max_file_size=25)
        assert project / "pyproject.toml" in report.failed_files
        assert [f.path.name for f in report.files] == [".python-version", "Dockerfile"]

    def test_cancelled_scan(self, project):
        """Test that a pre-set cancel records cancellation for every candidate file."""
        cancel = threading.Event()
        cancel.set()
        report = scan_path(project, RuleEngine(default_registry()), cancel=cancel)
        assert report.rules_applied == 0
        assert report.error_count == 3
        assert report.best_result is None

    def test_rule_errors_are_reported(self, project):
        """Test that failing rules show up per file without failing the scan."""

        def broken(content: bytes, filename: str) -> ExtractionResult:
            raise RuntimeError("bad parser")

        registry = RuleRegistry()
        registry.register(RuleBuilder("broken").file_pattern("*.toml").extractor(broken).build())

        report = scan_path(project, RuleEngine(registry), workers=2)

        assert report.error_count == 1
        assert report.files[0].execution.errors[0].rule_name == "broken"
