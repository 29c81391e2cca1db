"""Tests for the command line interface."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from versionsift.cli import main
from versionsift.config import get_settings

CFG_RULES = """
rules:
  - name: cfg-version
    match:
      file_pattern: "*.cfg"
    extractor:
      type: regex
      config:
        pattern: "python=(?P<version>[0-9.]+)"
"""


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    (tmp_path / ".python-version").write_text("3.11.4\n")
    (tmp_path / "Dockerfile").write_text("FROM python:3.12-slim\n")
    (tmp_path / "notes.txt").write_text("uses Python 3.11\nnothing here\n")
    return tmp_path


class TestScanCommand:
    """Tests for the scan command."""

    def test_console_output(self, runner, project):
        """Test the human readable scan summary."""
        result = runner.invoke(main, ["scan", str(project)])
        assert result.exit_code == 0
        assert "Detected Python 3.11.4" in result.output

    def test_json_output(self, runner, project):
        """Test machine readable output."""
        result = runner.invoke(main, ["scan", str(project), "--format", "json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["best_result"]["value"] == "3.11.4"
        assert len(data["files"]) == 2

    def test_json_output_to_file(self, runner, project, tmp_path):
        """Test writing JSON output to a file."""
        output = tmp_path / "out" / "report.json"
        output.parent.mkdir()
        result = runner.invoke(main, ["scan", str(project), "--format", "json", "-o", str(output)])
        assert result.exit_code == 0
        assert json.loads(output.read_text())["files_seen"] == 3

    def test_options_reach_settings(self, runner, project):
        """Test that command line options become the global settings."""
        result = runner.invoke(
            main,
            ["scan", str(project), "--tag", "docker", "--min-confidence", "0.5", "--workers", "2", "--format", "json"],
        )
        assert result.exit_code == 0
        settings = get_settings()
        assert settings.execution.tags == ["docker"]
        assert settings.execution.min_confidence == 0.5
        assert settings.scan.workers == 2
        assert json.loads(result.output)["best_result"]["value"] == "3.12"

    def test_ignore(self, runner, project):
        """Test that ignored files are not scanned."""
        result = runner.invoke(
            main, ["scan", str(project), "--ignore", ".python-version", "--format", "json"]
        )
        assert json.loads(result.output)["best_result"]["value"] == "3.12"

    def test_invalid_rules_file(self, runner, project, tmp_path):
        """Test that a broken rules file exits with an error."""
        rules = tmp_path / "rules.yaml"
        rules.write_text("rules: []\n")
        result = runner.invoke(main, ["scan", str(project), "--rules-file", str(rules)])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_console_output_with_markup_in_value(self, runner, project, tmp_path):
        """Test that extracted values containing brackets are printed literally."""
        (project / "app.cfg").write_text("python=[/x]\n")
        rules = tmp_path / "rules.yaml"
        rules.write_text(CFG_RULES.replace("[0-9.]+", "\\\\S+"))
        result = runner.invoke(main, ["scan", str(project), "--rules-file", str(rules), "--no-builtin"])
        assert result.exit_code == 0
        assert "Detected Python [/x]" in result.output

    def test_strict_with_rule_failure(self, runner, project, tmp_path):
        """Test that --strict turns rule failures into a non-zero exit code."""
        (project / "app.cfg").write_text("python=3.10\n")
        rules = tmp_path / "rules.yaml"
        rules.write_text(CFG_RULES)
        args = ["scan", str(project), "--rules-file", str(rules), "--no-builtin", "--format", "json"]

        assert runner.invoke(main, args).exit_code == 0

        # A regex extractor never fails, so force an error through the size cap
        rules.write_text(CFG_RULES.replace('file_pattern: "*.cfg"', 'file_pattern: "*.cfg"\n      max_file_size: 2'))
        result = runner.invoke(main, args + ["--strict"])
        assert result.exit_code == 1


class TestRulesCommand:
    """Tests for the rules command."""

    def test_lists_builtin_rules(self, runner):
        """Test the built-in rules table."""
        result = runner.invoke(main, ["rules"])
        assert result.exit_code == 0
        assert "python-version-file" in result.output
        assert "9 rule(s): 9 enabled, 0 disabled" in result.output

    def test_no_builtin(self, runner, tmp_path):
        """Test listing only a rules file."""
        rules = tmp_path / "rules.yaml"
        rules.write_text(CFG_RULES)
        result = runner.invoke(main, ["rules", "--no-builtin", "--rules-file", str(rules)])
        assert result.exit_code == 0
        assert "cfg-version" in result.output
        assert "1 rule(s)" in result.output


class TestSearchCommand:
    """Tests for the search command."""

    def test_literal_search(self, runner, project):
        """Test searching all files for a literal term."""
        result = runner.invoke(main, ["search", str(project), "python"])
        assert result.exit_code == 0
        assert "notes.txt" in result.output
        assert "2 match(es) in 3 file(s)" in result.output

    def test_file_pattern(self, runner, project):
        """Test restricting search to matching files."""
        result = runner.invoke(main, ["search", str(project), "python", "--file-pattern", "*.txt"])
        assert "1 match(es)" in result.output

    def test_markup_in_file_content(self, runner, project):
        """Test that bracketed text in matched lines is printed literally."""
        (project / "paths.py").write_text('SEP = re.compile(r"[/\\\\]")  # separator\n')
        result = runner.invoke(main, ["search", str(project), "separator"])
        assert result.exit_code == 0
        assert '[/\\\\]' in result.output
        assert "1 match(es)" in result.output

    def test_invalid_regex(self, runner, project):
        """Test that an invalid regex exits with an error."""
        result = runner.invoke(main, ["search", str(project), "(", "--regex"])
        assert result.exit_code == 1
