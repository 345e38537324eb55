"""Tests for bundlelint.cli.commands.lint_cmd module."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from bundlelint.cli.main import app


def _squash(output: str) -> str:
    return " ".join(output.split())


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep config discovery inside the test's temporary directory."""
    monkeypatch.delenv("BUNDLELINT_CONFIG_PATH", raising=False)
    monkeypatch.chdir(tmp_path)


class TestLintTable:
    """Test the default table output."""

    def test_clean_bundle(self, runner, write_bundle, valid_bundle_yaml):
        """A clean bundle exits 0 and reports no issues."""
        path = write_bundle(valid_bundle_yaml)

        result = runner.invoke(app, ["lint", str(path)])

        assert result.exit_code == 0
        assert "No issues found in 1 bundle file(s)" in _squash(result.output)

    def test_errors_exit_nonzero(self, runner, write_bundle, valid_bundle_yaml):
        """Error-level diagnostics are listed and fail the run."""
        path = write_bundle(valid_bundle_yaml.replace("1.0.0", "1.x"))

        result = runner.invoke(app, ["lint", str(path)])

        assert result.exit_code == 1
        output = _squash(result.output)
        assert "Rule ID" in output
        assert "policy-wrong-version" in output
        assert "1 error(s) 0 warning(s)" in output

    def test_warnings_only_exit_zero(self, runner, write_bundle, valid_bundle_yaml):
        """Warnings are reported but do not fail the run."""
        path = write_bundle(valid_bundle_yaml.replace("    require:\n      - provider: os\n", ""))

        result = runner.invoke(app, ["lint", str(path)])

        assert result.exit_code == 0
        output = _squash(result.output)
        assert "policy-missing-require" in output
        assert "0 error(s) 1 warning(s)" in output

    def test_directory_input(self, runner, write_bundle, valid_bundle_yaml):
        """Directories are searched for bundle files."""
        write_bundle(valid_bundle_yaml, name="policies/ssh.mql.yaml")
        write_bundle("not: a bundle\n", name="policies/notes.yaml")

        result = runner.invoke(app, ["lint", "policies"])

        assert result.exit_code == 0
        assert "No issues found in 1 bundle file(s)" in _squash(result.output)

    def test_parse_error(self, runner, write_bundle):
        """An unreadable bundle is reported as bundle-invalid."""
        path = write_bundle("policies: [\n")

        result = runner.invoke(app, ["lint", str(path)])

        assert result.exit_code == 1
        assert "bundle-invalid" in result.output

    def test_empty_directory(self, runner, tmp_path):
        """A directory without bundle files is an error."""
        (tmp_path / "empty").mkdir()

        result = runner.invoke(app, ["lint", "empty"])

        assert result.exit_code == 1
        assert "No bundle files found." in result.output

    def test_missing_path(self, runner):
        """Paths must exist."""
        result = runner.invoke(app, ["lint", "missing.mql.yaml"])

        assert result.exit_code == 2


class TestLintSarif:
    """Test SARIF output."""

    def test_sarif_stdout(self, runner, write_bundle, valid_bundle_yaml):
        """SARIF is printed to stdout with URIs relative to the bundle's directory."""
        write_bundle(valid_bundle_yaml.replace("1.0.0", "1.x"), name="policies/ssh.mql.yaml")

        result = runner.invoke(app, ["lint", "--sarif", "policies/ssh.mql.yaml"])

        assert result.exit_code == 1
        document = json.loads(result.stdout)
        run = document["runs"][0]
        assert run["artifacts"][0]["location"] == {
            "uri": "ssh.mql.yaml",
            "uriBaseId": "%SRCROOT%",
        }
        assert [r["ruleId"] for r in run["results"]] == ["policy-wrong-version"]

    def test_sarif_root_dir(self, runner, write_bundle, valid_bundle_yaml, tmp_path):
        """--root-dir sets the base of artifact URIs."""
        write_bundle(valid_bundle_yaml, name="policies/linux/ssh.mql.yaml")

        result = runner.invoke(
            app, ["lint", "--sarif", "--root-dir", str(tmp_path), "policies"]
        )

        assert result.exit_code == 0
        document = json.loads(result.stdout)
        uri = document["runs"][0]["artifacts"][0]["location"]["uri"]
        assert uri == "policies/linux/ssh.mql.yaml"

    def test_output_file(self, runner, write_bundle, valid_bundle_yaml, tmp_path):
        """--output-file writes the report instead of printing it."""
        path = write_bundle(valid_bundle_yaml)
        report = tmp_path / "reports" / "lint.sarif"

        result = runner.invoke(app, ["lint", "--sarif", "-o", str(report), str(path)])

        assert result.exit_code == 0
        assert "Report written to" in result.output
        document = json.loads(report.read_text(encoding="utf-8"))
        assert document["version"] == "2.1.0"
        assert document["runs"][0]["results"] == []

    def test_table_output_file(self, runner, write_bundle, valid_bundle_yaml, tmp_path):
        """The table can be written to a file too."""
        path = write_bundle(valid_bundle_yaml.replace("1.0.0", "1.x"))
        report = tmp_path / "lint.txt"

        result = runner.invoke(app, ["lint", "--output-file", str(report), str(path)])

        assert result.exit_code == 1
        assert "policy-wrong-version" in report.read_text(encoding="utf-8")


class TestLintConfig:
    """Test configuration handling."""

    def test_config_disables_rule(self, runner, write_bundle, valid_bundle_yaml, tmp_path):
        """Rules disabled in the config file are not reported."""
        path = write_bundle(valid_bundle_yaml.replace("1.0.0", "1.x"))
        config = tmp_path / "bundlelint.yaml"
        config.write_text("disabled_rules: [policy-wrong-version]\n", encoding="utf-8")

        result = runner.invoke(app, ["lint", "--config", str(config), str(path)])

        assert result.exit_code == 0

    def test_pyproject_config(self, runner, write_bundle, valid_bundle_yaml, tmp_path):
        """[tool.bundlelint] in pyproject.toml is picked up from the working directory."""
        path = write_bundle(valid_bundle_yaml)
        (tmp_path / "pyproject.toml").write_text(
            '[tool.bundlelint]\nrequired_tags = ["example.com/team"]\n', encoding="utf-8"
        )

        result = runner.invoke(app, ["lint", str(path)])

        assert result.exit_code == 0
        assert "policy-required-tags-missing" in result.output

    def test_invalid_config(self, runner, write_bundle, valid_bundle_yaml, tmp_path):
        """A malformed config file fails before linting."""
        path = write_bundle(valid_bundle_yaml)
        config = tmp_path / "bundlelint.yaml"
        config.write_text("unknown_setting: 1\n", encoding="utf-8")

        result = runner.invoke(app, ["lint", "-c", str(config), str(path)])

        assert result.exit_code == 1
        assert "Configuration Error" in result.output

    def test_invalid_workers(self, runner, write_bundle, valid_bundle_yaml, tmp_path):
        """Validation errors in the config are reported the same way."""
        path = write_bundle(valid_bundle_yaml)
        config = tmp_path / "bundlelint.yaml"
        config.write_text("workers: 0\n", encoding="utf-8")

        result = runner.invoke(app, ["lint", "-c", str(config), str(path)])

        assert result.exit_code == 1
        assert "Configuration Error" in result.output

    def test_invalid_log_level(self, runner, write_bundle, valid_bundle_yaml, tmp_path):
        """An unknown log level in the config is a configuration error."""
        path = write_bundle(valid_bundle_yaml)
        config = tmp_path / "bundlelint.yaml"
        config.write_text("logging:\n  level: verbose\n", encoding="utf-8")

        result = runner.invoke(app, ["lint", "-c", str(config), str(path)])

        assert result.exit_code == 1
        assert "Configuration Error" in result.output
