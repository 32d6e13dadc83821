"""Integration tests for CLI commands."""

import json
from pathlib import Path

from typer.testing import CliRunner

from blastradius import __version__
from blastradius.cli import app

runner = CliRunner()


class TestAnalyzeCommand:
    """Tests for 'blast-radius analyze'."""

    def test_analyze_json(self, apps_root: Path, temp_config: Path):
        """Test analyzing a change with JSON output."""
        result = runner.invoke(app, [
            "analyze", "billing", "Services/PaymentService.cs",
            "--apps-root", str(apps_root), "--json",
        ])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["risk"]["level"] == "high"
        assert payload["risk"]["score"] == 60
        assert payload["impact"]["affectedComponents"] == [
            "Services/PaymentService.cs",
            "Controllers/PaymentController.cs",
        ]

    def test_analyze_rich_output(self, apps_root: Path, temp_config: Path):
        """Test the rendered risk report."""
        result = runner.invoke(app, [
            "analyze", "billing", "Services/PaymentService.cs", "--apps-root", str(apps_root),
        ])

        assert result.exit_code == 0
        assert "HIGH" in result.stdout
        assert "Recommendations" in result.stdout
        assert "financial" in result.stdout

    def test_analyze_depth_zero(self, apps_root: Path, temp_config: Path):
        """Test limiting the walk to the changed files."""
        result = runner.invoke(app, [
            "analyze", "billing", "Services/PaymentService.cs",
            "--apps-root", str(apps_root), "--depth", "0", "--json",
        ])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["impact"]["affectedComponents"] == ["Services/PaymentService.cs"]

    def test_analyze_uses_configured_default_depth(self, apps_root: Path, temp_config: Path):
        """Test that the configured depth applies without --depth."""
        runner.invoke(app, ["config", "set", "analysis", "default_depth", "0"])
        result = runner.invoke(app, [
            "analyze", "billing", "Services/PaymentService.cs",
            "--apps-root", str(apps_root), "--json",
        ])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["impact"]["affectedComponents"] == ["Services/PaymentService.cs"]

    def test_analyze_uses_configured_apps_root(self, apps_root: Path, temp_config: Path):
        """Test reading the applications root from the config file."""
        temp_config.write_text(f"[sources]\napps_root = \"{apps_root.as_posix()}\"\n")
        result = runner.invoke(app, ["analyze", "billing", "PaymentRepository.cs", "--json"])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["changedFiles"][0]["resolvedPath"] == "Repositories/PaymentRepository.cs"
        assert payload["changedFiles"][0]["matchStrategy"] == "filename-only"

    def test_unknown_application(self, apps_root: Path, temp_config: Path):
        """Test analyzing an application that is not mounted."""
        result = runner.invoke(app, ["analyze", "nope", "a.cs", "--apps-root", str(apps_root)])
        assert result.exit_code != 0

    def test_negative_depth_rejected(self, apps_root: Path, temp_config: Path):
        """Test that a negative --depth is refused."""
        result = runner.invoke(app, [
            "analyze", "billing", "a.cs", "--apps-root", str(apps_root), "--depth", "-1",
        ])
        assert result.exit_code != 0


class TestFindFilesCommand:
    """Tests for 'blast-radius find-files'."""

    def test_find_files_json(self, apps_root: Path, temp_config: Path):
        """Test fuzzy resolution with JSON output."""
        result = runner.invoke(app, [
            "find-files", "billing", "paymentform.vue", "Nothing/Qqqqqqqqqqqqqqqqqq.kt",
            "--apps-root", str(apps_root), "--json",
        ])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload[0]["resolvedPath"] == "src/components/PaymentForm.vue"
        assert payload[0]["matchStrategy"] == "filename-case-insensitive"
        assert payload[1]["exists"] is False
        assert payload[1]["matchStrategy"] == "not-found"

    def test_find_files_table(self, apps_root: Path, temp_config: Path):
        """Test the rendered resolution table."""
        result = runner.invoke(app, [
            "find-files", "billing", "Models/Payment.cs", "--apps-root", str(apps_root),
        ])

        assert result.exit_code == 0
        assert "exact" in result.stdout


class TestDependenciesCommand:
    """Tests for 'blast-radius dependencies'."""

    def test_dependencies_json(self, apps_root: Path, temp_config: Path):
        """Test a dependency report with JSON output."""
        result = runner.invoke(app, [
            "dependencies", "billing", "Controllers/PaymentController.cs",
            "--apps-root", str(apps_root), "--json",
        ])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["dependencies"] == ["Services/PaymentService.cs"]
        assert payload["insight"]["componentType"] == "API Controller"

    def test_dependencies_of_missing_file(self, apps_root: Path, temp_config: Path):
        """Test a dependency report for a file that does not resolve."""
        result = runner.invoke(app, [
            "dependencies", "billing", "Qqqqqqqqqqqqqqqqqqq.kt", "--apps-root", str(apps_root),
        ])

        assert result.exit_code == 1
        assert "No file matches" in result.stdout


class TestConfigCommands:
    """Tests for 'blast-radius config'."""

    def test_set_then_show(self, temp_config: Path):
        """Test saving a setting and reading it back."""
        result = runner.invoke(app, ["config", "set", "analysis", "default_depth", "3"])
        assert result.exit_code == 0
        assert "Saved" in result.stdout

        result = runner.invoke(app, ["config", "show", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["analysis"]["default_depth"] == 3

    def test_set_unknown_section(self, temp_config: Path):
        """Test that unknown sections are refused without writing."""
        result = runner.invoke(app, ["config", "set", "llm", "provider", "x"])
        assert result.exit_code != 0
        assert not temp_config.exists()

    def test_show_table(self, temp_config: Path):
        """Test the rendered settings table."""
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "risk" in result.stdout


def test_version():
    """Test the version flag."""
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_dependencies_uses_configured_default_depth(apps_root: Path, temp_config: Path):
    """Test that the dependencies command honours the configured depth."""
    temp_config.write_text("[analysis]\ndefault_depth = 1\n")
    result = runner.invoke(app, [
        "dependencies", "billing", "Controllers/PaymentController.cs",
        "--apps-root", str(apps_root), "--json",
    ])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["transitiveDependencies"] == [{"path": "Services/PaymentService.cs", "depth": 1}]
