"""
Tests for the click command-line interface.
"""

import pytest
import yaml
from click.testing import CliRunner
from placeminer import __version__, cli as cli_module
from placeminer.cli import cli

from tests.helpers import ACME_HTML, FakeContentSource


class ContextSource(FakeContentSource):
    """FakeContentSource usable where the CLI expects the browser adapter."""

    instances = []

    def __init__(self, config=None):
        super().__init__(default=[ACME_HTML], fail_on=["Globex"])
        self.config = config
        self.entered = False
        self.exited = False
        ContextSource.instances.append(self)

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.exited = True


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def quiet_cli(monkeypatch):
    ContextSource.instances = []
    monkeypatch.setattr(cli_module, "configure_logging", lambda config: None)
    monkeypatch.setattr(cli_module, "PlaywrightContentSource", ContextSource)


@pytest.fixture
def input_csv(tmp_path):
    path = tmp_path / "companies.csv"
    path.write_text("Company,City,Country\nAcme,Springfield,US\nGlobex,,US\n", encoding="utf-8")
    return path


@pytest.fixture
def fast_config(tmp_path):
    path = tmp_path / "placeminer.yaml"
    path.write_text(yaml.safe_dump({"orchestrator": {"politeness_delay": 0}}), encoding="utf-8")
    return path


@pytest.mark.unit
class TestCli:
    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_show_config(self, runner, fast_config):
        result = runner.invoke(cli, ["--config", str(fast_config), "show-config"])

        assert result.exit_code == 0
        data = yaml.safe_load(result.output)
        assert data["orchestrator"]["politeness_delay"] == 0
        assert data["source"]["headless"] is True

    def test_dry_run_does_not_open_browser(self, runner, input_csv):
        result = runner.invoke(cli, ["run", str(input_csv), "--dry-run"])

        assert result.exit_code == 0
        assert "2 rows validated" in result.output
        assert ContextSource.instances == []

    def test_ingest_error_exit_code(self, runner, tmp_path):
        bad = tmp_path / "bad.csv"
        bad.write_text("Company,City\nAcme,Springfield\n", encoding="utf-8")

        result = runner.invoke(cli, ["run", str(bad)])

        assert result.exit_code == 2
        assert "Country" in result.output

    def test_run_exports_all_rows(self, runner, input_csv, fast_config, tmp_path):
        output = tmp_path / "out" / "results.csv"

        result = runner.invoke(
            cli,
            ["--config", str(fast_config), "run", str(input_csv), "--output", str(output), "--headed"],
        )

        assert result.exit_code == 0, result.output
        assert output.read_text(encoding="utf-8").splitlines() == [
            "Company,City,Country,Name,Phone,Website,Email,Address",
            "Acme,Springfield,US,Acme Inc,415-555-0100,https://acme.example,,",
            "Globex,,US,,,,,",
        ]
        assert "Found: 1/2" in result.output

        source = ContextSource.instances[0]
        assert source.entered and source.exited
        assert source.config.headless is False

    def test_output_dir_uses_default_name(self, runner, input_csv, fast_config, tmp_path):
        out_dir = tmp_path / "exports"

        result = runner.invoke(
            cli,
            ["--config", str(fast_config), "run", str(input_csv), "--output-dir", str(out_dir)],
        )

        assert result.exit_code == 0, result.output
        exported = list(out_dir.glob("pro_company_scraper_results_*.csv"))
        assert len(exported) == 1
