import pytest
from typer.testing import CliRunner

from ai_gateway.cli.main import app

runner = CliRunner()


@pytest.mark.unit
class TestConfigCommands:
    def test_show_hides_keys(self, monkeypatch):
        monkeypatch.setenv("MASTER_KEY", "super-secret-master")
        monkeypatch.setenv("OPENAI_KEYS", '["sk-live-1", "sk-live-2"]')

        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        assert "super-secret-master" not in result.output
        assert "sk-live-1" not in result.output
        assert "sha256:" in result.output

    def test_validate_ok(self):
        result = runner.invoke(app, ["config", "validate"])
        assert result.exit_code == 0
        assert "valid" in result.output

    def test_validate_reports_errors(self, monkeypatch):
        monkeypatch.setenv("GROQ_KEYS", "not-json")
        monkeypatch.setenv("ROTATION_LIMIT", "0")

        result = runner.invoke(app, ["config", "validate"])

        assert result.exit_code == 1
        assert "GROQ_KEYS" in result.output
        assert "ROTATION_LIMIT" in result.output

    def test_validate_cross_checks_http_sink(self, monkeypatch):
        monkeypatch.setenv("METRICS_SINK", "http")

        result = runner.invoke(app, ["config", "validate"])

        assert result.exit_code == 1
        assert "METRICS_SINK" in result.output

    def test_docs(self):
        result = runner.invoke(app, ["config", "docs"])
        assert result.exit_code == 0
        assert "`ROTATION_LIMIT`" in result.output


@pytest.mark.unit
def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "aigw" in result.output


@pytest.mark.unit
def test_start_runs_app_factory(monkeypatch):
    calls = []
    monkeypatch.setattr("ai_gateway.cli.commands.start.uvicorn.run", lambda *a, **kw: calls.append((a, kw)))

    result = runner.invoke(app, ["start", "--port", "9999"])

    assert result.exit_code == 0
    ((args, kwargs),) = calls
    assert args == ("ai_gateway.main:app_factory",)
    assert kwargs["factory"] is True
    assert kwargs["port"] == 9999
