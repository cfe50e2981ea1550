"""Fixtures for CLI integration tests."""

import pytest
from typer.testing import CliRunner


@pytest.fixture
def runner():
    """Create a CLI runner for testing."""
    return CliRunner()


@pytest.fixture
def project(tmp_path, monkeypatch):
    """Create a project with a settings file and an empty sql/ directory."""
    (tmp_path / "sql").mkdir()
    (tmp_path / "bqpipe.toml").write_text(
        'directory = "sql/"\n'
        'project_id = "proj1"\n'
        "\n"
        "[vars]\n"
        'env = "prod"\n'
    )
    monkeypatch.chdir(tmp_path)
    for name in ("PROJECT", "DATASET", "LOCATION", "DIRECTORY"):
        monkeypatch.delenv(f"BQPIPE_{name}", raising=False)
    monkeypatch.delenv("BQPIPE_IMPERSONATE_SERVICE_ACCOUNT", raising=False)
    return tmp_path


@pytest.fixture
def engine(monkeypatch, make_engine):
    """Install a FakeEngine as the runner's default client."""
    fake = make_engine()
    monkeypatch.setattr(
        "bqpipe.core.runner.create_bigquery_client", lambda config: fake
    )
    return fake
