"""Tests for the default settings scaffold."""

import os
import stat
import tomllib

import pytest

from bqpipe.core.defaults import DEFAULT_SETTINGS_TOML, write_default_settings
from bqpipe.core.settings import load_settings


def test_default_settings_parse():
    data = tomllib.loads(DEFAULT_SETTINGS_TOML)

    assert data["directory"] == "sql/"
    assert data["location"] == "US"
    assert data["vars"] == {"env": "dev", "start_date": "2025-01-01"}


def test_write_default_settings(tmp_path):
    path = tmp_path / "bqpipe.toml"

    created = write_default_settings(str(path))

    assert created == str(path)
    assert path.read_text() == DEFAULT_SETTINGS_TOML
    assert stat.S_IMODE(os.stat(path).st_mode) & 0o077 == 0
    assert load_settings(str(path)).project_id == "your-project-id"


def test_refuses_to_overwrite(tmp_path):
    path = tmp_path / "bqpipe.toml"
    path.write_text("project_id = 'mine'\n")

    with pytest.raises(FileExistsError):
        write_default_settings(str(path))

    assert path.read_text() == "project_id = 'mine'\n"


def test_overwrite(tmp_path):
    path = tmp_path / "bqpipe.toml"
    path.write_text("project_id = 'mine'\n" * 100)

    write_default_settings(str(path), overwrite=True)

    assert path.read_text() == DEFAULT_SETTINGS_TOML
