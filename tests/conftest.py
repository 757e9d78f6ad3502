"""Shared fixtures for httpwatch tests."""

import os

import pytest
from click.testing import CliRunner

from httpwatch import config
from httpwatch.executor import RequestResult


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def global_httpwatch_dir(tmp_path, monkeypatch):
    """Override the global ~/.httpwatch directory to a temp location."""
    fake_global = tmp_path / "fake_home" / ".httpwatch"
    fake_global.mkdir(parents=True)
    monkeypatch.setattr(config, "GLOBAL_DIR", fake_global)
    monkeypatch.setattr(config, "GLOBAL_CONFIG", fake_global / "config.yaml")
    return fake_global


@pytest.fixture
def tmp_project(tmp_path):
    """Create a temporary project directory and cd into it."""
    original = os.getcwd()
    project = tmp_path / "project"
    project.mkdir()
    os.chdir(project)
    yield project
    os.chdir(original)


def make_request_result(
    status_code=200,
    reason="OK",
    headers=None,
    elapsed_ms=42.0,
    error=None,
    raw_text="",
):
    """Factory for mock RequestResult objects."""
    r = RequestResult()
    r.status_code = status_code
    r.reason = reason
    r.headers = headers or {}
    r.elapsed_ms = elapsed_ms
    r.error = error
    r.raw_text = raw_text
    return r
