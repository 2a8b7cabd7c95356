"""
Tests for the command-line interface.
"""

import pytest
import yaml
from typer.testing import CliRunner

from hls_publisher import __version__
from hls_publisher.cli.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ["B2_KEY_ID", "B2_APPLICATION_KEY", "B2_BUCKET_ID", "B2_BUCKET_NAME"]:
        monkeypatch.delenv(name, raising=False)


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_init_config(tmp_path):
    target = tmp_path / "config.yaml"

    result = runner.invoke(app, ["init-config", "--output", str(target)])

    assert result.exit_code == 0
    data = yaml.safe_load(target.read_text())
    assert [r["name"] for r in data["renditions"]] == ["480p", "720p"]


def test_init_config_refuses_overwrite(tmp_path):
    target = tmp_path / "config.yaml"
    target.write_text("hls: {}\n")

    result = runner.invoke(app, ["init-config", "--output", str(target)])

    assert result.exit_code == 1
    assert target.read_text() == "hls: {}\n"

    result = runner.invoke(app, ["init-config", "--output", str(target), "--force"])
    assert result.exit_code == 0


@pytest.mark.parametrize("args", [[], ["--prefix", "a", "--name", "b"]])
def test_search_needs_exactly_one_option(args):
    result = runner.invoke(app, ["search", *args])
    assert result.exit_code == 1
    assert "exactly one" in result.output


def test_ls_without_bucket_id(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("storage:\n  key_id: k\n  application_key: s\n")

    result = runner.invoke(app, ["--config", str(config), "ls"])

    assert result.exit_code == 1
    assert "bucket_id" in result.output


def test_invalid_config_file(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("hls:\n  segment_duration: 0\n")

    result = runner.invoke(app, ["--config", str(config), "ls"])

    assert result.exit_code == 1
