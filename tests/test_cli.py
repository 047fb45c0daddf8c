from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from devpush.cli import cli, find_config_file

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / ".git").mkdir()
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    (tmp_path / "manifest.json").write_text(
        json.dumps({"domain": {"name": "myapp.cloudapp.com"}, "pages": [{"uri": "myapp/pages/index"}]})
    )
    return tmp_path


def test_dry_run_prints_the_resolved_configuration(project: Path) -> None:
    result = runner.invoke(
        cli,
        (
            "--project-path",
            str(project),
            "--source-path",
            "/src,/lib",
            "--update-delay",
            "1000",
            "--no-auto-restart",
            "--dry",
        ),
    )

    assert result.exit_code == 0, result.output
    assert "myapp.cloudapp.com" in result.output
    assert '"/lib"' in result.output
    assert '"update_delay": 1000' in result.output
    assert '"auto_restart": false' in result.output


def test_config_file_is_read(project: Path, tmp_path: Path) -> None:
    config = tmp_path / "devpush.yaml"
    config.write_text("app_name: from-file\nskip_first_update: true\n")

    result = runner.invoke(cli, ("--project-path", str(project), "--config", str(config), "--dry"))

    assert result.exit_code == 0, result.output
    assert "from-file" in result.output
    assert '"skip_first_update": true' in result.output


def test_command_line_overrides_config_file(project: Path, tmp_path: Path) -> None:
    config = tmp_path / "devpush.yaml"
    config.write_text("app_name: from-file\n")

    result = runner.invoke(
        cli,
        ("--project-path", str(project), "--config", str(config), "--app-name", "from-cli", "--dry"),
    )

    assert result.exit_code == 0, result.output
    assert "from-cli" in result.output
    assert "from-file" not in result.output


def test_invalid_values_are_reported(project: Path, tmp_path: Path) -> None:
    config = tmp_path / "devpush.yaml"
    config.write_text("update_delay: soon\n")

    result = runner.invoke(cli, ("--project-path", str(project), "--config", str(config), "--dry"))

    assert result.exit_code == 1
    assert "ERROR update_delay" in result.output


def test_missing_manifest_is_reported(tmp_path: Path) -> None:
    result = runner.invoke(cli, ("--project-path", str(tmp_path), "--dry"))

    assert result.exit_code == 1
    assert "Failed to read app name and page link" in result.output


def test_find_config_file_walks_up_to_the_repository_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "devpush.yaml").write_text("")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)

    monkeypatch.chdir(nested)

    assert find_config_file() == tmp_path / "devpush.yaml"


def test_find_config_file_stops_at_the_repository_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "devpush.yaml").write_text("")
    repo = tmp_path / "repo"
    (repo / ".git").mkdir(parents=True)

    monkeypatch.chdir(repo)

    assert find_config_file() is None
