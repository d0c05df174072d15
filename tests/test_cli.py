from __future__ import annotations

import atexit
import signal
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from conftest import FakeRunner
from sentinel_setup import pipeline
from sentinel_setup.cli import main


@pytest.fixture
def fake_runners(monkeypatch: pytest.MonkeyPatch) -> list[FakeRunner]:
    created: list[FakeRunner] = []

    def factory(dry_run: bool = False) -> FakeRunner:
        runner = FakeRunner(dry_run=dry_run)
        created.append(runner)
        return runner

    monkeypatch.setattr(pipeline, "CommandRunner", factory)
    # main() installs process-wide hooks; keep them out of the test process
    monkeypatch.setattr(signal, "signal", lambda *args, **kwargs: None)
    monkeypatch.setattr(atexit, "register", lambda *args, **kwargs: None)
    return created


def test_requires_root(as_user, fake_runners, tmp_path: Path):
    result = CliRunner().invoke(main, ["--root", str(tmp_path), "--log-file", str(tmp_path / "x.log")])

    assert result.exit_code == 1
    assert "must be run as root" in result.output
    assert fake_runners[0].history == []


def test_options_flow_into_generated_files(as_root, fake_runners, host_root: Path, tmp_path: Path):
    result = CliRunner().invoke(
        main,
        [
            "--username", "sentinel",
            "--port", "9090",
            "--version", "1.15.2",
            "--temp-password", "Rotate-Me-1",
            "--root", str(host_root),
            "--log-file", str(tmp_path / "setup.log"),
        ],
    )

    assert result.exit_code == 0, result.output
    runner = fake_runners[0]
    assert runner.inputs == ["sentinel:Rotate-Me-1\n"]
    assert ["ufw", "allow", "9090/tcp", "comment", "ALTCHA Sentinel"] in runner.history

    compose = yaml.safe_load((host_root / "home/sentinel/altcha/docker-compose.yml").read_text())
    service = compose["services"]["altcha_sentinel"]
    assert service["image"] == "ghcr.io/altcha-org/sentinel:1.15.2"
    assert service["ports"] == ["9090:8080"]
    assert "http://203.0.113.7:9090" in result.output


def test_environment_variables(as_root, fake_runners, host_root: Path, tmp_path: Path, monkeypatch):
    monkeypatch.setenv("SENTINEL_USERNAME", "captcha")
    monkeypatch.setenv("SENTINEL_ROOT", str(host_root))
    monkeypatch.setenv("SENTINEL_LOG_FILE", str(tmp_path / "env.log"))

    result = CliRunner().invoke(main, ["--dry-run"])

    assert result.exit_code == 0, result.output
    assert fake_runners[0].dry_run is True
    assert ["useradd", "-m", "-s", "/bin/bash", "captcha"] in fake_runners[0].history
    assert not (host_root / "home").exists()


def test_invalid_port_rejected(fake_runners):
    result = CliRunner().invoke(main, ["--port", "70000"])
    assert result.exit_code == 2
    assert fake_runners == []


@pytest.mark.parametrize(
    "args",
    [
        ["--temp-password", "x\nroot:owned"],
        ["--temp-password", "tab\there"],
        ["--temp-password", ""],
        ["--username", "root:0"],
        ["--username", "al tcha"],
        ["--username", ""],
    ],
)
def test_unsafe_credentials_rejected(as_root, fake_runners, args):
    result = CliRunner().invoke(main, args)

    assert result.exit_code == 2
    assert "Invalid value" in result.output
    assert fake_runners == []


def test_unsafe_password_from_environment_rejected(as_root, fake_runners, monkeypatch):
    monkeypatch.setenv("SENTINEL_TEMP_PASSWORD", "pw\nroot:owned")

    result = CliRunner().invoke(main, [])

    assert result.exit_code == 2
    assert fake_runners == []
