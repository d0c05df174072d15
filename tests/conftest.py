from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Iterable

import pytest

from sentinel_setup.config import Config
from sentinel_setup.runner import CommandRunner

TEMP_PASSWORD = "Temp1234abcd"


class FakeRunner(CommandRunner):
    """CommandRunner that records commands instead of touching the host."""

    def __init__(
        self,
        existing_users: Iterable[str] = (),
        failures: dict[tuple[str, ...], int] | None = None,
        dry_run: bool = False,
    ) -> None:
        super().__init__(dry_run=dry_run)
        self.users = set(existing_users)
        self.failures = failures or {}
        self.inputs: list[str] = []
        self.outputs: dict[tuple[str, ...], str] = {
            ("dpkg", "--print-architecture"): "amd64\n",
            ("hostname", "-I"): "203.0.113.7 10.0.0.2 \n",
        }

    def _execute(self, cmd, capture_output=False, input=None, env=None):
        if input is not None:
            self.inputs.append(input)
        for prefix, code in self.failures.items():
            if tuple(cmd[: len(prefix)]) == prefix:
                return subprocess.CompletedProcess(cmd, code, stdout="", stderr="boom")
        if cmd[0] == "id":
            code = 0 if cmd[1] in self.users else 1
            return subprocess.CompletedProcess(cmd, code, stdout="", stderr="")
        if cmd[0] == "useradd":
            self.users.add(cmd[-1])
        return subprocess.CompletedProcess(
            cmd, 0, stdout=self.outputs.get(tuple(cmd), ""), stderr=""
        )

    def commands(self, program: str) -> list[list[str]]:
        return [cmd for cmd in self.history if cmd[0] == program]


@pytest.fixture
def host_root(tmp_path: Path) -> Path:
    root = tmp_path / "host"
    os_release = root / "etc" / "os-release"
    os_release.parent.mkdir(parents=True)
    os_release.write_text(
        'PRETTY_NAME="Ubuntu 24.04.1 LTS"\n'
        'VERSION_ID="24.04"\n'
        "VERSION_CODENAME=noble\n"
        "UBUNTU_CODENAME=noble\n"
    )
    return root


@pytest.fixture
def config(host_root: Path, tmp_path: Path) -> Config:
    return Config(
        ROOT=host_root,
        LOG_FILE=str(tmp_path / "log" / "sentinel_setup.log"),
        TEMP_PASSWORD=TEMP_PASSWORD,
    )


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def as_root(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(os, "geteuid", lambda: 0)


@pytest.fixture
def as_user(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(os, "geteuid", lambda: 1000)
