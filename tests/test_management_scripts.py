"""
Runs the generated management scripts against a stub ``docker`` binary and
checks the exact compose subcommands each one issues.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path

import pytest

from conftest import FakeRunner
from sentinel_setup.config import Config
from sentinel_setup.phases import AppProvisioner

pytestmark = pytest.mark.skipif(shutil.which("bash") is None, reason="bash not available")

STUB_DOCKER = """#!/bin/bash
echo "$PWD|$*" >> "$DOCKER_LOG"
"""


@pytest.fixture
def project(config: Config) -> Path:
    return AppProvisioner(config, FakeRunner()).provision()


@pytest.fixture
def docker_stub(tmp_path: Path) -> dict[str, str]:
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    stub = bin_dir / "docker"
    stub.write_text(STUB_DOCKER)
    stub.chmod(0o755)

    env = os.environ.copy()
    env["PATH"] = f"{bin_dir}{os.pathsep}{env.get('PATH', '')}"
    env["DOCKER_LOG"] = str(tmp_path / "docker.log")
    return env


def run_script(project: Path, name: str, env: dict[str, str]) -> list[str]:
    # Started from elsewhere to prove the script changes into its own directory
    subprocess.run(
        ["bash", str(project / name)], cwd="/", env=env, check=True, capture_output=True, text=True
    )
    log = Path(env["DOCKER_LOG"])
    calls = log.read_text().splitlines()
    log.unlink()
    return calls


@pytest.mark.parametrize(
    "script, expected",
    [
        ("start.sh", ["compose up -d"]),
        ("stop.sh", ["compose down"]),
        ("status.sh", ["compose ps", "compose logs --tail=20"]),
        ("update.sh", ["compose pull", "compose up -d"]),
        ("logs.sh", ["compose logs -f"]),
    ],
)
def test_script_invokes_compose(project: Path, docker_stub, script: str, expected: list[str]):
    calls = run_script(project, script, docker_stub)

    assert [call.split("|", 1)[1] for call in calls] == expected
    assert all(Path(call.split("|", 1)[0]).resolve() == project.resolve() for call in calls)
