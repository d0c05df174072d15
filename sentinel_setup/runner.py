# ----------------------------------------------------------------
# Command Execution Utilities
# ----------------------------------------------------------------
import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

from sentinel_setup.config import TEMP_PREFIX
from sentinel_setup.console import LOGGER_NAME
from sentinel_setup.exceptions import CommandError

logger = logging.getLogger(LOGGER_NAME)


class CommandRunner:
    """
    Single entry point for every external command and every host file write.

    In dry-run mode mutating commands and file writes are logged and recorded
    but not executed. Read-only queries (``query=True``) always run, since the
    steps need them to decide what would change.
    """

    def __init__(self, dry_run: bool = False) -> None:
        self.dry_run = dry_run
        self.history: List[List[str]] = []

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        input: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        query: bool = False,
    ) -> subprocess.CompletedProcess:
        cmd_str = " ".join(cmd)
        self.history.append(list(cmd))

        if self.dry_run and not query:
            logger.info(f"[dry-run] {cmd_str}")
            return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

        logger.debug(f"Executing: {cmd_str}")
        result = self._execute(cmd, capture_output=capture_output, input=input, env=env)
        if check and result.returncode != 0:
            logger.error(f"Command failed: {cmd_str} with exit code {result.returncode}")
            logger.debug(f"Error: {result.stderr or 'N/A'}")
            raise CommandError(cmd, result.returncode, result.stderr)
        return result

    def _execute(
        self,
        cmd: List[str],
        capture_output: bool = False,
        input: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        run_env = None
        if env:
            run_env = os.environ.copy()
            run_env.update(env)
        try:
            return subprocess.run(
                cmd,
                capture_output=capture_output,
                text=True,
                input=input,
                env=run_env,
                check=False,
            )
        except FileNotFoundError:
            return subprocess.CompletedProcess(
                cmd, 127, stdout="", stderr=f"{cmd[0]}: command not found"
            )

    def succeeds(self, cmd: List[str]) -> bool:
        """Run a read-only query and report whether it exited with status 0."""
        return self.run(cmd, check=False, capture_output=True, query=True).returncode == 0

    def output(self, cmd: List[str]) -> str:
        """Run a read-only query and return its stripped stdout."""
        result = self.run(cmd, capture_output=True, query=True)
        return (result.stdout or "").strip()

    # ------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------
    def write_file(self, path: Path, content: str, mode: Optional[int] = None) -> None:
        if self.dry_run:
            logger.info(f"[dry-run] write {path} ({len(content)} bytes)")
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        if mode is not None:
            os.chmod(path, mode)
        logger.debug(f"Wrote {path}")

    def append_line(self, path: Path, line: str) -> bool:
        """Append a line to a file unless it is already present."""
        if path.is_file() and line in path.read_text().splitlines():
            logger.debug(f"{path} already contains: {line}")
            return False
        if self.dry_run:
            logger.info(f"[dry-run] append to {path}: {line}")
            return True
        path.parent.mkdir(parents=True, exist_ok=True)
        existing = path.read_text() if path.is_file() else ""
        with open(path, "a") as f:
            if existing and not existing.endswith("\n"):
                f.write("\n")
            f.write(f"{line}\n")
        return True

    def ensure_directory(self, path: Path) -> None:
        if self.dry_run:
            logger.info(f"[dry-run] mkdir -p {path}")
            return
        path.mkdir(parents=True, exist_ok=True)

    def backup_file(self, path: Path, timestamp: str) -> Optional[Path]:
        """Copy a file to ``<name>.bak.<timestamp>`` before it gets replaced."""
        if not path.is_file():
            return None
        backup = path.with_name(f"{path.name}.bak.{timestamp}")
        if self.dry_run:
            logger.info(f"[dry-run] backup {path} to {backup}")
            return backup
        shutil.copy2(path, backup)
        logger.info(f"Backed up {path} to {backup}")
        return backup


def make_temp_file(suffix: str = "") -> Path:
    fd, name = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=suffix)
    os.close(fd)
    return Path(name)


def cleanup_temp_files() -> None:
    """Remove leftover temp files created by this tool."""
    tmp = Path(tempfile.gettempdir())
    for item in tmp.glob(f"{TEMP_PREFIX}*"):
        try:
            if item.is_file():
                item.unlink()
            else:
                shutil.rmtree(item)
        except OSError as e:
            logger.warning(f"Failed to clean up {item}: {e}")
