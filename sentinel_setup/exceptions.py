from typing import List, Optional


class SetupError(Exception):
    """Base class for every error raised while provisioning the host."""

    exit_code: int = 1


class PrivilegeError(SetupError):
    """The tool was started without root privileges."""


class CommandError(SetupError):
    """An external command exited with a non-zero status."""

    def __init__(
        self, cmd: List[str], returncode: int, stderr: Optional[str] = None
    ) -> None:
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr
        # Killed by signal N reports as 128+N, the way a shell does
        if returncode < 0:
            self.exit_code = 128 - returncode
        else:
            self.exit_code = returncode if returncode > 0 else 1
        super().__init__(
            f"Command failed with exit code {returncode}: {' '.join(cmd)}"
        )


class StepFailed(SetupError):
    """A provisioning step failed; carries the step name and the cause."""

    def __init__(self, step: str, cause: BaseException) -> None:
        self.step = step
        self.cause = cause
        self.exit_code = getattr(cause, "exit_code", 1)
        super().__init__(f"Step '{step}' failed: {cause}")
